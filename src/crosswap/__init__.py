"""Crosswap - cross-provider token discovery and cross-chain swap execution."""

__version__ = "0.1.0"
