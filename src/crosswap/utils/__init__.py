"""Utility modules for crosswap."""

from crosswap.utils.cache import CACHE_TTL, TTLCache
from crosswap.utils.key_pool import ApiKeyPool

__all__ = ["CACHE_TTL", "TTLCache", "ApiKeyPool"]
