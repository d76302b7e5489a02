"""Response models for the HTTP API."""

from typing import Any, Optional

from pydantic import BaseModel


class ChainInfo(BaseModel):
    """Canonical chain description."""

    id: int
    name: str
    family: str
    native_symbol: str
    explorer_url: str = ""


class ChainListResponse(BaseModel):
    chains: list[ChainInfo]


class TokenListResponse(BaseModel):
    """Ranked tokens; each entry is a normalized token in camelCase."""

    tokens: list[dict[str, Any]]
    count: int
    query: Optional[str] = None
    chain_ids: list[int] = []


class PairResponse(BaseModel):
    """Pair lookup result.

    source is "onchain" for a factory/router verified pool, "index" when only
    the text pair index found candidates, "none" otherwise.
    """

    found: bool
    source: str
    pair: Optional[dict[str, Any]] = None
    indexed: list[dict[str, Any]] = []


class TokenPairsResponse(BaseModel):
    token: str
    chain_id: int
    source: str
    pairs: list[dict[str, Any]]
    count: int


class BalancesResponse(BaseModel):
    address: str
    chain_id: int
    tokens: list[dict[str, Any]]


class ErrorResponse(BaseModel):
    error: str
    detail: str
