"""DEX pair lookup endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from web3 import Web3

from crosswap.api.contracts import PairResponse, TokenPairsResponse
from crosswap.api.deps import get_container
from crosswap.container import ServiceContainer
from crosswap.errors import UnsupportedChain
from crosswap.routing.intermediaries import get_intermediaries

router = APIRouter(prefix="/pairs")


def _require_address(value: str, field: str) -> str:
    if not Web3.is_address(value.lower()):
        raise HTTPException(status_code=400, detail=f"Invalid {field} address: {value}")
    return Web3.to_checksum_address(value)


def _require_evm_chain(container: ServiceContainer, chain_id: int) -> None:
    chain = container.chains.get(chain_id)
    if chain is None or not chain.is_evm:
        raise UnsupportedChain(chain_id)


@router.get("", response_model=PairResponse)
async def find_pair(
    token_a: str,
    token_b: str,
    chain_id: int,
    dex_id: Optional[str] = None,
    symbol_a: Optional[str] = None,
    symbol_b: Optional[str] = None,
    container: ServiceContainer = Depends(get_container),
):
    """Verified pool between two tokens, with a pair index fallback by symbol."""
    _require_evm_chain(container, chain_id)
    token_a = _require_address(token_a, "token_a")
    token_b = _require_address(token_b, "token_b")

    lookup = await container.pair_query.find_pair(
        token_a, token_b, chain_id, symbol_a=symbol_a, symbol_b=symbol_b, dex_id=dex_id
    )
    if lookup.verified is not None:
        return PairResponse(found=True, source="onchain", pair=lookup.verified.to_dict())
    return PairResponse(
        found=lookup.found,
        source="index" if lookup.indexed else "none",
        indexed=[pair.to_dict() for pair in lookup.indexed],
    )


@router.get("/token", response_model=TokenPairsResponse)
async def pairs_for_token(
    token: str,
    chain_id: int,
    intermediaries: Optional[str] = Query(
        None, description="Comma-separated intermediary symbols to restrict to"
    ),
    container: ServiceContainer = Depends(get_container),
):
    """All verified pools for a token against the chain's intermediaries."""
    _require_evm_chain(container, chain_id)
    token = _require_address(token, "token")

    candidates = get_intermediaries(chain_id)
    if intermediaries:
        wanted = {s.strip().upper() for s in intermediaries.split(",") if s.strip()}
        candidates = [i for i in candidates if i.symbol.upper() in wanted]

    lookup = await container.pair_query.find_pairs_for_token(token, chain_id, candidates)
    pairs = [p.to_dict() for p in lookup.verified] or [p.to_dict() for p in lookup.indexed]
    return TokenPairsResponse(
        token=token,
        chain_id=chain_id,
        source=lookup.source,
        pairs=pairs,
        count=len(pairs),
    )
