"""Wallet balance endpoint (Moralis)."""

from fastapi import APIRouter, Depends, HTTPException

from crosswap.api.contracts import BalancesResponse
from crosswap.api.deps import get_container
from crosswap.container import ServiceContainer

router = APIRouter()


@router.get("/balances/{address}", response_model=BalancesResponse)
async def wallet_balances(
    address: str,
    chain_id: int,
    container: ServiceContainer = Depends(get_container),
):
    """Token balances for a wallet on one chain."""
    if container.moralis is None:
        raise HTTPException(status_code=503, detail="Balance lookups are not configured")
    try:
        tokens = await container.moralis.get_wallet_tokens(address, chain_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BalancesResponse(address=address, chain_id=chain_id, tokens=tokens)
