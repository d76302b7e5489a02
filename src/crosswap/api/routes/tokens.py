"""Token discovery endpoints."""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from crosswap.api.contracts import ChainInfo, ChainListResponse, TokenListResponse
from crosswap.api.deps import get_container
from crosswap.container import ServiceContainer
from crosswap.providers.base import NormalizedToken

router = APIRouter()


def parse_chain_ids(chains: Optional[str]) -> list[int]:
    """Parse a comma-separated chain id list; empty means all chains."""
    if not chains:
        return []
    try:
        return [int(part) for part in chains.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid chain list: {chains}")


async def serialize_tokens(
    container: ServiceContainer, tokens: list[NormalizedToken], enrich: bool
) -> list[dict]:
    """Token dicts, optionally with router formats found within the enrichment deadline."""
    if not enrich:
        return [token.to_dict() for token in tokens]
    enriched = await asyncio.gather(
        *(container.enrichment.enrich_token_with_deadline(token) for token in tokens)
    )
    return [item.to_dict() for item in enriched]


@router.get("/chains", response_model=ChainListResponse)
async def list_chains(container: ServiceContainer = Depends(get_container)):
    """Supported chains."""
    return ChainListResponse(
        chains=[
            ChainInfo(
                id=chain.id,
                name=chain.name,
                family=chain.family.value,
                native_symbol=chain.native_symbol,
                explorer_url=chain.explorer_url,
            )
            for chain in container.chains.all()
        ]
    )


@router.get("/tokens", response_model=TokenListResponse)
async def search_tokens(
    query: Optional[str] = Query(None, max_length=100),
    chains: Optional[str] = Query(None, description="Comma-separated chain ids"),
    limit: Optional[int] = Query(None, ge=1, le=200),
    enrich: bool = Query(False, description="Wait briefly for router formats"),
    container: ServiceContainer = Depends(get_container),
):
    """Search tokens by symbol, name or address across chains."""
    chain_ids = parse_chain_ids(chains)
    tokens = await container.aggregation.search_tokens(query, chain_ids or None, limit)
    return TokenListResponse(
        tokens=await serialize_tokens(container, tokens, enrich),
        count=len(tokens),
        query=query,
        chain_ids=chain_ids or container.chains.ids(),
    )


@router.get("/tokens/{chain_id}", response_model=TokenListResponse)
async def tokens_by_chain(
    chain_id: int,
    limit: Optional[int] = Query(None, ge=1, le=200),
    enrich: bool = Query(False, description="Wait briefly for router formats"),
    container: ServiceContainer = Depends(get_container),
):
    """Top tokens for one chain."""
    tokens = await container.aggregation.get_tokens_by_chain(chain_id, limit)
    return TokenListResponse(
        tokens=await serialize_tokens(container, tokens, enrich),
        count=len(tokens),
        chain_ids=[chain_id],
    )
