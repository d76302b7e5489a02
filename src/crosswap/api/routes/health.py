"""Health check endpoints."""

from fastapi import APIRouter, Depends

from crosswap import __version__
from crosswap.api.deps import get_container
from crosswap.container import ServiceContainer

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "crosswap"}


@router.get("/health/detailed")
async def detailed_health(container: ServiceContainer = Depends(get_container)):
    """Detailed health check with configuration and runtime info."""
    return {
        "status": "healthy",
        "service": "crosswap",
        "version": __version__,
        "providers": [p.name for p in container.providers.all()],
        "balances_enabled": container.moralis is not None,
        "cache_entries": container.cache.size(),
        "background_enrichments": container.enrichment.pending,
        "config": container.settings.get_safe_dict(),
    }
