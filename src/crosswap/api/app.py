"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crosswap import __version__
from crosswap.api.contracts import ErrorResponse
from crosswap.config import get_settings
from crosswap.container import ServiceContainer
from crosswap.errors import AllKeysExhausted, CrosswapError, ProviderUnavailable, UnsupportedChain

logger = logging.getLogger(__name__)

# HTTP status for domain errors that reach the API layer
ERROR_STATUS = {
    UnsupportedChain: 400,
    AllKeysExhausted: 503,
    ProviderUnavailable: 503,
}


async def crosswap_error_handler(request: Request, exc: CrosswapError) -> JSONResponse:
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    body = ErrorResponse(error=exc.code, detail=exc.message)
    return JSONResponse(status_code=status, content=body.model_dump())


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        container: Prebuilt services (tests); built from settings on startup if None
    """
    settings = container.settings if container is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        services = container or ServiceContainer(settings)
        app.state.container = services
        await services.start()
        yield
        await services.close()

    app = FastAPI(
        title="Crosswap API",
        description="Cross-provider token discovery and DEX pair verification",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )
    if container is not None:
        app.state.container = container

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CrosswapError, crosswap_error_handler)

    # Register routes
    from crosswap.api.routes import balances, health, pairs, tokens

    app.include_router(health.router, tags=["Health"])
    app.include_router(tokens.router, prefix="/api/v1", tags=["Tokens"])
    app.include_router(pairs.router, prefix="/api/v1", tags=["Pairs"])
    app.include_router(balances.router, prefix="/api/v1", tags=["Balances"])

    return app
