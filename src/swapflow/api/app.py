"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from swapflow import __version__
from swapflow.config import get_settings


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="swapflow API",
        description="Swap readiness and approval status backend",
        version=__version__,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from swapflow.api.routes import health, swap

    app.include_router(health.router, tags=["Health"])
    app.include_router(swap.router, prefix="/api/v1", tags=["Swap"])

    return app
