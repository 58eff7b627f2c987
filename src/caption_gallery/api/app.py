"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from caption_gallery.api.auth import router as auth_router
from caption_gallery.api.guard import install_route_guard
from caption_gallery.api.pages import router as pages_router
from caption_gallery.app_logging import configure_logging
from caption_gallery.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    install_route_guard(app)
    app.include_router(auth_router)
    app.include_router(pages_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
