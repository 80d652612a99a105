"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware

from ._lifecycle import LifecycleManager
from ._errors import register_error_handlers
from ._routes import _health, _databases
from ._routes._dependencies import get_manager


def _make_lifespan(manager: LifecycleManager):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        app.state.manager = manager
        yield
        manager.close()

    return lifespan


def create_app(
    manager: LifecycleManager,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="dbaas REST API",
        description="Provision and tear down logical databases on backing engines",
        lifespan=_make_lifespan(manager),
    )

    app.dependency_overrides[get_manager] = lambda: manager

    # CORS (consumer configurable)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_error_handlers(app)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(_health.router)
    api_v1.include_router(_databases.router)

    app.include_router(api_v1)

    return app
