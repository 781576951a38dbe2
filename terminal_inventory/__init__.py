"""Application factory and top-level wiring for the terminal inventory API.

``create_app`` brings together configuration, database setup, middleware,
routers and error handling. Tables are created (and demo data optionally
seeded) when the application starts, not when this package is imported.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .core.errors import (
    InventoryError,
    http_exception_handler,
    inventory_exception_handler,
    validation_exception_handler,
)
from .db.session import Base, engine
from .deps.store import get_store
from .middlewares import RequestIdMiddleware

# Importing the SQLAlchemy models registers them with the metadata.
from .models import device as _device  # noqa: F401


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    if settings.SEED_DEMO_DATA:
        from .services.seed import seed_demo_devices

        seed_demo_devices(get_store())
    yield


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    from .routers import api_devices as api_devices_router

    app.include_router(api_devices_router.router)

    from .routers import api_inventory as api_inventory_router

    app.include_router(api_inventory_router.router)

    app.add_exception_handler(InventoryError, inventory_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    return app


__all__ = ["create_app"]
