"""
FastAPI application factory.

``create_app()`` wires settings, error handlers, routers and the lifespan
into a single ``FastAPI`` instance. The lifespan owns the database and the
ledger client: it opens both on startup, registers the native asset, and
closes whatever it opened on shutdown.

Tests pass their own database and ledger client:

    app = create_app(settings=settings, db=Database(), ledger=FakeLedgerClient())
    with TestClient(app) as client:
        ...
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from ripple_api import APP_NAME, __version__
from ripple_api.api.deps import Services
from ripple_api.api.errors import (
    ripple_api_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from ripple_api.db import Database
from ripple_api.exceptions import RippleApiError
from ripple_api.logging import configure_logging, get_logger
from ripple_api.settings import RippleApiSettings, get_settings
from ripple_api.xrpl.client import LedgerClient
from ripple_api.xrpl.jsonrpc_client import JsonRpcClient
from ripple_api.xrpl.transport import HttpxTransport

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup / shutdown hooks."""
    settings: RippleApiSettings = app.state.settings
    configure_logging(settings.log_level, json_format=settings.log_json, service=APP_NAME)
    log = get_logger("ripple_api.api")

    db: Database | None = app.state.db
    owns_db = db is None
    if db is None:
        db = Database(settings.database_path)

    ledger: LedgerClient | None = app.state.ledger
    owned_ledger: JsonRpcClient | None = None
    if ledger is None:
        owned_ledger = JsonRpcClient(
            settings.ripple_url,
            HttpxTransport(timeout=settings.ripple_timeout),
            fee_cushion=settings.fee_cushion,
        )
        ledger = owned_ledger

    services = Services.create(settings, db, ledger)
    services.assets.ensure_native_asset()
    app.state.services = services

    log.info(
        "ripple_api_starting",
        version=app.version,
        database=db.path,
        ripple_url=settings.ripple_url,
    )

    try:
        yield
    finally:
        if owned_ledger is not None:
            await owned_ledger.aclose()
        if owns_db:
            db.close()
        log.info("ripple_api_stopped")


def create_app(
    *,
    settings: RippleApiSettings | None = None,
    db: Database | None = None,
    ledger: LedgerClient | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Args:
        settings: Override settings. Defaults to the cached get_settings().
        db: Database to use instead of opening settings.database_path.
        ledger: Ledger client to use instead of a JsonRpcClient for
            settings.ripple_url.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=APP_NAME,
        version=__version__,
        lifespan=lifespan,
        docs_url=f"{API_PREFIX}/docs",
        openapi_url=f"{API_PREFIX}/openapi.json",
    )

    app.state.settings = settings
    app.state.db = db
    app.state.ledger = ledger

    # Endpoints see the provided settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(RippleApiError, ripple_api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from ripple_api.api.routers import addresses, assets, capabilities, transactions

    app.include_router(capabilities.router, prefix=API_PREFIX, tags=["capabilities"])
    app.include_router(addresses.router, prefix=API_PREFIX, tags=["addresses"])
    app.include_router(assets.router, prefix=API_PREFIX, tags=["assets"])
    app.include_router(transactions.router, prefix=API_PREFIX, tags=["transactions"])

    return app
