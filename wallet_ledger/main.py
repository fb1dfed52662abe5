"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging, DB table creation, notification worker
  2. CORS middleware — allows the admin panel and storefront origins
  3. Exception handlers — maps domain errors to HTTP responses
  4. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn wallet_ledger.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wallet_ledger.config import settings
from wallet_ledger.database import engine, Base
from wallet_ledger.exceptions import register_exception_handlers
from wallet_ledger.logging_config import configure_logging
from wallet_ledger.routers import (
    admin,
    auth,
    deposit_requests,
    wallet,
    wallet_transactions,
)
from wallet_ledger.services.notification_service import build_sinks, dispatcher


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Configures logging, creates all database tables if they don't exist
      (use Alembic migrations in production), and starts the notification
      worker.

    Shutdown:
      Flushes pending notifications, then disposes of the database engine.
    """
    # --- Startup ---
    configure_logging()

    database = engine.url.database
    if engine.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    dispatcher.sinks = build_sinks()
    dispatcher.start()
    logger.info(
        "%s %s started (%s), notification sinks: %s",
        settings.APP_NAME,
        settings.APP_VERSION,
        settings.ENVIRONMENT,
        ", ".join(type(sink).__name__ for sink in dispatcher.sinks),
    )
    yield
    # --- Shutdown ---
    await dispatcher.stop()
    await engine.dispose()


# Create the FastAPI application instance
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Wallet ledger for the storefront: balances, deposit requests and the transaction ledger",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

# The admin panel reads x-total-count for pagination
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-total-count"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(deposit_requests.router, prefix="/wallet_deposit_requests", tags=["Deposit Requests"])
app.include_router(wallet_transactions.router, prefix="/wallet_transactions", tags=["Wallet Transactions"])
app.include_router(wallet.router, prefix="/wallet", tags=["Wallet"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for deployment probes (Kubernetes, Docker, etc.).
    """
    return {"status": "ok", "version": settings.APP_VERSION}
