"""Storeroom ledger HTTP service."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from ledger import __version__
from ledger.bootstrap import ServiceClients, initialise_clients
from ledger.engine import LedgerEngine
from ledger.errors import LedgerError
from ledger.logging_config import configure_logging
from ledger.routes import ledger_error_handler, request_validation_handler, router
from settings import LedgerSettings, load_settings

SERVICE_NAME = "storeroom-ledger"

logger = logging.getLogger(__name__)


def _engine_from_clients(settings: LedgerSettings, clients: ServiceClients) -> Optional[LedgerEngine]:
    if not clients.sheets.ok:
        logger.error("Google Sheets not initialized: %s", clients.sheets.error)
        return None
    return LedgerEngine(clients.sheets.client, settings, files=clients.drive.client)


def create_app(
    settings: Optional[LedgerSettings] = None,
    *,
    engine: Optional[LedgerEngine] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Clients are created once in the lifespan hook unless ``engine`` is given.
    A failed connection leaves ``app.state.engine`` unset so every inventory
    request answers with a configuration error instead of retrying.
    """

    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s version %s", SERVICE_NAME, __version__)
        if app.state.engine is None:
            clients = initialise_clients(settings)
            app.state.clients = clients
            app.state.engine = _engine_from_clients(settings, clients)
        yield
        logger.info("Shutting down %s", SERVICE_NAME)

    app = FastAPI(title=SERVICE_NAME, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.clients = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router)

    @app.get("/health")
    async def health():
        clients = app.state.clients
        payload = clients.status() if clients is not None else {}
        payload["status"] = "ok" if app.state.engine is not None else "degraded"
        return payload

    return app


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_file or None)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
