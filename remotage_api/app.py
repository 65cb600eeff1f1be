"""
FastAPI application entry point for the Remotage API.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from remotage_api.config import Settings, get_settings
from remotage_api.db import StoreError
from remotage_api.dependencies import get_db_client
from remotage_api.routes import router
from remotage_api.sweeper import LeadExpirySweeper

logger = logging.getLogger(__name__)


def _storage_message(exc: Exception) -> str:
    # DBAPI errors carry the driver's message on .orig; the wrapper adds SQL.
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("Store rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": _storage_message(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=500, content={"error": str(exc.errors())})


async def _unhandled_errors(request: Request, call_next):
    # Runs inside CORSMiddleware so error responses keep the CORS headers.
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception("Server error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(exc)},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = None
        if settings.enable_lead_sweeper:
            sweeper = LeadExpirySweeper(
                get_db_client(),
                ttl_seconds=settings.lead_ttl_seconds,
                interval_seconds=settings.lead_sweep_interval_seconds,
            )
            sweeper.start()
        app.state.lead_sweeper = sweeper
        yield
        if sweeper:
            await asyncio.to_thread(sweeper.stop)

    app = FastAPI(title="Remotage API", version="0.1.0", lifespan=lifespan)
    app.middleware("http")(_unhandled_errors)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
