"""
AirLedger — FastAPI Application Entry Point

Read-only retrieval surface consumed by the polling dashboard.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import chain, readings
from common.config import get_settings
from common.context import AppContext
from ledger.errors import (
    IndexOutOfRange, LedgerError, NotFound, PartialReadFailure, ReadUnavailable,
)
from ledger.sql_store import SqlLedgerStore
from ledger.verifier import verify_chain

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    IndexOutOfRange: 404,
    NotFound: 503,
    ReadUnavailable: 503,
    PartialReadFailure: 503,
}


def _verify_on_startup(ctx: AppContext) -> None:
    """Chain verification is logged, not fatal."""
    if not isinstance(ctx.store, SqlLedgerStore):
        return
    try:
        result = verify_chain(ctx.store)
    except LedgerError as e:
        logger.error("Startup chain verification could not run: %s", e)
        return
    if result.is_valid:
        logger.info("%s", result)
    else:
        logger.error("%s", result)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the API. When `context` is given it is used as-is and left open on
    shutdown (the caller owns it); otherwise one is opened from the environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = context is None
        ctx = context or AppContext.open(get_settings())
        app.state.ctx = ctx
        logger.info("AirLedger API starting up — verifying ledger chain")
        _verify_on_startup(ctx)
        yield
        logger.info("AirLedger API shutting down")
        if owned:
            ctx.close()

    app = FastAPI(
        title="AirLedger API",
        description="Air-quality reading ledger — retrieval and health status",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        status_code = next(
            (code for err_type, code in ERROR_STATUS.items() if isinstance(exc, err_type)),
            500,
        )
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=422, content={"error": str(exc.errors())})

    app.include_router(readings.router, prefix="/api", tags=["Readings"])
    app.include_router(chain.router, prefix="/api/ledger", tags=["Ledger"])

    @app.get("/api/health", tags=["Health"])
    def health():
        return {"status": "ok", "service": "airledger-api", "version": "1.0.0"}

    return app


app = create_app()
