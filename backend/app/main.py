from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.core.exceptions import DatabaseConnectionError, LetschatException
from app.core.logging import setup_logging
from app.core.security_headers import install_security_headers_middleware
from app.db.session import init_db
from app.routers import auth

logger = logging.getLogger(__name__)


def _error_response(exc: LetschatException) -> JSONResponse:
    headers = exc.headers if getattr(exc, "headers", None) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)
    settings.validate_runtime_security()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        init_db()
        yield

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts,
    )
    install_security_headers_middleware(app, settings)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.exception_handler(LetschatException)
    async def handle_letschat_exception(_: Request, exc: LetschatException) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(OperationalError)
    async def handle_store_unavailable(_: Request, exc: OperationalError) -> JSONResponse:
        logger.error("Session store unavailable: %s", exc.orig)
        return _error_response(DatabaseConnectionError())

    return app


app = create_app()
