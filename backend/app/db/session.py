"""Database engine and session lifecycle helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.db.base import Base


def _engine_options(database_url: str) -> dict[str, Any]:
    url = make_url(database_url)
    backend = url.get_backend_name()
    if backend == "sqlite":
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty database.
            options["poolclass"] = StaticPool
        return options
    options = {"pool_pre_ping": True, "pool_timeout": settings.DB_POOL_TIMEOUT_SECONDS}
    if backend == "postgresql":
        options["connect_args"] = {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"}
    return options


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db() -> None:
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
