from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("JWT_SECRET", "test-signing-secret")
os.environ.setdefault("ENV", "development")
os.environ.setdefault("SMTP_HOST", "")


@pytest.fixture()
def db_session():
    import app.models  # noqa: F401
    from app.db.base import Base
    from app.db.session import SessionLocal, engine

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def session_factory(db_session):
    from app.db.session import SessionLocal

    return SessionLocal


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient

    from app.core.rate_limit import _limiter
    from app.main import app as fastapi_app

    _limiter.reset()
    with TestClient(fastapi_app) as test_client:
        yield test_client
    _limiter.reset()


@pytest.fixture()
def make_user(db_session):
    from app.core.security import hash_password
    from app.models.user import User

    def _make_user(email: str = "alice@example.com", password: str = "secret1", full_name: str = "Alice") -> User:
        user = User(email=email, full_name=full_name, password_hash=hash_password(password), profile_pic="")
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def file_session_factory(tmp_path):
    """Sessions on a file database, one real connection per session."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    import app.models  # noqa: F401
    from app.db.base import Base

    file_engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'letschat.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=file_engine)
    try:
        yield sessionmaker(bind=file_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    finally:
        file_engine.dispose()
