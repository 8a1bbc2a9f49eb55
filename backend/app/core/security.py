"""Security helpers for hashing passwords, issuing JWTs and refresh secrets."""

from __future__ import annotations

import datetime as dt
import hashlib
import hmac
import secrets
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import ConfigurationError, ExpiredTokenError, InvalidTokenError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ACCESS_TOKEN_TYPE = "access"
MIN_REFRESH_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def dummy_verify_password() -> None:
    """Burn one hash verification so a missing account costs the same as a bad password."""
    pwd_context.dummy_verify()


def _signing_secret() -> str:
    secret = settings.JWT_SECRET
    if not secret or not secret.strip():
        raise ConfigurationError("JWT_SECRET is not set", setting="JWT_SECRET")
    return secret


def create_access_token(user_id: Any, expires_delta: dt.timedelta | None = None) -> str:
    secret = _signing_secret()
    now = dt.datetime.now(dt.timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else dt.timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(claims, secret, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict[str, str]:
    """Decode an access token without touching the database.

    Returns ``{"user_id": <sub>}``. Raises ``ExpiredTokenError`` once ``exp`` has
    passed and ``InvalidTokenError`` for anything else that does not check out.
    """
    secret = _signing_secret()
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise ExpiredTokenError("access_token_expired") from exc
    except JWTError as exc:
        raise InvalidTokenError("invalid_token") from exc

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise InvalidTokenError("invalid_token")
    subject = payload.get("sub")
    if not subject:
        raise InvalidTokenError("invalid_token")
    return {"user_id": str(subject)}


def create_refresh_secret(byte_length: int | None = None) -> str:
    size = byte_length if byte_length is not None else settings.REFRESH_TOKEN_BYTES
    if size < MIN_REFRESH_TOKEN_BYTES:
        raise ValueError(f"refresh secrets need at least {MIN_REFRESH_TOKEN_BYTES} bytes of entropy")
    return secrets.token_urlsafe(size)


def hash_token(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def tokens_match(left: str, right: str) -> bool:
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))
