"""Refresh token rotation with reuse detection.

A refresh secret is single use. Presenting it rotates the row to ``rotated``
and issues a child row in the same transaction. Presenting a ``rotated``
secret again means the secret leaked or a client replayed it, so every row
the user holds is revoked and the caller has to log in again.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ExpiredTokenError,
    InvalidStateTransition,
    RefreshTokenNotFoundError,
    ReuseDetectedError,
)
from app.core.security import create_access_token, create_refresh_secret, hash_token, tokens_match
from app.models.enums import RefreshTokenState
from app.models.refresh_token import utcnow
from app.models.user import User
from app.services import session_store

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[RefreshTokenState, frozenset[RefreshTokenState]] = {
    RefreshTokenState.issued: frozenset(
        {RefreshTokenState.rotated, RefreshTokenState.expired, RefreshTokenState.revoked}
    ),
    RefreshTokenState.rotated: frozenset({RefreshTokenState.expired, RefreshTokenState.revoked}),
    RefreshTokenState.expired: frozenset(),
    RefreshTokenState.revoked: frozenset(),
}


@dataclass(frozen=True)
class AuthTokens:
    access_token: str
    refresh_token: str
    user: User


def ensure_transition(current: RefreshTokenState, target: RefreshTokenState) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateTransition(current, target)


def _refresh_expiry(now: dt.datetime) -> dt.datetime:
    return now + dt.timedelta(seconds=settings.REFRESH_TOKEN_EXPIRE_SECONDS)


def _stage_child(db: Session, user: User, now: dt.datetime, meta: dict[str, Any] | None) -> str:
    secret = create_refresh_secret()
    session_store.append_record(
        db,
        user.id,
        hash_token(secret),
        expires_at=_refresh_expiry(now),
        meta=meta,
    )
    return secret


def issue_auth_tokens(db: Session, user: User, meta: dict[str, Any] | None = None) -> AuthTokens:
    """Start a new session for ``user`` (signup and login)."""
    access_token = create_access_token(user.id)
    now = utcnow()
    try:
        session_store.prune_expired(db, user.id, now)
        refresh_token = _stage_child(db, user, now, meta)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info("Session issued for user %s", user.id)
    return AuthTokens(access_token=access_token, refresh_token=refresh_token, user=user)


def _revoke_lineage(db: Session, user_id: UUID, record_id: UUID) -> ReuseDetectedError:
    ensure_transition(RefreshTokenState.rotated, RefreshTokenState.revoked)
    revoked = session_store.revoke_all(db, user_id)
    logger.warning(
        "Refresh token reuse detected for user %s (token %s); %d sessions revoked",
        user_id,
        record_id,
        revoked,
    )
    return ReuseDetectedError(revoked=revoked)


def rotate_refresh_token(db: Session, refresh_token: str | None, meta: dict[str, Any] | None = None) -> AuthTokens:
    if not refresh_token:
        raise RefreshTokenNotFoundError()

    presented_hash = hash_token(refresh_token)
    record = session_store.find_record_by_hash(db, presented_hash)
    if record is None or not tokens_match(record.token_hash, presented_hash):
        logger.info("Refresh rejected: no matching token")
        raise RefreshTokenNotFoundError()

    now = utcnow()
    record_id, user_id = record.id, record.user_id
    current = record.state
    if record.is_expired(now):
        ensure_transition(current, RefreshTokenState.expired)
        session_store.remove_record(db, record_id)
        logger.info("Refresh rejected: token %s expired for user %s", record_id, user_id)
        raise ExpiredTokenError("refresh_token_expired")

    if current is RefreshTokenState.rotated:
        raise _revoke_lineage(db, user_id, record_id)

    user = record.user
    access_token = create_access_token(user.id)
    ensure_transition(current, RefreshTokenState.rotated)
    try:
        if not session_store.mark_used(db, record_id):
            # Another request rotated this row between our read and our write.
            db.rollback()
            raise _revoke_lineage(db, user_id, record_id)
        session_store.prune_expired(db, user.id, now)
        new_refresh_token = _stage_child(db, user, now, meta)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info("Refresh token %s rotated for user %s", record_id, user.id)
    return AuthTokens(access_token=access_token, refresh_token=new_refresh_token, user=user)


def revoke_presented_token(db: Session, refresh_token: str | None) -> bool:
    """Logout of a single session. Unknown secrets are a silent no-op."""
    if not refresh_token:
        return False
    removed = session_store.revoke_one(db, hash_token(refresh_token))
    if removed:
        logger.info("Refresh token revoked on logout")
    return removed
