"""Durable storage for refresh token rows.

Every helper takes the request-scoped SQLAlchemy session. Lookups go through
the global ``token_hash`` index because a client only ever presents the secret,
never its owner. Mutations against one user's rows are single statements so
concurrent refreshes cannot interleave inside them.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, joinedload

from app.models.refresh_token import RefreshToken, utcnow
from app.models.user import User

logger = logging.getLogger(__name__)


def find_record_by_hash(db: Session, token_hash: str) -> RefreshToken | None:
    stmt = (
        select(RefreshToken)
        .options(joinedload(RefreshToken.user))
        .where(RefreshToken.token_hash == token_hash)
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def find_user_by_refresh_hash(db: Session, token_hash: str) -> User | None:
    record = find_record_by_hash(db, token_hash)
    return record.user if record else None


def append_record(
    db: Session,
    user_id: UUID,
    token_hash: str,
    *,
    expires_at: dt.datetime,
    meta: dict[str, Any] | None = None,
) -> RefreshToken:
    """Stage a new ``issued`` row. The caller owns the commit."""
    record = RefreshToken(
        user_id=user_id,
        token_hash=token_hash,
        expires_at=expires_at,
        used=False,
        meta=dict(meta or {}),
    )
    db.add(record)
    db.flush()
    return record


def mark_used(db: Session, record_id: UUID) -> bool:
    """Flip ``used`` to true if and only if it is still false.

    Returns True for the single caller that won the flip. The caller owns the
    commit, so the flip and whatever is staged with it land together.
    """
    result = db.execute(
        update(RefreshToken)
        .where(RefreshToken.id == record_id, RefreshToken.used.is_(False))
        .values(used=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def remove_record(db: Session, record_id: UUID) -> bool:
    result = db.execute(
        delete(RefreshToken)
        .where(RefreshToken.id == record_id)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount > 0


def revoke_one(db: Session, token_hash: str) -> bool:
    result = db.execute(
        delete(RefreshToken)
        .where(RefreshToken.token_hash == token_hash)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount > 0


def revoke_all(db: Session, user_id: UUID) -> int:
    result = db.execute(
        delete(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    logger.info("Refresh tokens revoked for user %s: %d", user_id, result.rowcount)
    return result.rowcount


def prune_expired(db: Session, user_id: UUID, now: dt.datetime | None = None) -> int:
    """Delete the user's elapsed rows. Staged only; the caller commits."""
    result = db.execute(
        delete(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.expires_at <= (now or utcnow()))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info("Expired refresh tokens pruned for user %s: %d", user_id, result.rowcount)
    return result.rowcount


def list_records(db: Session, user_id: UUID) -> list[RefreshToken]:
    stmt = select(RefreshToken).where(RefreshToken.user_id == user_id).order_by(RefreshToken.created_at.asc())
    return list(db.execute(stmt).scalars())
