"""Common FastAPI dependencies for authentication."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.cookies import read_access_token
from app.core.exceptions import AuthenticationException
from app.core.security import verify_access_token
from app.db.session import get_db
from app.models.user import User

logger = logging.getLogger(__name__)


def get_token_subject(request: Request) -> str:
    """Stateless check: the access token is well formed, signed and unexpired.

    Every failure surfaces as the same ``not_authenticated`` error. The
    specific reason only goes to the log.
    """
    token = read_access_token(request)
    if not token:
        logger.info("Access rejected: no access token")
        raise AuthenticationException("not_authenticated")
    try:
        return verify_access_token(token)["user_id"]
    except AuthenticationException as exc:
        logger.info("Access rejected: %s (%s)", exc.message, exc.error_code)
        raise AuthenticationException("not_authenticated") from exc


def get_current_user(user_id: str = Depends(get_token_subject), db: Session = Depends(get_db)) -> User:
    try:
        parsed_user_id = UUID(user_id)
    except ValueError:
        logger.warning("Access rejected: malformed subject %r", user_id)
        raise AuthenticationException("not_authenticated")

    user = db.get(User, parsed_user_id)
    if not user:
        logger.warning("Access rejected: subject has no user (%s)", user_id)
        raise AuthenticationException("not_authenticated")
    return user
