"""Service helpers for user registration, login and profile updates."""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, InvalidCredentialsError
from app.core.security import dummy_verify_password, hash_password, verify_password
from app.models.user import User
from app.schemas.user import ProfileUpdate, UserCreate

logger = logging.getLogger(__name__)


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.lower()).first()


def build_default_name_from_email(email: str) -> str:
    local_part = email.split("@", 1)[0].strip()
    cleaned = re.sub(r"[^a-zA-Z0-9]+", " ", local_part).strip()
    if not cleaned:
        return "New User"

    formatted = " ".join(piece.capitalize() for piece in cleaned.split() if piece)
    if not formatted:
        return "New User"
    if len(formatted) == 1:
        return f"User {formatted.upper()}"
    return formatted[:80]


def create_user(db: Session, data: UserCreate) -> User:
    """Stage a new user. ``issue_auth_tokens`` commits it together with the first session."""
    email = data.email.lower()
    if find_user_by_email(db, email):
        raise ConflictError("email_exists")

    user = User(
        email=email,
        full_name=data.full_name or build_default_name_from_email(email),
        password_hash=hash_password(data.password),
        profile_pic="",
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address.
        db.rollback()
        raise ConflictError("email_exists")
    logger.info("User staged: %s", user.email)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    """Return the user owning ``email`` if ``password`` matches.

    Unknown addresses still pay for one hash verification and raise the same
    error as a wrong password, so neither timing nor response shape reveals
    which accounts exist.
    """
    user = find_user_by_email(db, email)
    if not user:
        dummy_verify_password()
        logger.warning("Login failed: user not found (%s)", email)
        raise InvalidCredentialsError()
    if not verify_password(password, user.password_hash):
        logger.warning("Login failed: invalid password (%s)", email)
        raise InvalidCredentialsError()
    logger.info("User authenticated: %s", user.email)
    return user


def update_profile(db: Session, user: User, data: ProfileUpdate) -> User:
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return user
    for field, value in changes.items():
        setattr(user, field, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Profile updated: %s (%s)", user.email, ", ".join(sorted(changes)))
    return user
