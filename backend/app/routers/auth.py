"""Authentication endpoints (signup, login, refresh, logout, check, profile)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.cookies import clear_auth_cookies, client_meta, read_refresh_secret, set_auth_cookies
from app.core.deps import get_current_user, get_token_subject
from app.core.exceptions import AuthenticationException, InvalidTokenError, ReuseDetectedError
from app.core.rate_limit import rate_limit
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import AuthResponse, CheckResponse, MessageResponse
from app.schemas.user import ProfileUpdate, UserCreate, UserLogin, UserOut
from app.services.auth import authenticate_user, create_user, update_profile
from app.services.email import send_welcome_email
from app.services.refresh_tokens import issue_auth_tokens, revoke_presented_token, rotate_refresh_token

router = APIRouter()
logger = logging.getLogger(__name__)


def _rejected_refresh(exc: AuthenticationException) -> JSONResponse:
    response = JSONResponse(status_code=exc.status_code, content=exc.to_dict())
    clear_auth_cookies(response)
    return response


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("signup"))],
)
def signup(
    payload: UserCreate,
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> AuthResponse:
    user = create_user(db, payload)
    tokens = issue_auth_tokens(db, user, client_meta(request))
    set_auth_cookies(response, access_token=tokens.access_token, refresh_token=tokens.refresh_token)
    background_tasks.add_task(send_welcome_email, user.email, user.full_name)
    return AuthResponse(message="user_created", user=UserOut.model_validate(user))


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(rate_limit("login"))])
def login(payload: UserLogin, request: Request, response: Response, db: Session = Depends(get_db)) -> AuthResponse:
    user = authenticate_user(db, payload.email, payload.password)
    tokens = issue_auth_tokens(db, user, client_meta(request))
    set_auth_cookies(response, access_token=tokens.access_token, refresh_token=tokens.refresh_token)
    return AuthResponse(message="logged_in", user=UserOut.model_validate(user))


@router.post("/refresh", response_model=MessageResponse, dependencies=[Depends(rate_limit("refresh"))])
def refresh_session(request: Request, response: Response, db: Session = Depends(get_db)):
    try:
        tokens = rotate_refresh_token(db, read_refresh_secret(request), client_meta(request))
    except ReuseDetectedError as exc:
        return _rejected_refresh(exc)
    except AuthenticationException as exc:
        # Expired, unknown and malformed secrets all look the same to the client.
        logger.info("Refresh rejected: %s", exc.message)
        return _rejected_refresh(InvalidTokenError("invalid_refresh_token"))

    set_auth_cookies(response, access_token=tokens.access_token, refresh_token=tokens.refresh_token)
    return MessageResponse(message="token_refreshed")


@router.post("/logout", response_model=MessageResponse, dependencies=[Depends(rate_limit())])
def logout(request: Request, response: Response, db: Session = Depends(get_db)) -> MessageResponse:
    revoke_presented_token(db, read_refresh_secret(request))
    clear_auth_cookies(response)
    return MessageResponse(message="logged_out")


@router.get("/check", response_model=CheckResponse)
def check(user_id: str = Depends(get_token_subject)) -> CheckResponse:
    return CheckResponse(message="authenticated", user_id=user_id)


@router.put("/update-profile", response_model=UserOut, dependencies=[Depends(rate_limit())])
def update_profile_route(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserOut:
    return UserOut.model_validate(update_profile(db, current_user, payload))
