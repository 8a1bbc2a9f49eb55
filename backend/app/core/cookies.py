"""Cookie transport for the access token and the refresh secret."""

from __future__ import annotations

from fastapi import Request, Response

from app.core.config import settings


def _is_secure() -> bool:
    return settings.ENV != "development"


def set_auth_cookies(response: Response, *, access_token: str, refresh_token: str) -> None:
    samesite = settings.COOKIE_SAMESITE.lower()
    response.set_cookie(
        settings.COOKIE_NAME,
        access_token,
        httponly=True,
        samesite=samesite,
        secure=_is_secure(),
        path="/",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        refresh_token,
        httponly=True,
        samesite=samesite,
        secure=_is_secure(),
        path=settings.REFRESH_COOKIE_PATH,
        max_age=settings.REFRESH_TOKEN_EXPIRE_SECONDS,
    )


def clear_auth_cookies(response: Response) -> None:
    samesite = settings.COOKIE_SAMESITE.lower()
    response.delete_cookie(
        settings.COOKIE_NAME,
        path="/",
        secure=_is_secure(),
        httponly=True,
        samesite=samesite,
    )
    response.delete_cookie(
        settings.REFRESH_COOKIE_NAME,
        path=settings.REFRESH_COOKIE_PATH,
        secure=_is_secure(),
        httponly=True,
        samesite=samesite,
    )


def read_refresh_secret(request: Request) -> str | None:
    value = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not value:
        return None
    return value.strip() or None


def _extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    return cleaned or None


def read_access_token(request: Request) -> str | None:
    return _extract_bearer_token(request) or request.cookies.get(settings.COOKIE_NAME)


def client_meta(request: Request) -> dict[str, str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else "unknown"
    return {"ip": ip, "ua": request.headers.get("user-agent", "")}
