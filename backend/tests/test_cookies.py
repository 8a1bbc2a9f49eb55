from __future__ import annotations

from fastapi import Response
from starlette.requests import Request

from app.core.config import settings
from app.core.cookies import (
    clear_auth_cookies,
    client_meta,
    read_access_token,
    read_refresh_secret,
    set_auth_cookies,
)


def _request(headers: dict[str, str] | None = None, client: tuple[str, int] = ("203.0.113.7", 5000)) -> Request:
    raw_headers = [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers, "client": client})


def test_auth_cookies_are_http_only_and_scoped() -> None:
    response = Response()

    set_auth_cookies(response, access_token="access", refresh_token="refresh")

    lines = [value.decode() for key, value in response.raw_headers if key == b"set-cookie"]
    access_line, refresh_line = lines
    assert access_line.startswith("jwt=access")
    assert "Path=/;" in access_line or access_line.endswith("Path=/")
    assert f"Max-Age={settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60}" in access_line
    assert refresh_line.startswith("refresh_token=refresh")
    assert "Path=/api/auth" in refresh_line
    assert f"Max-Age={settings.REFRESH_TOKEN_EXPIRE_SECONDS}" in refresh_line
    assert all("HttpOnly" in line for line in lines)
    # Plain http is allowed while developing.
    assert all("Secure" not in line for line in lines)


def test_cookies_are_secure_outside_development(monkeypatch) -> None:
    monkeypatch.setattr(settings, "ENV", "production")
    response = Response()

    set_auth_cookies(response, access_token="access", refresh_token="refresh")
    clear_auth_cookies(response)

    lines = [value.decode() for key, value in response.raw_headers if key == b"set-cookie"]
    assert len(lines) == 4
    assert all("Secure" in line for line in lines)


def test_clear_auth_cookies_matches_paths() -> None:
    response = Response()

    clear_auth_cookies(response)

    lines = [value.decode() for key, value in response.raw_headers if key == b"set-cookie"]
    assert any(line.startswith("jwt=") and "Max-Age=0" in line for line in lines)
    assert any(line.startswith("refresh_token=") and "Path=/api/auth" in line for line in lines)


def test_readers_prefer_bearer_token() -> None:
    request = _request({"Authorization": "Bearer from-header", "Cookie": "jwt=from-cookie"})

    assert read_access_token(request) == "from-header"
    assert read_access_token(_request({"Cookie": "jwt=from-cookie"})) == "from-cookie"
    assert read_access_token(_request({"Authorization": "Basic abc"})) is None
    assert read_refresh_secret(_request({"Cookie": "refresh_token=abc"})) == "abc"
    assert read_refresh_secret(_request()) is None


def test_client_meta_uses_forwarded_for_first() -> None:
    forwarded = _request({"X-Forwarded-For": "198.51.100.1, 10.0.0.1", "User-Agent": "pytest"})

    assert client_meta(forwarded) == {"ip": "198.51.100.1", "ua": "pytest"}
    assert client_meta(_request()) == {"ip": "203.0.113.7", "ua": ""}
