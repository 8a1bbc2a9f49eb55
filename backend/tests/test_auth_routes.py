from __future__ import annotations

import datetime as dt
from uuid import uuid4

from sqlalchemy.exc import OperationalError

from app.core.security import create_access_token, hash_token
from app.models.user import User
from app.services import session_store


def _cookie_header(**cookies: str) -> dict[str, str]:
    return {"Cookie": "; ".join(f"{name}={value}" for name, value in cookies.items())}


def _set_cookie_lines(response) -> list[str]:
    return response.headers.get_list("set-cookie")


def _signup(client, email: str = "a@b.com", password: str = "secret1", **extra):
    response = client.post("/api/auth/signup", json={"email": email, "password": password, **extra})
    client.cookies.clear()
    return response


def _refresh(client, secret: str | None):
    headers = _cookie_header(refresh_token=secret) if secret else {}
    response = client.post("/api/auth/refresh", headers=headers)
    client.cookies.clear()
    return response


def test_signup_sets_both_cookies_and_returns_user(client) -> None:
    response = _signup(client, full_name="Ada Lovelace")

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "user_created"
    assert body["user"]["email"] == "a@b.com"
    assert body["user"]["full_name"] == "Ada Lovelace"
    assert "password_hash" not in body["user"]

    assert response.cookies.get("jwt")
    assert response.cookies.get("refresh_token")
    lines = _set_cookie_lines(response)
    access_line = next(line for line in lines if line.startswith("jwt="))
    refresh_line = next(line for line in lines if line.startswith("refresh_token="))
    assert "HttpOnly" in access_line and "Path=/" in access_line
    assert "HttpOnly" in refresh_line and "Path=/api/auth" in refresh_line
    assert "samesite=strict" in refresh_line.lower()
    assert response.headers["Cache-Control"] == "no-store"


def test_signup_derives_name_and_rejects_duplicates(client) -> None:
    first = _signup(client)
    duplicate = _signup(client, email="A@B.com")

    assert first.json()["user"]["full_name"] == "User A"
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "email_exists"


def test_signup_validates_payload(client) -> None:
    assert _signup(client, password="short").status_code == 422
    assert _signup(client, email="not-an-email").status_code == 422


def test_signup_succeeds_when_welcome_email_fails(client, monkeypatch) -> None:
    from app.services import email as email_service

    def broken_send(*args, **kwargs):
        raise RuntimeError("smtp down")

    monkeypatch.setattr(email_service, "send_email", broken_send)

    response = _signup(client)

    assert response.status_code == 201


def test_refresh_rotates_and_replay_revokes_everything(client, db_session) -> None:
    signup = _signup(client)
    original = signup.cookies["refresh_token"]

    refreshed = _refresh(client, original)
    assert refreshed.status_code == 200
    assert refreshed.json() == {"message": "token_refreshed"}
    rotated = refreshed.cookies["refresh_token"]
    assert rotated != original
    assert refreshed.cookies.get("jwt")
    assert session_store.find_record_by_hash(db_session, hash_token(original)).used is True

    replay = _refresh(client, original)
    assert replay.status_code == 401
    assert replay.json()["error_code"] == "REFRESH_TOKEN_REUSE"
    cleared = _set_cookie_lines(replay)
    assert any(line.startswith('jwt=""') or line.startswith("jwt=;") for line in cleared)
    assert any("refresh_token=" in line and "Max-Age=0" in line for line in cleared)

    after_revocation = _refresh(client, rotated)
    assert after_revocation.status_code == 401
    assert after_revocation.json()["error_code"] == "INVALID_TOKEN"

    user = db_session.query(User).filter(User.email == "a@b.com").one()
    assert session_store.list_records(db_session, user.id) == []


def test_refresh_without_cookie_is_rejected_and_clears_cookies(client) -> None:
    response = _refresh(client, None)

    assert response.status_code == 401
    assert response.json()["error_code"] == "INVALID_TOKEN"
    assert response.json()["message"] == "invalid_refresh_token"
    assert len(_set_cookie_lines(response)) == 2


def test_refresh_returns_503_when_store_is_down(client, monkeypatch) -> None:
    from app.routers import auth as auth_router

    def unavailable(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(auth_router, "rotate_refresh_token", unavailable)

    response = _refresh(client, "anything")

    assert response.status_code == 503
    assert response.json()["error_code"] == "DB_UNAVAILABLE"
    assert response.headers["Retry-After"]


def test_login_wrong_password_and_unknown_user_look_identical(client) -> None:
    _signup(client)

    wrong_password = client.post("/api/auth/login", json={"email": "a@b.com", "password": "nope-nope"})
    unknown_user = client.post("/api/auth/login", json={"email": "ghost@b.com", "password": "secret1"})

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json()
    assert not wrong_password.cookies.get("refresh_token")


def test_login_opens_an_additional_session(client, db_session) -> None:
    _signup(client)

    response = client.post("/api/auth/login", json={"email": "A@b.com", "password": "secret1"})
    client.cookies.clear()

    assert response.status_code == 200
    assert response.json()["message"] == "logged_in"
    user = db_session.query(User).filter(User.email == "a@b.com").one()
    assert len(session_store.list_records(db_session, user.id)) == 2


def test_logout_without_cookie_still_succeeds(client) -> None:
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"message": "logged_out"}
    assert len(_set_cookie_lines(response)) == 2


def test_logout_revokes_only_the_presented_session(client, db_session) -> None:
    phone = _signup(client).cookies["refresh_token"]
    laptop = client.post("/api/auth/login", json={"email": "a@b.com", "password": "secret1"}).cookies["refresh_token"]
    client.cookies.clear()

    response = client.post("/api/auth/logout", headers=_cookie_header(refresh_token=phone))
    client.cookies.clear()

    assert response.status_code == 200
    assert _refresh(client, phone).status_code == 401
    assert _refresh(client, laptop).status_code == 200


def test_check_accepts_cookie_or_bearer_token(client) -> None:
    signup = _signup(client)
    access = signup.cookies["jwt"]
    user_id = signup.json()["user"]["id"]

    by_cookie = client.get("/api/auth/check", headers=_cookie_header(jwt=access))
    by_header = client.get("/api/auth/check", headers={"Authorization": f"Bearer {access}"})

    assert by_cookie.json() == {"message": "authenticated", "user_id": user_id}
    assert by_header.status_code == 200


def test_update_profile_requires_access_token(client) -> None:
    signup = _signup(client)
    headers = {"Authorization": f"Bearer {signup.cookies['jwt']}"}

    updated = client.put(
        "/api/auth/update-profile",
        json={"full_name": "Ada", "profile_pic": "https://cdn.example.com/ada.png"},
        headers=headers,
    )
    rejected = client.put("/api/auth/update-profile", json={"profile_pic": "javascript:alert(1)"}, headers=headers)
    anonymous = client.put("/api/auth/update-profile", json={"full_name": "Eve"})

    assert updated.status_code == 200
    assert updated.json()["full_name"] == "Ada"
    assert updated.json()["profile_pic"] == "https://cdn.example.com/ada.png"
    assert rejected.status_code == 422
    assert anonymous.status_code == 401


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_access_failures_share_one_response(client) -> None:
    _signup(client)
    expired = create_access_token(uuid4(), expires_delta=dt.timedelta(seconds=-5))
    unknown_subject = create_access_token(uuid4())

    responses = [
        client.get("/api/auth/check"),
        client.get("/api/auth/check", headers={"Authorization": "Bearer garbage"}),
        client.get("/api/auth/check", headers={"Authorization": f"Bearer {expired}"}),
        client.get("/api/auth/check", headers=_cookie_header(jwt=expired)),
        client.put(
            "/api/auth/update-profile",
            json={"full_name": "Eve"},
            headers={"Authorization": f"Bearer {unknown_subject}"},
        ),
    ]

    assert {response.status_code for response in responses} == {401}
    bodies = [response.json() for response in responses]
    assert all(body == bodies[0] for body in bodies)
    assert bodies[0]["error_code"] == "NOT_AUTHENTICATED"
    assert bodies[0]["message"] == "not_authenticated"


def test_signup_leaves_no_account_when_session_cannot_be_stored(client, db_session, monkeypatch) -> None:
    from app.services import refresh_tokens

    def unavailable(*args, **kwargs):
        raise OperationalError("INSERT INTO refresh_tokens", {}, Exception("disk I/O error"))

    monkeypatch.setattr(refresh_tokens, "_stage_child", unavailable)
    failed = _signup(client)
    monkeypatch.undo()
    retried = _signup(client)

    assert failed.status_code == 503
    assert retried.status_code == 201
    assert db_session.query(User).filter(User.email == "a@b.com").count() == 1
