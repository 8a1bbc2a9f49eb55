"""In-memory rate limiting dependency."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Deque

from fastapi import Request, Response

from app.core.config import settings
from app.core.exceptions import RateLimitExceeded


@dataclass(frozen=True)
class ScopePolicy:
    limit: int
    window_seconds: int
    key_by_email: bool = False
    production_only: bool = False


class SlidingWindowLimiter:
    def __init__(self) -> None:
        self._store: dict[str, Deque[float]] = {}
        self._lock = Lock()

    def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int, int]:
        if limit <= 0:
            return True, limit, 0
        now = time.time()
        cutoff = now - window_seconds
        with self._lock:
            queue = self._store.get(key)
            if queue is None:
                queue = deque()
                self._store[key] = queue
            while queue and queue[0] <= cutoff:
                queue.popleft()
            if len(queue) >= limit:
                retry_after = max(int(queue[0] + window_seconds - now), 1)
                return False, 0, retry_after
            queue.append(now)
            remaining = max(limit - len(queue), 0)
            return True, remaining, 0

    def reset(self) -> None:
        with self._lock:
            self._store.clear()


_limiter = SlidingWindowLimiter()


def _scope_policy(scope: str) -> ScopePolicy:
    if scope == "signup":
        return ScopePolicy(
            settings.RATE_LIMIT_SIGNUP_MAX_REQUESTS,
            settings.RATE_LIMIT_SIGNUP_WINDOW_SECONDS,
            key_by_email=True,
            production_only=True,
        )
    if scope == "login":
        return ScopePolicy(
            settings.RATE_LIMIT_LOGIN_MAX_REQUESTS,
            settings.RATE_LIMIT_LOGIN_WINDOW_SECONDS,
            key_by_email=True,
            production_only=True,
        )
    if scope == "refresh":
        return ScopePolicy(settings.RATE_LIMIT_REFRESH_MAX_REQUESTS, settings.RATE_LIMIT_REFRESH_WINDOW_SECONDS)
    return ScopePolicy(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def _body_email(request: Request) -> str:
    try:
        payload = await request.json()
    except ValueError:
        return ""
    if not isinstance(payload, dict):
        return ""
    email = payload.get("email")
    return email.strip().lower() if isinstance(email, str) else ""


async def _client_key(request: Request, scope: str, policy: ScopePolicy) -> str:
    ip = _client_ip(request)
    if policy.key_by_email:
        return f"{scope}:{await _body_email(request)}-{ip}"
    return f"{scope}:{ip}"


def rate_limit(scope: str = "default"):
    async def _dependency(request: Request, response: Response) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        policy = _scope_policy(scope)
        if policy.production_only and not settings.is_production:
            return
        key = await _client_key(request, scope, policy)
        ok, remaining, retry_after = _limiter.hit(
            key,
            limit=policy.limit,
            window_seconds=policy.window_seconds,
        )
        response.headers["X-RateLimit-Limit"] = str(policy.limit)
        response.headers["X-RateLimit-Remaining"] = str(max(remaining, 0))
        response.headers["X-RateLimit-Window"] = str(policy.window_seconds)
        if not ok:
            raise RateLimitExceeded(
                retry_after=retry_after,
                limit=policy.limit,
                window_seconds=policy.window_seconds,
            )

    return _dependency
