"""Custom exceptions for application-specific error handling."""

from __future__ import annotations

from typing import Optional, Dict, Any


class LetschatException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConflictError(LetschatException):
    """Raised when a request conflicts with current state."""

    def __init__(self, message: str = "conflict", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFLICT", details=details, status_code=409)


class RateLimitExceeded(LetschatException):
    """Raised when a client exceeds rate limits."""

    def __init__(self, *, retry_after: int, limit: int, window_seconds: int):
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Window": str(window_seconds),
        }
        super().__init__(
            "rate_limit_exceeded",
            error_code="RATE_LIMIT",
            details={"retry_after": retry_after, "limit": limit, "window_seconds": window_seconds},
            status_code=429,
            headers=headers,
        )


# ===== CONFIGURATION EXCEPTIONS =====


class ConfigurationError(LetschatException):
    """Raised when configuration is invalid. Fatal at startup."""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {"setting": setting} if setting else {}
        super().__init__(message, error_code="INVALID_CONFIG", details=details, status_code=500)


# ===== DATABASE EXCEPTIONS =====


class DatabaseConnectionError(LetschatException):
    """Raised when the session store cannot be reached. Clients may retry."""

    def __init__(self, message: str = "service_unavailable", *, retry_after: int = 5):
        super().__init__(
            message,
            error_code="DB_UNAVAILABLE",
            details={"retry_after": retry_after},
            status_code=503,
            headers={"Retry-After": str(retry_after)},
        )


# ===== AUTHENTICATION EXCEPTIONS =====


class AuthenticationException(LetschatException):
    """Base exception for authentication errors."""

    def __init__(
        self,
        message: str = "not_authenticated",
        *,
        error_code: str = "NOT_AUTHENTICATED",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 401,
    ):
        super().__init__(message, error_code=error_code, details=details, status_code=status_code)


class InvalidCredentialsError(AuthenticationException):
    """Raised for an unknown email or a wrong password. Both look the same."""

    def __init__(self, message: str = "invalid_credentials"):
        super().__init__(message, error_code="INVALID_CREDENTIALS")


class InvalidTokenError(AuthenticationException):
    """Raised when a token is malformed, forged or of the wrong type."""

    def __init__(self, message: str = "invalid_token"):
        super().__init__(message, error_code="INVALID_TOKEN")


class ExpiredTokenError(AuthenticationException):
    """Raised when token has expired."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, error_code="EXPIRED_TOKEN")


class RefreshTokenNotFoundError(InvalidTokenError):
    """Raised when no stored record matches a presented refresh secret."""

    def __init__(self, message: str = "refresh_token_not_found"):
        super().__init__(message)


class ReuseDetectedError(AuthenticationException):
    """Raised when an already rotated refresh secret is presented again."""

    def __init__(self, message: str = "refresh_token_reuse_detected", *, revoked: int = 0):
        self.revoked = revoked
        super().__init__(message, error_code="REFRESH_TOKEN_REUSE")


# ===== STATE EXCEPTIONS =====


class InvalidStateTransition(LetschatException):
    """Raised when a refresh token is asked to make an illegal state move."""

    def __init__(self, current: Any, target: Any):
        self.current = current
        self.target = target
        super().__init__(
            f"refresh token cannot move from {current.value} to {target.value}",
            error_code="INVALID_STATE_TRANSITION",
            details={"current": current.value, "target": target.value},
            status_code=500,
        )
