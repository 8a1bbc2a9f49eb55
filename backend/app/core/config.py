"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.exceptions import ConfigurationError

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    APP_NAME: str = "Letschat Auth"
    ENV: str = "development"

    DATABASE_URL: str = "sqlite+pysqlite:///./letschat.db"
    DB_POOL_TIMEOUT_SECONDS: int = 10
    DB_STATEMENT_TIMEOUT_MS: int = 10_000

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_SECONDS: int = 7 * 24 * 60 * 60
    REFRESH_TOKEN_BYTES: int = 64

    COOKIE_NAME: str = "jwt"
    REFRESH_COOKIE_NAME: str = "refresh_token"
    REFRESH_COOKIE_PATH: str = "/api/auth"
    COOKIE_SAMESITE: str = "strict"
    LOG_LEVEL: str = "INFO"

    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = ""
    SMTP_TLS: bool = True

    CLIENT_URL: str = "http://localhost:5173"
    CORS_ORIGINS: str = "http://localhost:5173"
    ALLOWED_HOSTS: str = "*"

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_SIGNUP_MAX_REQUESTS: int = 3
    RATE_LIMIT_SIGNUP_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_LOGIN_MAX_REQUESTS: int = 10
    RATE_LIMIT_LOGIN_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_REFRESH_MAX_REQUESTS: int = 20
    RATE_LIMIT_REFRESH_WINDOW_SECONDS: int = 5 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 120
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def allowed_hosts(self) -> list[str]:
        return [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()] or ["*"]

    @property
    def is_production(self) -> bool:
        return self.ENV.strip().lower() in {"prod", "production"}

    def validate_runtime_security(self) -> None:
        if not self.JWT_SECRET.strip():
            raise ConfigurationError("JWT_SECRET is not set", setting="JWT_SECRET")
        if self.is_production and self.COOKIE_SAMESITE.lower() == "none":
            raise ConfigurationError("COOKIE_SAMESITE=none is not allowed in production", setting="COOKIE_SAMESITE")


settings = Settings()
