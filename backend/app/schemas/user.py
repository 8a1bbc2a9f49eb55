"""Pydantic schemas for user payloads and responses."""

from __future__ import annotations

import datetime as dt
import unicodedata
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.sanitize import clean_display_name, clean_email, clean_url

MIN_PASSWORD_LEN = 6
MAX_PASSWORD_LEN = 128
MAX_NAME_LEN = 100


def _validate_password(value: str) -> str:
    if any(unicodedata.category(ch) == "Cc" for ch in value):
        raise ValueError("password_contains_control_chars")
    if not value.strip():
        raise ValueError("password_required")
    return value


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LEN, max_length=MAX_PASSWORD_LEN)
    full_name: str | None = Field(default=None, max_length=MAX_NAME_LEN)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return clean_email(value)

    @field_validator("full_name", mode="before")
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return clean_display_name(value) or None

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _validate_password(value)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_LEN)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return clean_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _validate_password(value)


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=MAX_NAME_LEN)
    profile_pic: str | None = Field(default=None, max_length=1024)

    @field_validator("full_name", mode="before")
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return clean_display_name(value)

    @field_validator("profile_pic", mode="before")
    @classmethod
    def normalize_profile_pic(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return value
        cleaned = clean_url(value)
        if cleaned is None:
            raise ValueError("invalid_profile_pic_url")
        return cleaned


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: EmailStr
    full_name: str
    profile_pic: str
    created_at: dt.datetime
