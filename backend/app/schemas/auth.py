"""Auth-related response schemas."""

from __future__ import annotations

from pydantic import BaseModel

from app.schemas.user import UserOut


class MessageResponse(BaseModel):
    message: str


class AuthResponse(BaseModel):
    message: str
    user: UserOut


class CheckResponse(BaseModel):
    message: str = "authenticated"
    user_id: str
