"""Shared enum values used by the database models and services."""

from __future__ import annotations

import enum


class RefreshTokenState(str, enum.Enum):
    issued = "issued"
    rotated = "rotated"
    expired = "expired"
    revoked = "revoked"


class EmailKind(str, enum.Enum):
    welcome = "welcome"
