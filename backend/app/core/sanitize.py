"""Input sanitization helpers for request payloads and email content."""

from __future__ import annotations

import re
import unicodedata
from urllib.parse import urlparse

_WHITESPACE_RE = re.compile(r"\s+")
_BLOCKED_URL_SCHEMES = ("javascript:", "data:", "vbscript:")
MAX_DISPLAY_NAME_LEN = 100


def _strip_control_chars(value: str) -> str:
    return "".join(ch for ch in value if unicodedata.category(ch) != "Cc")


def clean_single_line(value: str | None) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    value = _strip_control_chars(value.replace("\r", " ").replace("\n", " "))
    return _WHITESPACE_RE.sub(" ", value.strip())


def clean_email(value: str | None) -> str:
    return clean_single_line(value).lower()


def clean_display_name(value: str | None) -> str:
    return clean_single_line(value)[:MAX_DISPLAY_NAME_LEN]


def clean_url(value: str | None) -> str | None:
    """Return an http(s) or site-relative URL, or None when it is unsafe or malformed."""
    cleaned = clean_single_line(value)
    if not cleaned:
        return None
    lowered = cleaned.lower()
    if lowered.startswith(_BLOCKED_URL_SCHEMES):
        return None
    if lowered.startswith("/") and not lowered.startswith("//"):
        return cleaned
    if lowered.startswith(("http://", "https://")):
        parsed = urlparse(cleaned)
        return cleaned if parsed.netloc else None
    return None
