"""
Small helpers shared across layers: time, formatting, sanitizing.
"""
import hashlib
import re
from datetime import datetime, timezone
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")

PASTE_ID_MIN_LENGTH = 8
PASTE_ID_MAX_LENGTH = 20


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def format_bytes(size: int) -> str:
    """Human-readable byte size, e.g. ``1.5 MB``."""
    units = ["B", "KB", "MB", "GB"]
    if size <= 0:
        return "0 B"
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(size / (1024 ** i), 2)
    if value == int(value):
        value = int(value)
    return f"{value} {units[i]}"


def format_duration(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds} seconds"
    if seconds < 3600:
        return f"{seconds // 60} minutes"
    if seconds < 86400:
        return f"{seconds // 3600} hours"
    return f"{seconds // 86400} days"


def sanitize_user_input(value: str) -> str:
    """Strip control characters and surrounding whitespace."""
    return _CONTROL_CHARS.sub("", value.strip())


def sanitize_paste_id(paste_id: Optional[str]) -> Optional[str]:
    """
    Normalize a path-derived paste ID.

    Non-alphanumeric characters are removed; anything outside 8-20 characters
    afterwards is rejected (returns None) so it never reaches storage.
    """
    if not paste_id:
        return None
    cleaned = _NON_ALNUM.sub("", paste_id)
    if not PASTE_ID_MIN_LENGTH <= len(cleaned) <= PASTE_ID_MAX_LENGTH:
        return None
    return cleaned


def build_share_url(base_url: str, paste_id: str) -> str:
    return f"{base_url.rstrip('/')}/s/{paste_id}"


def short_hash(value: str, length: int = 16) -> str:
    """Truncated SHA-256 hex digest, safe to log."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]


def utf8_size(value: str) -> int:
    return len(value.encode("utf-8"))
