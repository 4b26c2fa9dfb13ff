"""Data validation helpers.

Functions:
- validate_email(email) -> bool
- validate_url(url, host=None) -> bool: http(s) URL, optionally on a given host
- parse_tags(raw) -> list[str]: comma-separated tags, blanks dropped
- check_length(value, field, min_len, max_len) -> str | None: problem message
- validate_uid(uid) -> bool: usable as a chat room id part
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")

# "_" joins the two UIDs of a chat room; "/" separates storage path segments
UID_PATTERN = re.compile(r"^[^\s_/]{1,128}$")


def validate_email(email: str) -> bool:
    """Validate email format.

    Args:
        email: Email to validate

    Returns:
        True if valid, False otherwise
    """
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email))


def validate_url(url: str, host: str | None = None) -> bool:
    """Validate an http(s) URL.

    Args:
        url: URL to validate
        host: If given, the URL's host must be this domain or a subdomain
            of it (e.g. "linkedin.com" accepts "www.linkedin.com")

    Returns:
        True if valid, False otherwise
    """
    if not url:
        return False
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    if host:
        hostname = (parsed.hostname or "").lower()
        return hostname == host or hostname.endswith("." + host)
    return True


def parse_tags(raw: str | list[str] | None) -> list[str]:
    """Split a comma-separated string into trimmed, non-empty items.

    Examples:
        "React, NodeJS," -> ["React", "NodeJS"]
        ["a", " ", "b "] -> ["a", "b"]
    """
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else raw
    return [item.strip() for item in items if item and item.strip()]


def check_length(
    value: str | None, field: str, min_len: int = 0, max_len: int | None = None
) -> str | None:
    """Return a problem message if value's length is out of range."""
    length = len(value or "")
    if length < min_len:
        return f"{field} must be at least {min_len} characters"
    if max_len is not None and length > max_len:
        return f"{field} must be at most {max_len} characters"
    return None


def validate_uid(uid: str | None) -> bool:
    """Whether uid can key a profile: 1-128 chars, no whitespace, "_" or "/"."""
    if not uid:
        return False
    return bool(UID_PATTERN.match(uid))
