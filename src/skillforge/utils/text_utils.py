"""Text processing utilities.

Common text manipulation functions used across modules.
"""

import re

# Patterns for removing thinking/reasoning blocks from LLM output
THINK_PATTERNS = [
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<thinking>.*?</thinking>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
]


def strip_think(text: str) -> str:
    """Remove thinking/reasoning blocks from LLM output.

    Args:
        text: Raw LLM output text

    Returns:
        Cleaned text without thinking artifacts
    """
    result = text
    for pattern in THINK_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


def truncate(text: str | None, limit: int) -> str:
    """First `limit` characters of text (empty string for None)."""
    return (text or "")[:limit]


def email_local_part(email: str | None) -> str:
    """Part of an email address before the '@'."""
    if not email:
        return ""
    return email.split("@", 1)[0]


def safe_filename(name: str) -> str:
    """Reduce a client-supplied filename to a safe basename.

    Drops directory components and replaces characters outside
    [A-Za-z0-9._-] with underscores.
    """
    base = re.split(r"[\\/]", name or "")[-1]
    cleaned = re.sub(r"[^A-Za-z0-9._-]", "_", base).lstrip(".")
    return cleaned or "file"
