"""Helpers for validating and inspecting decoded code values."""

from __future__ import annotations

from urllib.parse import urlparse

MAX_CODE_LENGTH = 2048
URL_SCHEMES = ("http", "https")


def is_valid_code(code: str | None) -> bool:
    """Whether ``code`` can be stored as a document's cached code.

    Codes must be non-empty, printable and reasonably short so they fit in an extended attribute.
    """
    if not code or len(code) > MAX_CODE_LENGTH:
        return False
    return code.isprintable()


def looks_like_url(value: str | None) -> bool:
    """Return True for absolute http(s) URLs."""
    if not value:
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return parsed.scheme.lower() in URL_SCHEMES and bool(parsed.netloc)
