"""Manually assigning a code to a document."""

from __future__ import annotations

import logging
from pathlib import Path

from qrscan.config import DEFAULT_EXTENSION
from qrscan.scan.interfaces import AttributeStore
from qrscan.utils.text import is_valid_code

LOGGER = logging.getLogger(__name__)


def tag_document(
    path: Path,
    code: str,
    store: AttributeStore,
    *,
    page: int = 1,
    extension: str = DEFAULT_EXTENSION,
) -> None:
    """Store ``code`` as the cached code of ``path`` without scanning it.

    Raises ``ValueError`` for an invalid code, page or document path and
    ``CacheWriteError`` if the store rejects the write.
    """
    path = Path(path)
    if not is_valid_code(code):
        raise ValueError("Invalid characters in code.")
    if page < 1:
        raise ValueError(f"page must be a positive integer, got {page!r}")
    if not path.is_file():
        raise ValueError(f"Document not found: {path}")
    if path.suffix.lower() != extension.lower():
        raise ValueError(f"Not a {extension} document: {path}")

    store.write(path.absolute(), page, code)
    LOGGER.info("Tagged %s with code %s (page %s).", path.name, code, page)
