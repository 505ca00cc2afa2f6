"""Utility helpers for working with files."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Iterator, List

from qrscan.config import DEFAULT_EXTENSION
from qrscan.models import DocumentHandle

LOGGER = logging.getLogger(__name__)


def iter_document_paths(root: Path, extension: str = DEFAULT_EXTENSION) -> Iterator[Path]:
    """Yield files under ``root`` whose suffix matches ``extension``, descending into directories.

    Unreadable subdirectories are logged and skipped.
    """
    suffix = extension.lower()

    def _on_error(exc: OSError) -> None:
        LOGGER.warning("Skipping unreadable path %s: %s", exc.filename, exc.strerror or exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename.lower().endswith(suffix):
                yield Path(dirpath) / filename


def collect_documents(root: Path, extension: str = DEFAULT_EXTENSION) -> List[DocumentHandle]:
    """Return a handle for every document under ``root``.

    An absent or unreadable root yields an empty list; callers detect it by the batch size.
    """
    root = Path(root)
    if not root.is_dir():
        LOGGER.error("Unable to read input directory %s", root)
        return []
    try:
        os.scandir(root).close()
    except OSError as exc:
        LOGGER.error("Unable to read input directory %s: %s", root, exc)
        return []
    return [DocumentHandle(path=path.absolute()) for path in iter_document_paths(root, extension)]


def open_path(path: Path) -> None:
    """Open ``path`` with the desktop's default application."""
    if os.name == "posix":
        opener = "open" if sys.platform == "darwin" else "xdg-open"
        subprocess.Popen([opener, str(path)])
    else:
        os.startfile(path)  # type: ignore[attr-defined]
