"""Capabilities the scan pipeline consumes.

Concrete implementations live in :mod:`qrscan.ingestion`, :mod:`qrscan.index.storage`
and :mod:`qrscan.scan.fetcher`; tests substitute simple fakes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol

import numpy as np

from qrscan.models import CachedCode


class PageRenderer(Protocol):
    def render(self, path: Path, page: int) -> np.ndarray:
        """Rasterise the 1-based ``page``; raise ``PageNotAccessible`` on failure."""
        ...


class SymbolDecoder(Protocol):
    def decode(self, image: np.ndarray) -> str:
        """Return the QR code's text; raise ``SymbolNotFound`` if there is none."""
        ...


class AttributeStore(Protocol):
    def read(self, path: Path) -> Optional[CachedCode]:
        ...

    def write(self, path: Path, page: int, value: str) -> None:
        """Persist the code; raise ``CacheWriteError`` on failure."""
        ...


class ResourceFetcher(Protocol):
    def fetch(self, url: str) -> str:
        """Return the resource body; raise ``ResourceUnreachable`` on failure."""
        ...
