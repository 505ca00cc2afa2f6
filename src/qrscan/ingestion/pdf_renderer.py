"""PDF page rendering.

Uses PyMuPDF (fitz) to rasterise a single page into a numpy array.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import fitz  # PyMuPDF
import numpy as np

from qrscan.errors import PageNotAccessible

LOGGER = logging.getLogger(__name__)

DEFAULT_DPI = 200

# PyMuPDF does not support concurrent use from several threads.
_FITZ_LOCK = threading.Lock()


class PyMuPDFRenderer:
    """Renders one page of a PDF to an RGB or grayscale image."""

    def __init__(self, *, dpi: int = DEFAULT_DPI, grayscale: bool = True) -> None:
        self.dpi = dpi
        self.grayscale = grayscale

    def render(self, path: Path, page: int) -> np.ndarray:
        """Render the 1-based ``page`` of ``path``."""
        if page < 1:
            raise PageNotAccessible(f"Invalid page number {page}")
        with _FITZ_LOCK:
            return self._render_locked(path, page)

    def _render_locked(self, path: Path, page: int) -> np.ndarray:
        try:
            doc = fitz.open(path)
        except Exception as exc:
            raise PageNotAccessible(f"Unable to open {path}: {exc}") from exc

        try:
            if page > len(doc):
                raise PageNotAccessible(f"{Path(path).name} has {len(doc)} pages, page {page} requested")
            colorspace = fitz.csGRAY if self.grayscale else fitz.csRGB
            try:
                pixmap = doc[page - 1].get_pixmap(dpi=self.dpi, colorspace=colorspace, alpha=False)
            except Exception as exc:
                raise PageNotAccessible(f"Unable to render page {page} of {path}: {exc}") from exc
            return pixmap_to_array(pixmap)
        finally:
            doc.close()


def pixmap_to_array(pixmap: "fitz.Pixmap") -> np.ndarray:
    """Copy a pixmap's samples into a (height, width[, channels]) uint8 array."""
    image = np.frombuffer(pixmap.samples, dtype=np.uint8)
    image = image.reshape(pixmap.height, pixmap.stride)[:, : pixmap.width * pixmap.n]
    if pixmap.n == 1:
        return image.reshape(pixmap.height, pixmap.width).copy()
    return image.reshape(pixmap.height, pixmap.width, pixmap.n).copy()
