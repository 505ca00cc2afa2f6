"""Tests for PDF page rendering."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import fitz
import numpy as np
import pytest

from qrscan.errors import PageNotAccessible
from qrscan.ingestion.pdf_renderer import _FITZ_LOCK, PyMuPDFRenderer


def _make_pdf(path: Path, pages: int) -> Path:
    doc = fitz.open()
    for index in range(pages):
        page = doc.new_page()
        page.insert_text((72, 72), f"Page {index + 1}")
    doc.save(str(path))
    doc.close()
    return path


class TestPyMuPDFRenderer:
    """Test PyMuPDFRenderer against real PDFs."""

    def test_render_grayscale(self, tmp_path: Path) -> None:
        pdf = _make_pdf(tmp_path / "doc.pdf", pages=2)

        image = PyMuPDFRenderer(dpi=72).render(pdf, 2)

        assert isinstance(image, np.ndarray)
        assert image.dtype == np.uint8
        assert image.ndim == 2
        assert image.shape[0] > image.shape[1]

    def test_render_rgb(self, tmp_path: Path) -> None:
        pdf = _make_pdf(tmp_path / "doc.pdf", pages=1)

        image = PyMuPDFRenderer(dpi=72, grayscale=False).render(pdf, 1)

        assert image.ndim == 3
        assert image.shape[2] == 3

    def test_dpi_scales_output(self, tmp_path: Path) -> None:
        pdf = _make_pdf(tmp_path / "doc.pdf", pages=1)

        small = PyMuPDFRenderer(dpi=72).render(pdf, 1)
        large = PyMuPDFRenderer(dpi=144).render(pdf, 1)

        assert large.shape[0] == pytest.approx(small.shape[0] * 2, abs=2)

    def test_missing_page(self, tmp_path: Path) -> None:
        pdf = _make_pdf(tmp_path / "doc.pdf", pages=1)

        with pytest.raises(PageNotAccessible, match="page 3 requested"):
            PyMuPDFRenderer().render(pdf, 3)

    def test_invalid_page_number(self, tmp_path: Path) -> None:
        pdf = _make_pdf(tmp_path / "doc.pdf", pages=1)

        with pytest.raises(PageNotAccessible):
            PyMuPDFRenderer().render(pdf, 0)

    def test_corrupt_file(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.pdf"
        broken.write_bytes(b"this is not a pdf at all")

        with pytest.raises(PageNotAccessible):
            PyMuPDFRenderer().render(broken, 1)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(PageNotAccessible):
            PyMuPDFRenderer().render(tmp_path / "missing.pdf", 1)

    @patch("qrscan.ingestion.pdf_renderer.fitz")
    def test_render_error_is_wrapped(self, mock_fitz: MagicMock, tmp_path: Path) -> None:
        mock_page = MagicMock()
        mock_page.get_pixmap.side_effect = RuntimeError("render failed")
        mock_doc = MagicMock()
        mock_doc.__len__ = MagicMock(return_value=1)
        mock_doc.__getitem__ = MagicMock(return_value=mock_page)
        mock_fitz.open.return_value = mock_doc

        with pytest.raises(PageNotAccessible, match="render failed"):
            PyMuPDFRenderer().render(tmp_path / "doc.pdf", 1)
        mock_doc.close.assert_called_once()

    @patch("qrscan.ingestion.pdf_renderer.fitz")
    def test_render_holds_library_lock(self, mock_fitz: MagicMock, tmp_path: Path) -> None:
        held = []

        def fake_open(path):
            held.append(_FITZ_LOCK.locked())
            raise RuntimeError("cannot open")

        mock_fitz.open.side_effect = fake_open

        with pytest.raises(PageNotAccessible):
            PyMuPDFRenderer().render(tmp_path / "doc.pdf", 1)
        assert held == [True]
        assert not _FITZ_LOCK.locked()
