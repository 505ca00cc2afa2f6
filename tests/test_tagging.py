"""Tests for manual tagging."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import MemoryStore
from qrscan.errors import CacheWriteError
from qrscan.models import CachedCode
from qrscan.scan.tagging import tag_document


@pytest.fixture
def pdf(tmp_path: Path) -> Path:
    path = tmp_path / "doc.pdf"
    path.write_bytes(b"%PDF-1.4")
    return path


class TestTagDocument:
    """Test tag_document."""

    def test_writes_code(self, pdf: Path) -> None:
        store = MemoryStore()

        tag_document(pdf, "ABC123", store, page=2)

        assert store.entries[str(pdf.absolute())] == CachedCode(page=2, value="ABC123")

    def test_default_page(self, pdf: Path) -> None:
        store = MemoryStore()
        tag_document(pdf, "ABC", store)
        assert store.entries[str(pdf.absolute())].page == 1

    @pytest.mark.parametrize("code", ["", "bad\ncode"])
    def test_invalid_code(self, pdf: Path, code: str) -> None:
        with pytest.raises(ValueError, match="Invalid characters"):
            tag_document(pdf, code, MemoryStore())

    def test_invalid_page(self, pdf: Path) -> None:
        with pytest.raises(ValueError):
            tag_document(pdf, "ABC", MemoryStore(), page=0)

    def test_missing_document(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="not found"):
            tag_document(tmp_path / "missing.pdf", "ABC", MemoryStore())

    def test_wrong_extension(self, tmp_path: Path) -> None:
        text = tmp_path / "notes.txt"
        text.write_text("x")
        with pytest.raises(ValueError, match="Not a .pdf document"):
            tag_document(text, "ABC", MemoryStore())

    def test_store_failure_propagates(self, pdf: Path) -> None:
        with pytest.raises(CacheWriteError):
            tag_document(pdf, "ABC", MemoryStore(fail_writes=True))
