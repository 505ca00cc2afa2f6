"""Shared fakes for the scan pipeline collaborators."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import cv2
import fitz
import numpy as np
import pytest

from qrscan.errors import CacheWriteError, PageNotAccessible, ResourceUnreachable, SymbolNotFound
from qrscan.models import CachedCode


def qr_image(text: str, scale: int = 8, border: int = 40) -> np.ndarray:
    """A grayscale image of a QR code encoding ``text``."""
    encoded = cv2.QRCodeEncoder.create().encode(text)
    if encoded.ndim == 3:
        encoded = cv2.cvtColor(encoded, cv2.COLOR_BGR2GRAY)
    resized = cv2.resize(
        encoded,
        (encoded.shape[1] * scale, encoded.shape[0] * scale),
        interpolation=cv2.INTER_NEAREST,
    )
    return cv2.copyMakeBorder(
        resized, border, border, border, border, cv2.BORDER_CONSTANT, value=255
    )


def write_qr_pdf(path: Path, text: str, *, page: int = 1, pages: int = 1) -> Path:
    """Write a PDF with a QR code for ``text`` on the 1-based ``page``."""
    ok, png = cv2.imencode(".png", qr_image(text))
    assert ok
    doc = fitz.open()
    for number in range(1, pages + 1):
        new_page = doc.new_page()
        if number == page:
            new_page.insert_image(fitz.Rect(72, 72, 272, 272), stream=png.tobytes())
    path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(str(path))
    doc.close()
    return path


class FakeRenderer:
    """Encodes the document name into the 'image' so FakeDecoder can look it up."""

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.failing = set(failing)
        self.calls: List[Tuple[str, int]] = []

    def render(self, path: Path, page: int) -> np.ndarray:
        name = Path(path).name
        self.calls.append((name, page))
        if name in self.failing:
            raise PageNotAccessible(f"{name} is corrupt")
        return np.frombuffer(name.encode("utf-8"), dtype=np.uint8)


class FakeDecoder:
    def __init__(self, codes: Optional[Dict[str, str]] = None, *, always_fail: bool = False) -> None:
        self.codes = codes or {}
        self.always_fail = always_fail
        self.calls = 0

    def decode(self, image: np.ndarray) -> str:
        self.calls += 1
        if self.always_fail:
            raise SymbolNotFound("decoder disabled")
        name = image.tobytes().decode("utf-8")
        if name not in self.codes:
            raise SymbolNotFound(f"no code in {name}")
        return self.codes[name]


class MemoryStore:
    def __init__(self, *, fail_writes: bool = False) -> None:
        self.entries: Dict[str, CachedCode] = {}
        self.fail_writes = fail_writes
        self.reads = 0
        self.writes = 0

    def read(self, path: Path) -> Optional[CachedCode]:
        self.reads += 1
        return self.entries.get(str(path))

    def write(self, path: Path, page: int, value: str) -> None:
        self.writes += 1
        if self.fail_writes:
            raise CacheWriteError("read-only")
        self.entries[str(path)] = CachedCode(page=page, value=value)

    def close(self) -> None:
        pass


class FakeFetcher:
    def __init__(self, payloads: Optional[Dict[str, str]] = None) -> None:
        self.payloads = payloads or {}
        self.calls: List[str] = []

    def fetch(self, url: str) -> str:
        self.calls.append(url)
        if url not in self.payloads:
            raise ResourceUnreachable(f"cannot reach {url}")
        return self.payloads[url]


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def decoder() -> FakeDecoder:
    return FakeDecoder()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_docs(tmp_path: Path):
    """Create empty PDF placeholders under tmp_path and return their paths."""

    def _make(*names: str) -> List[Path]:
        paths = []
        for name in names:
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"%PDF-1.4 placeholder")
            paths.append(path)
        return paths

    return _make


@pytest.fixture
def xattr_dir(tmp_path: Path) -> Path:
    """tmp_path, skipping the test if it does not support user extended attributes."""
    probe = tmp_path / "probe"
    probe.write_bytes(b"")
    if not hasattr(os, "setxattr"):
        pytest.skip("extended attributes not available on this platform")
    try:
        os.setxattr(probe, "user.qrscan.probe", b"1")
    except OSError:
        pytest.skip("filesystem does not support user extended attributes")
    finally:
        probe.unlink()
    return tmp_path
