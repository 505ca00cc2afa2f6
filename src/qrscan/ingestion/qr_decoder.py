"""QR code decoding using OpenCV's QRCodeDetector."""

from __future__ import annotations

import logging
import threading
from typing import Iterator

import cv2
import numpy as np

from qrscan.errors import SymbolNotFound

LOGGER = logging.getLogger(__name__)


class OpenCVQRDecoder:
    """Decode the first QR code found in an image.

    The raw image is tried first, then an Otsu-binarised copy, which helps with
    scans that have uneven lighting or faint print. Each thread gets its own
    detector.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    @property
    def detector(self) -> cv2.QRCodeDetector:
        detector = getattr(self._local, "detector", None)
        if detector is None:
            detector = self._local.detector = cv2.QRCodeDetector()
        return detector

    def decode(self, image: np.ndarray) -> str:
        if image is None or image.size == 0:
            raise SymbolNotFound("Empty image")
        for candidate in _candidates(_to_gray(image)):
            try:
                value, points, _ = self.detector.detectAndDecode(candidate)
            except cv2.error as exc:
                LOGGER.debug("QR detection failed: %s", exc)
                continue
            if value:
                return value
            if points is not None:
                LOGGER.debug("QR code located but could not be decoded")
        raise SymbolNotFound("No QR code found on page")


def _to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def _candidates(gray: np.ndarray) -> Iterator[np.ndarray]:
    yield gray
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    yield binary
