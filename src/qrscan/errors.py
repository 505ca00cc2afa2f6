"""Exceptions raised by QRScan collaborators."""

from __future__ import annotations


class QRScanError(Exception):
    """Base class for QRScan errors."""


class PageNotAccessible(QRScanError):
    """The document or the requested page could not be opened or rendered."""


class SymbolNotFound(QRScanError):
    """The page was rendered but no QR code could be decoded from it."""


class CacheWriteError(QRScanError):
    """A decoded code could not be stored as document metadata."""


class ResourceUnreachable(QRScanError):
    """The resource referenced by a decoded URL could not be fetched."""


class ReportWriteError(QRScanError):
    """The CSV report could not be written."""
