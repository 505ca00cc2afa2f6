"""Core QRScan data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

if TYPE_CHECKING:
    from qrscan.scan.interfaces import AttributeStore


class ResultStatus(str, Enum):
    """Outcome of scanning a single document."""

    CODE_FOUND = "CODE_FOUND"
    NO_FILE_ACCESS = "NO_FILE_ACCESS"
    NO_CODE_FOUND = "NO_CODE_FOUND"


@dataclass(frozen=True, slots=True)
class CachedCode:
    """A code previously stored as document metadata."""

    page: int
    value: str


@dataclass(slots=True, eq=False)
class DocumentHandle:
    """A document found on disk together with its cached code, if any.

    The cache is read from the attribute store at most once per scan pass;
    afterwards every lookup is served from memory.
    """

    path: Path
    cached_value: Optional[str] = None
    cached_page: Optional[int] = None
    _cache_loaded: bool = field(default=False, init=False, repr=False)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def cache_loaded(self) -> bool:
        return self._cache_loaded

    def load_cache(self, store: AttributeStore) -> None:
        """Populate the cached fields from ``store`` unless already done."""
        if self._cache_loaded:
            return
        self._cache_loaded = True
        cached = store.read(self.path)
        if cached is not None:
            self.cached_page = cached.page
            self.cached_value = cached.value

    def cached_code_for(self, page: int) -> Optional[str]:
        """Return the cached value only if it was recorded for ``page``."""
        if self.cached_value and self.cached_page == page:
            return self.cached_value
        return None

    def remember(self, page: int, value: str) -> None:
        self.cached_page = page
        self.cached_value = value
        self._cache_loaded = True


@dataclass(frozen=True, slots=True)
class Decoded:
    value: str


@dataclass(frozen=True, slots=True)
class AccessFailed:
    cause: str


@dataclass(frozen=True, slots=True)
class NotFound:
    cause: str


ExtractionOutcome = Union[Decoded, AccessFailed, NotFound]


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Classified result for one document."""

    document: DocumentHandle
    status: ResultStatus
    page: int
    value: str = ""
    resolved_payload: str = ""

    def __post_init__(self) -> None:
        if bool(self.value) != (self.status is ResultStatus.CODE_FOUND):
            raise ValueError(
                f"value must be non-empty exactly when status is CODE_FOUND (got {self.status.value})"
            )

    @property
    def found(self) -> bool:
        return self.status is ResultStatus.CODE_FOUND


@dataclass(frozen=True, slots=True)
class ScanSummary:
    total: int
    succeeded: int
    failed: int
    cancelled: bool = False

    @classmethod
    def from_results(cls, results: List[ScanResult], *, cancelled: bool = False) -> "ScanSummary":
        succeeded = sum(1 for result in results if result.found)
        return cls(
            total=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            cancelled=cancelled,
        )

    def message(self) -> str:
        prefix = "Scan cancelled" if self.cancelled else "Summary"
        return (
            f"{prefix}: scanned {self.total} files: {self.succeeded} successful, "
            f"{self.failed} unsuccessful."
        )


@dataclass(slots=True)
class ScanRun:
    """Everything a batch produced: results, summary and report outcome."""

    results: List[ScanResult]
    summary: ScanSummary
    report_path: Optional[Path] = None
    report_error: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self.summary.cancelled

    @property
    def completed(self) -> bool:
        return not self.cancelled and self.report_error is None
