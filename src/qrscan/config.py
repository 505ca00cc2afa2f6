"""Scan configuration and defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

CacheBackend = Literal["xattr", "sqlite"]

DEFAULT_EXTENSION = ".pdf"
DEFAULT_CACHE_DB_NAME = ".qrscan.db"
DEFAULT_FETCH_TIMEOUT = 10.0


@dataclass(slots=True)
class ScanConfig:
    input_root: Path
    page: int = 1
    use_cache: bool = True
    write_cache: bool = True
    open_report: bool = False
    resolve_urls: bool = False
    demote_unresolved: bool = False
    workers: int = 1
    report_dir: Path | None = None
    cache_backend: CacheBackend = "xattr"
    cache_db: Path | None = None
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    extension: str = DEFAULT_EXTENSION

    def __post_init__(self) -> None:
        self.input_root = Path(self.input_root)
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise ValueError(f"page must be a positive integer, got {self.page!r}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers!r}")
        if self.cache_backend not in ("xattr", "sqlite"):
            raise ValueError(f"Unknown cache backend: {self.cache_backend!r}")
        if not self.extension.startswith("."):
            self.extension = "." + self.extension
        self.extension = self.extension.lower()

    @property
    def caching_enabled(self) -> bool:
        return self.use_cache or self.write_cache

    def resolve_report_dir(self) -> Path:
        """Reports land in the scanned root unless a directory is given."""
        if self.report_dir is None:
            return self.input_root
        return Path(self.report_dir)

    def resolve_cache_db(self) -> Path:
        if self.cache_db is None:
            return self.input_root / DEFAULT_CACHE_DB_NAME
        if Path(self.cache_db).is_absolute():
            return Path(self.cache_db)
        return self.input_root / self.cache_db
