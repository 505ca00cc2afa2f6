"""Persistence of decoded codes as document metadata."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from qrscan.config import ScanConfig
from qrscan.errors import CacheWriteError
from qrscan.models import CachedCode

LOGGER = logging.getLogger(__name__)

CODE_ATTRIBUTE = "user.qrscan.code"
PAGE_ATTRIBUTE = "user.qrscan.page"


class XattrAttributeStore:
    """Stores the code and its page as extended attributes on the PDF itself.

    Attributes travel with the file when it is moved within the same filesystem.
    """

    def __init__(self) -> None:
        self.supported = hasattr(os, "getxattr") and hasattr(os, "setxattr")

    def read(self, path: Path) -> Optional[CachedCode]:
        if not self.supported:
            return None
        try:
            raw_value = os.getxattr(path, CODE_ATTRIBUTE)
            raw_page = os.getxattr(path, PAGE_ATTRIBUTE)
        except OSError:
            return None
        try:
            page = int(raw_page.decode("ascii"))
            value = raw_value.decode("utf-8")
        except (UnicodeDecodeError, ValueError):
            LOGGER.debug("Ignoring malformed cached code on %s", path)
            return None
        if not value or page < 1:
            return None
        return CachedCode(page=page, value=value)

    def write(self, path: Path, page: int, value: str) -> None:
        if not self.supported:
            raise CacheWriteError("Extended attributes are not supported on this platform")
        try:
            os.setxattr(path, CODE_ATTRIBUTE, value.encode("utf-8"))
            os.setxattr(path, PAGE_ATTRIBUTE, str(page).encode("ascii"))
        except OSError as exc:
            self._discard(path)
            raise CacheWriteError(f"Unable to write attributes on {path}: {exc}") from exc

    def _discard(self, path: Path) -> None:
        # A half-written pair must not be read back as a valid code.
        for name in (CODE_ATTRIBUTE, PAGE_ATTRIBUTE):
            try:
                os.removexattr(path, name)
            except OSError as exc:
                LOGGER.debug("Unable to remove %s from %s: %s", name, path, exc)

    def close(self) -> None:
        pass


class SQLiteAttributeStore:
    """Sidecar SQLite database keyed by absolute document path.

    A cached row is only returned while the document's mtime and size are unchanged.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS codes (
                    path TEXT PRIMARY KEY,
                    page INTEGER NOT NULL,
                    code TEXT NOT NULL,
                    mtime REAL NOT NULL,
                    size INTEGER NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

    def read(self, path: Path) -> Optional[CachedCode]:
        key = str(Path(path).absolute())
        with self._lock:
            row = self._conn.execute(
                "SELECT page, code, mtime, size FROM codes WHERE path = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        try:
            stat = Path(path).stat()
        except OSError:
            return None
        if row["mtime"] != stat.st_mtime or row["size"] != stat.st_size:
            LOGGER.debug("Cached code for %s is stale", path)
            return None
        return CachedCode(page=row["page"], value=row["code"])

    def write(self, path: Path, page: int, value: str) -> None:
        key = str(Path(path).absolute())
        try:
            stat = Path(path).stat()
            with self.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO codes(path, page, code, mtime, size) VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(path) DO UPDATE SET
                        page = excluded.page,
                        code = excluded.code,
                        mtime = excluded.mtime,
                        size = excluded.size,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, page, value, stat.st_mtime, stat.st_size),
                )
        except (OSError, sqlite3.Error) as exc:
            raise CacheWriteError(f"Unable to store code for {path}: {exc}") from exc

    def remove_missing_files(self) -> int:
        """Delete rows whose document no longer exists."""
        with self._lock:
            rows = self._conn.execute("SELECT path FROM codes").fetchall()
        missing = [row["path"] for row in rows if not Path(row["path"]).exists()]
        if missing:
            with self.transaction() as conn:
                conn.executemany("DELETE FROM codes WHERE path = ?", [(p,) for p in missing])
        return len(missing)


def open_store(config: ScanConfig) -> XattrAttributeStore | SQLiteAttributeStore:
    """Build the attribute store selected by ``config``."""
    if config.cache_backend == "sqlite":
        db_path = config.resolve_cache_db()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return SQLiteAttributeStore(db_path)
    return XattrAttributeStore()
