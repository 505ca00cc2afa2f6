"""FastAPI application exposing QRScan over HTTP."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Literal

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from qrscan.config import DEFAULT_FETCH_TIMEOUT, ScanConfig
from qrscan.errors import CacheWriteError
from qrscan.index.storage import open_store
from qrscan.models import ScanRun
from qrscan.scan.orchestrator import run_scan
from qrscan.scan.tagging import tag_document
from qrscan.utils.files import open_path

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="QRScan API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class ScanPayload(BaseModel):
    root: Path
    page: int = Field(1, ge=1)
    use_cache: bool = True
    write_cache: bool = True
    resolve_urls: bool = False
    demote_unresolved: bool = False
    workers: int = Field(1, ge=1, le=32)
    report_dir: Path | None = None
    cache_backend: Literal["xattr", "sqlite"] = "xattr"
    cache_db: Path | None = None
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT


class TagPayload(BaseModel):
    path: Path
    code: str
    page: int = Field(1, ge=1)
    cache_backend: Literal["xattr", "sqlite"] = "xattr"
    cache_db: Path | None = None


class OpenRequest(BaseModel):
    path: Path


def _serialize_run(run: ScanRun) -> dict[str, Any]:
    return {
        "summary": {
            "total": run.summary.total,
            "succeeded": run.summary.succeeded,
            "failed": run.summary.failed,
            "cancelled": run.summary.cancelled,
        },
        "results": [
            {
                "path": str(result.document.path),
                "document": result.document.name,
                "status": result.status.value,
                "page": result.page,
                "value": result.value,
                "resolved_payload": result.resolved_payload,
            }
            for result in run.results
        ],
        "report_path": str(run.report_path) if run.report_path is not None else None,
        "report_error": run.report_error,
    }


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.post("/scan")
async def scan_directory(payload: ScanPayload) -> dict[str, Any]:
    root = payload.root.expanduser()
    if not root.is_dir():
        raise HTTPException(status_code=404, detail=f"Directory not found: {root}")

    config = ScanConfig(
        input_root=root.resolve(),
        page=payload.page,
        use_cache=payload.use_cache,
        write_cache=payload.write_cache,
        resolve_urls=payload.resolve_urls,
        demote_unresolved=payload.demote_unresolved,
        workers=payload.workers,
        report_dir=payload.report_dir,
        cache_backend=payload.cache_backend,
        cache_db=payload.cache_db,
        fetch_timeout=payload.fetch_timeout,
    )

    try:
        run = await asyncio.to_thread(run_scan, config)
    except Exception as exc:  # pragma: no cover - defensive
        LOGGER.exception("Scan failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    status = "ok" if run.completed else "error"
    return {"status": status, **_serialize_run(run)}


@app.post("/tag")
async def tag(payload: TagPayload) -> dict[str, Any]:
    path = payload.path.expanduser()
    config = ScanConfig(
        input_root=path.parent,
        cache_backend=payload.cache_backend,
        cache_db=payload.cache_db,
    )
    store = open_store(config)
    try:
        tag_document(path, payload.code, store, page=payload.page)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except CacheWriteError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        store.close()
    return {"status": "ok", "path": str(path), "code": payload.code, "page": payload.page}


@app.get("/code")
async def stored_code(
    path: Path,
    cache_backend: Literal["xattr", "sqlite"] = "xattr",
    cache_db: Path | None = None,
) -> dict[str, Any]:
    """Return the code stored on a document, if any."""
    path = path.expanduser()
    if not path.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {path}")

    store = open_store(ScanConfig(input_root=path.parent, cache_backend=cache_backend, cache_db=cache_db))
    try:
        cached = store.read(path)
    finally:
        store.close()

    if cached is None:
        return {"path": str(path), "code": None, "page": None}
    return {"path": str(path), "code": cached.value, "page": cached.page}


@app.post("/open")
async def open_document(payload: OpenRequest) -> dict[str, str]:
    path = payload.path.expanduser()
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"File not found: {path}")

    try:
        open_path(path)
    except OSError as exc:
        LOGGER.error("Unable to open %s: %s", path, exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return {"status": "ok"}
