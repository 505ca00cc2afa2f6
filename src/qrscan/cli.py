"""Command line interface for QRScan."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from qrscan.config import ScanConfig
from qrscan.errors import CacheWriteError
from qrscan.index.storage import SQLiteAttributeStore, open_store
from qrscan.models import ScanRun, ScanSummary
from qrscan.scan.orchestrator import run_scan
from qrscan.scan.tagging import tag_document


console = Console()
app = typer.Typer(help="QRScan - batch QR code scanning for PDFs")

STATUS_STYLES = {
    "CODE_FOUND": "green",
    "NO_FILE_ACCESS": "red",
    "NO_CODE_FOUND": "yellow",
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _store_config(document: Path, cache_backend: str, cache_db: Optional[Path]) -> ScanConfig:
    try:
        return ScanConfig(
            input_root=document.parent,
            cache_backend=cache_backend,  # type: ignore[arg-type]
            cache_db=cache_db,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _print_results(run: ScanRun) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Document")
    table.add_column("Status")
    table.add_column("Page")
    table.add_column("Code")

    for result in run.results:
        style = STATUS_STYLES.get(result.status.value, "")
        table.add_row(
            str(result.document.path),
            f"[{style}]{result.status.value}[/{style}]",
            str(result.page),
            result.value,
        )
    console.print(table)


def _run_with_interrupt(config: ScanConfig, progress: Progress, task_id) -> ScanRun:
    """Run the scan in a worker thread so Ctrl-C can request cancellation."""
    cancel_event = threading.Event()
    outcome: dict = {}

    def _on_progress(processed: int, total: int) -> None:
        progress.update(task_id, completed=processed, total=total)

    def _on_summary(summary: ScanSummary) -> None:
        outcome["summary"] = summary

    def _target() -> None:
        try:
            outcome["run"] = run_scan(
                config,
                on_progress=_on_progress,
                on_summary=_on_summary,
                cancel_event=cancel_event,
            )
        except BaseException as exc:  # re-raised in the calling thread
            outcome["error"] = exc

    worker = threading.Thread(target=_target, name="qrscan-batch", daemon=True)
    worker.start()
    while worker.is_alive():
        try:
            worker.join(0.2)
        except KeyboardInterrupt:
            console.print("[yellow]Cancelling, finishing the current file...[/yellow]")
            cancel_event.set()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["run"]


@app.command()
def scan(
    root: Path = typer.Argument(..., help="Directory with PDFs to scan.", resolve_path=True),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page where the QR code is expected"),
    use_cache: bool = typer.Option(True, help="Reuse codes stored on the documents"),
    write_cache: bool = typer.Option(True, help="Store decoded codes on the documents"),
    open_report: bool = typer.Option(False, "--open-report", help="Open the CSV report when done"),
    resolve_urls: bool = typer.Option(False, "--resolve-urls", help="Fetch the content behind URL codes"),
    demote_unresolved: bool = typer.Option(
        False, "--demote-unresolved", help="Count unreachable URL codes as not found"
    ),
    workers: int = typer.Option(1, min=1, help="Number of documents scanned in parallel"),
    report_dir: Optional[Path] = typer.Option(None, "--report-dir", help="Where to write the CSV report"),
    cache_backend: str = typer.Option("xattr", help="Code cache: 'xattr' or 'sqlite'"),
    cache_db: Optional[Path] = typer.Option(None, "--cache-db", help="SQLite cache path"),
    show_results: bool = typer.Option(False, "--show-results", help="Print a table of all results"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Scan a directory tree of PDFs for QR codes on a given page."""
    _setup_logging(verbose)
    try:
        config = ScanConfig(
            input_root=root,
            page=page,
            use_cache=use_cache,
            write_cache=write_cache,
            open_report=open_report,
            resolve_urls=resolve_urls,
            demote_unresolved=demote_unresolved,
            workers=workers,
            report_dir=report_dir,
            cache_backend=cache_backend,  # type: ignore[arg-type]
            cache_db=cache_db,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if not root.is_dir():
        console.print(f"[yellow]Input directory not found: {root}[/yellow]")

    console.print(f"Scanning [bold]{root}[/bold] at page {page}...")
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task_id = progress.add_task("Scanning", total=None)
        run = _run_with_interrupt(config, progress, task_id)

    if not run.results:
        console.print("[yellow]No PDFs found.[/yellow]")
    if show_results and run.results:
        _print_results(run)

    console.print(
        f"Scanned: {run.summary.total}, found: {run.summary.succeeded}, failed: {run.summary.failed}"
    )
    if run.report_path is not None:
        console.print(f"Report written to [bold]{run.report_path}[/bold]")
    if run.report_error is not None:
        console.print(f"[red]Report could not be written: {run.report_error}[/red]")
    if run.cancelled:
        console.print("[yellow]Scan was cancelled; the report is partial.[/yellow]")
    if not run.completed:
        raise typer.Exit(code=1)


@app.command()
def tag(
    document: Path = typer.Argument(..., help="PDF to tag.", resolve_path=True),
    code: str = typer.Argument(..., help="Code to store on the document"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page the code belongs to"),
    cache_backend: str = typer.Option("xattr", help="Code cache: 'xattr' or 'sqlite'"),
    cache_db: Optional[Path] = typer.Option(None, "--cache-db", help="SQLite cache path"),
) -> None:
    """Manually store a code on a document."""
    store = open_store(_store_config(document, cache_backend, cache_db))
    try:
        tag_document(document, code, store, page=page)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except CacheWriteError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()
    console.print(f"Tagged {document.name} with [bold]{code}[/bold] (page {page}).")


@app.command()
def show(
    document: Path = typer.Argument(..., help="PDF to inspect.", resolve_path=True),
    cache_backend: str = typer.Option("xattr", help="Code cache: 'xattr' or 'sqlite'"),
    cache_db: Optional[Path] = typer.Option(None, "--cache-db", help="SQLite cache path"),
) -> None:
    """Print the code stored on a document."""
    if not document.is_file():
        raise typer.BadParameter(f"Document not found: {document}")

    store = open_store(_store_config(document, cache_backend, cache_db))
    try:
        cached = store.read(document)
    finally:
        store.close()

    if cached is None:
        console.print("[yellow]No stored code.[/yellow]")
        return
    console.print(f"Code: {cached.value} (page {cached.page})")


@app.command()
def prune(
    root: Path = typer.Argument(..., help="Scanned directory that owns the cache.", resolve_path=True),
    cache_db: Optional[Path] = typer.Option(None, "--cache-db", help="SQLite cache path"),
) -> None:
    """Remove cached codes of documents that no longer exist on disk."""
    config = ScanConfig(input_root=root, cache_backend="sqlite", cache_db=cache_db)
    resolved_db = config.resolve_cache_db()

    if not resolved_db.exists():
        console.print("[yellow]Cache database not found, nothing to prune.[/yellow]")
        return

    store = SQLiteAttributeStore(resolved_db)
    try:
        removed = store.remove_missing_files()
    finally:
        store.close()
    console.print(f"Removed {removed} stale cache entries.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from qrscan.web.app import app as web_app

    console.print(f"Starting QRScan API on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
