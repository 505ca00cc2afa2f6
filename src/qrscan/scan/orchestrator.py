"""Batch scanning pipeline."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from qrscan.config import ScanConfig
from qrscan.errors import ReportWriteError
from qrscan.index.storage import open_store
from qrscan.ingestion.pdf_renderer import PyMuPDFRenderer
from qrscan.ingestion.qr_decoder import OpenCVQRDecoder
from qrscan.models import DocumentHandle, ResultStatus, ScanResult, ScanRun, ScanSummary
from qrscan.report.csv_writer import ReportWriter
from qrscan.scan.classifier import ResultClassifier
from qrscan.scan.extractor import CodeExtractor
from qrscan.scan.fetcher import HttpResourceFetcher
from qrscan.scan.interfaces import AttributeStore, PageRenderer, ResourceFetcher, SymbolDecoder
from qrscan.utils.files import collect_documents, open_path

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
SummaryCallback = Callable[[ScanSummary], None]


class ScanOrchestrator:
    """Drives one batch: collect, extract and classify each document, report.

    Progress is reported through ``on_progress(processed, total)`` after every
    classified document and ``on_summary(summary)`` once all documents have a
    result. Both callbacks are always invoked from the thread calling
    :meth:`run`, also when ``workers > 1``.
    """

    def __init__(
        self,
        extractor: CodeExtractor,
        classifier: ResultClassifier,
        report_writer: Optional[ReportWriter] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
        on_summary: Optional[SummaryCallback] = None,
        opener: Callable[[Path], None] = open_path,
        logger: logging.Logger | None = None,
    ) -> None:
        self.extractor = extractor
        self.classifier = classifier
        self.report_writer = report_writer
        self.on_progress = on_progress
        self.on_summary = on_summary
        self.opener = opener
        self.logger = logger or LOGGER

    def run(self, config: ScanConfig, *, cancel_event: threading.Event | None = None) -> ScanRun:
        cancel_event = cancel_event or threading.Event()
        documents = collect_documents(config.input_root, config.extension)
        self.logger.info(
            "New scan initiated. Input directory: %s, scanning page: %s, number of files: %s",
            config.input_root,
            config.page,
            len(documents),
        )

        if config.workers > 1 and len(documents) > 1:
            results, cancelled = self._run_parallel(documents, config, cancel_event)
        else:
            results, cancelled = self._run_sequential(documents, config, cancel_event)

        summary = ScanSummary.from_results(results, cancelled=cancelled)
        self.logger.info(summary.message())
        if self.on_summary is not None:
            self.on_summary(summary)

        run = ScanRun(results=results, summary=summary)
        self._write_report(run, config)
        return run

    def process(self, handle: DocumentHandle, config: ScanConfig) -> ScanResult:
        """Extract and classify a single document."""
        self.logger.info("Now scanning file %s.", handle.name)
        try:
            outcome = self.extractor.extract(
                handle,
                config.page,
                use_cache=config.use_cache,
                write_cache=config.write_cache,
            )
            return self.classifier.classify(handle, config.page, outcome)
        except Exception:
            self.logger.exception("Failed to process %s", handle.path)
            return ScanResult(document=handle, status=ResultStatus.NO_FILE_ACCESS, page=config.page)

    def _run_sequential(
        self, documents: Sequence[DocumentHandle], config: ScanConfig, cancel_event: threading.Event
    ) -> tuple[List[ScanResult], bool]:
        total = len(documents)
        results: List[ScanResult] = []
        for handle in documents:
            if cancel_event.is_set():
                self.logger.warning("Scan cancelled after %s of %s files", len(results), total)
                return results, True
            results.append(self.process(handle, config))
            self._notify_progress(len(results), total)
        return results, False

    def _run_parallel(
        self, documents: Sequence[DocumentHandle], config: ScanConfig, cancel_event: threading.Event
    ) -> tuple[List[ScanResult], bool]:
        total = len(documents)
        slots: List[Optional[ScanResult]] = [None] * total
        processed = 0
        cancelled = cancel_event.is_set()

        pool = ThreadPoolExecutor(max_workers=min(config.workers, total), thread_name_prefix="qrscan")
        futures = {}
        try:
            if not cancelled:
                futures = {
                    pool.submit(self.process, handle, config): index
                    for index, handle in enumerate(documents)
                }
            for future in as_completed(futures):
                slots[futures[future]] = future.result()
                processed += 1
                self._notify_progress(processed, total)
                if cancel_event.is_set() and processed < total:
                    cancelled = True
                    break
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

        # Tasks already running when cancellation was noticed still finish.
        for future, index in futures.items():
            if slots[index] is None and future.done() and not future.cancelled():
                slots[index] = future.result()
                processed += 1
                self._notify_progress(processed, total)

        if cancelled:
            self.logger.warning("Scan cancelled after %s of %s files", processed, total)
        return [result for result in slots if result is not None], cancelled

    def _notify_progress(self, processed: int, total: int) -> None:
        if self.on_progress is not None:
            self.on_progress(processed, total)

    def _write_report(self, run: ScanRun, config: ScanConfig) -> None:
        if self.report_writer is None:
            return
        try:
            run.report_path = self.report_writer.write(run.results, config.resolve_report_dir())
        except ReportWriteError as exc:
            self.logger.error("Unable to log results in CSV file: %s", exc)
            run.report_error = str(exc)
            return
        if config.open_report:
            try:
                self.opener(run.report_path)
            except OSError as exc:
                self.logger.warning("Unable to open %s: %s", run.report_path, exc)


def run_scan(
    config: ScanConfig,
    *,
    on_progress: Optional[ProgressCallback] = None,
    on_summary: Optional[SummaryCallback] = None,
    cancel_event: threading.Event | None = None,
    renderer: Optional[PageRenderer] = None,
    decoder: Optional[SymbolDecoder] = None,
    store: Optional[AttributeStore] = None,
    fetcher: Optional[ResourceFetcher] = None,
) -> ScanRun:
    """Run a batch with the default collaborators for anything not supplied."""
    owned = []
    if store is None and config.caching_enabled and config.input_root.is_dir():
        store = open_store(config)
        owned.append(store)
    if fetcher is None and config.resolve_urls:
        fetcher = HttpResourceFetcher(timeout=config.fetch_timeout)
        owned.append(fetcher)

    orchestrator = ScanOrchestrator(
        CodeExtractor(renderer or PyMuPDFRenderer(), decoder or OpenCVQRDecoder(), store),
        ResultClassifier(fetcher, demote_unresolved=config.demote_unresolved),
        ReportWriter(),
        on_progress=on_progress,
        on_summary=on_summary,
    )
    try:
        return orchestrator.run(config, cancel_event=cancel_event)
    finally:
        for resource in owned:
            resource.close()


def scan(
    input_root: Path,
    page: int,
    use_cache: bool = True,
    write_cache: bool = True,
    *,
    on_progress: Optional[ProgressCallback] = None,
    on_summary: Optional[SummaryCallback] = None,
    cancel_event: threading.Event | None = None,
    **options,
) -> List[ScanResult]:
    """Scan ``input_root`` and return the ordered results.

    Extra keyword ``options`` are forwarded to :class:`ScanConfig`.
    """
    config = ScanConfig(
        input_root=Path(input_root),
        page=page,
        use_cache=use_cache,
        write_cache=write_cache,
        **options,
    )
    run = run_scan(config, on_progress=on_progress, on_summary=on_summary, cancel_event=cancel_event)
    return run.results
