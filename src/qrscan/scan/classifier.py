"""Map extraction outcomes to scan results."""

from __future__ import annotations

import logging
from typing import Optional

from qrscan.errors import ResourceUnreachable
from qrscan.models import (
    AccessFailed,
    Decoded,
    DocumentHandle,
    ExtractionOutcome,
    NotFound,
    ResultStatus,
    ScanResult,
)
from qrscan.scan.interfaces import ResourceFetcher
from qrscan.utils.text import looks_like_url

LOGGER = logging.getLogger(__name__)

UNRESOLVED = "UNRESOLVED"


class ResultClassifier:
    """Turns an :data:`ExtractionOutcome` into a :class:`ScanResult`.

    With a ``fetcher`` configured, decoded URLs are resolved and the payload is
    attached. A failed fetch attaches :data:`UNRESOLVED`; the status stays
    ``CODE_FOUND`` unless ``demote_unresolved`` is set.
    """

    def __init__(
        self,
        fetcher: Optional[ResourceFetcher] = None,
        *,
        demote_unresolved: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.demote_unresolved = demote_unresolved
        self.logger = logger or LOGGER

    def classify(self, handle: DocumentHandle, page: int, outcome: ExtractionOutcome) -> ScanResult:
        if isinstance(outcome, Decoded):
            self.logger.info("Found QR code %s in %s.", outcome.value, handle.name)
            return self._found(handle, page, outcome.value)
        if isinstance(outcome, AccessFailed):
            self.logger.warning("Unable to access %s or page not found: %s", handle.name, outcome.cause)
            return ScanResult(document=handle, status=ResultStatus.NO_FILE_ACCESS, page=page)
        if isinstance(outcome, NotFound):
            self.logger.warning(
                "Unable to find QR code at page %s in %s: %s", page, handle.name, outcome.cause
            )
            return ScanResult(document=handle, status=ResultStatus.NO_CODE_FOUND, page=page)
        raise TypeError(f"Unknown extraction outcome: {outcome!r}")

    def _found(self, handle: DocumentHandle, page: int, value: str) -> ScanResult:
        if self.fetcher is None or not looks_like_url(value):
            return ScanResult(document=handle, status=ResultStatus.CODE_FOUND, page=page, value=value)

        try:
            payload = self.fetcher.fetch(value)
        except Exception as exc:
            # The code was decoded; a fetch failure only affects the payload.
            if isinstance(exc, ResourceUnreachable):
                self.logger.warning("Unable to resolve %s from %s: %s", value, handle.name, exc)
            else:
                self.logger.exception("Unexpected error resolving %s from %s", value, handle.name)
            if self.demote_unresolved:
                return ScanResult(
                    document=handle,
                    status=ResultStatus.NO_CODE_FOUND,
                    page=page,
                    resolved_payload=UNRESOLVED,
                )
            payload = UNRESOLVED
        return ScanResult(
            document=handle,
            status=ResultStatus.CODE_FOUND,
            page=page,
            value=value,
            resolved_payload=payload,
        )
