"""CSV report of a scan batch."""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Sequence

from qrscan.errors import ReportWriteError
from qrscan.models import ScanResult

LOGGER = logging.getLogger(__name__)

REPORT_PREFIX = "ScanResults_QRScan_"
TIMESTAMP_FORMAT = "%Y-%m-%d %H-%M-%S"
HEADER = ("document", "status", "page", "value", "resolved_payload")


def report_filename(moment: datetime) -> str:
    return f"{REPORT_PREFIX}{moment.strftime(TIMESTAMP_FORMAT)}.csv"


class ReportWriter:
    """Writes one timestamped CSV file per batch.

    Two runs against the same directory within the same second share a file
    name; the later run overwrites the earlier report.
    """

    def __init__(self, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self.clock = clock

    def write(self, results: Sequence[ScanResult], destination_dir: Path) -> Path:
        report_path = Path(destination_dir) / report_filename(self.clock())
        try:
            with report_path.open("w", newline="", encoding="utf-8") as handle:
                writer = csv.writer(handle)
                writer.writerow(HEADER)
                for result in results:
                    writer.writerow(
                        (
                            result.document.name,
                            result.status.value,
                            result.page,
                            result.value,
                            result.resolved_payload,
                        )
                    )
        except OSError as exc:
            raise ReportWriteError(f"Unable to write report {report_path}: {exc}") from exc
        LOGGER.info("Results were logged to CSV file: %s.", report_path.name)
        return report_path


def read_report(path: Path) -> List[Dict[str, str]]:
    """Parse a report written by :class:`ReportWriter` into one dict per row."""
    with Path(path).open(newline="", encoding="utf-8") as handle:
        return list(csv.DictReader(handle))
