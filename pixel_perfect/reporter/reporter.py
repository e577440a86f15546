"""Report aggregation: builds the test report and writes its JSON and HTML files."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from pixel_perfect.errors import ReportWriteError
from pixel_perfect.models.results import DiffRecord, ReportOutput, ScreenshotRecord, TestReport

from .html_report import generate_html_report
from .json_report import generate_json_report

logger = logging.getLogger(__name__)


def report_timestamp(now: datetime | None = None) -> str:
    """Filesystem-safe UTC timestamp, e.g. ``2024-05-01T12-30-05-123Z``."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


class ReportAggregator:
    """Turns screenshot and diff records into a persisted test report."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.reports_dir = self.output_dir / "reports"

    def generate(
        self,
        screenshots: Sequence[ScreenshotRecord],
        diffs: Sequence[DiffRecord],
        timestamp: str | None = None,
    ) -> ReportOutput:
        """Write ``report-{timestamp}.json`` and ``.html`` and return both paths."""
        logger.info("Generating test report...")
        timestamp = timestamp or report_timestamp()
        report = TestReport.build(timestamp, list(screenshots), list(diffs))

        json_path = self.reports_dir / f"report-{timestamp}.json"
        html_path = self.reports_dir / f"report-{timestamp}.html"
        try:
            self.reports_dir.mkdir(parents=True, exist_ok=True)
            generate_json_report(report, json_path)
            logger.debug("JSON report: %s", json_path)
            generate_html_report(report, html_path)
            logger.debug("HTML report: %s", html_path)
        except OSError as e:
            logger.error("Failed to generate test report: %s", e)
            raise ReportWriteError(f"Could not write report to {self.reports_dir}: {e}") from e

        logger.info("Report generated: %s", html_path)
        return ReportOutput(json_path=str(json_path), html_path=str(html_path), report=report)
