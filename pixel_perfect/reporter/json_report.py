"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from pixel_perfect.models.results import TestReport


def generate_json_report(report: TestReport, output_path: Path) -> None:
    """Write a machine-readable JSON report with camelCase field names."""
    with open(output_path, "w") as f:
        json.dump(report.model_dump(by_alias=True), f, indent=2, default=str)
