"""Result data structures produced by the capture, diff and report stages.

Field names are snake_case in Python and camelCase in serialized reports.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScreenshotRecord(_ReportModel):
    device_name: str
    engine_kind: str = "chromium"
    file_path: str
    captured_at_timestamp: str
    viewport_width: int
    viewport_height: int


class DiffRecord(_ReportModel):
    device_name: str
    engine_kind: str = "chromium"
    has_diff: bool = False
    diff_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    diff_image_path: Optional[str] = None
    message: str = ""

    @model_validator(mode="after")
    def diff_image_only_when_different(self) -> "DiffRecord":
        if self.has_diff != (self.diff_image_path is not None):
            raise ValueError("diff_image_path must be set exactly when has_diff is true")
        return self


class ReportSummary(_ReportModel):
    total_devices: int = 0
    devices_with_diffs: int = 0
    total_diffs: int = 0


class TestReport(_ReportModel):
    __test__ = False  # not a pytest test class

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp: str
    summary: ReportSummary
    screenshots: list[ScreenshotRecord] = Field(default_factory=list)
    diffs: list[DiffRecord] = Field(default_factory=list)

    @classmethod
    def build(
        cls, timestamp: str, screenshots: list[ScreenshotRecord], diffs: list[DiffRecord],
    ) -> "TestReport":
        with_diffs = sum(1 for d in diffs if d.has_diff)
        return cls(
            timestamp=timestamp,
            summary=ReportSummary(
                total_devices=len(screenshots),
                devices_with_diffs=with_diffs,
                total_diffs=with_diffs,
            ),
            screenshots=list(screenshots),
            diffs=list(diffs),
        )


class ReportOutput(BaseModel):
    json_path: str
    html_path: str
    report: TestReport
