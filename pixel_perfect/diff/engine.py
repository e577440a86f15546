"""Diff engine: compares each screenshot with its baseline."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from pixel_perfect.errors import DimensionMismatchError
from pixel_perfect.models.config import DiffOptions
from pixel_perfect.models.results import DiffRecord, ScreenshotRecord

from .raster import (
    compare_buffers,
    decode_to_raw_buffer,
    drop_alpha,
    encode_raw_buffer_to_png,
    region_mask,
    to_luminance,
)

logger = logging.getLogger(__name__)

BASELINE_DIR_NAME = "baseline"
NO_BASELINE_MESSAGE = "No baseline available for comparison"
NO_DIFF_MESSAGE = "No differences found"


def baseline_path_for(screenshot_path: str | Path) -> Path:
    """The baseline a screenshot is compared against: same name, ``baseline/`` subdirectory."""
    path = Path(screenshot_path)
    return path.parent / BASELINE_DIR_NAME / path.name


def diff_path_for(screenshot_path: str | Path) -> Path:
    path = Path(screenshot_path)
    return path.with_name(f"{path.stem}-diff{path.suffix or '.png'}")


class DiffEngine:
    """Compares screenshots with their baselines using the configured tolerances."""

    def __init__(self, options: DiffOptions | None = None):
        self.options = (options or DiffOptions()).model_copy(deep=True)

    async def compare(self, screenshots: Sequence[ScreenshotRecord]) -> list[DiffRecord]:
        """Compare screenshots one at a time, in order.

        Decoding and pixel comparison run in a worker thread so the event
        loop stays responsive, but never more than one at a time.
        """
        logger.info("Starting visual diff comparison (%d screenshots)...", len(screenshots))
        diffs = []
        for screenshot in screenshots:
            diffs.append(await asyncio.to_thread(self.compare_one, screenshot))
        return diffs

    def compare_one(self, screenshot: ScreenshotRecord) -> DiffRecord:
        opts = self.options
        current_path = Path(screenshot.file_path)
        baseline_path = baseline_path_for(current_path)

        if not baseline_path.exists():
            logger.warning("No baseline found for %s, skipping comparison", screenshot.device_name)
            return DiffRecord(
                device_name=screenshot.device_name,
                engine_kind=screenshot.engine_kind,
                has_diff=False,
                diff_percentage=0.0,
                diff_image_path=None,
                message=NO_BASELINE_MESSAGE,
            )

        current = decode_to_raw_buffer(current_path)
        baseline = decode_to_raw_buffer(baseline_path)
        if current.size != baseline.size:
            raise DimensionMismatchError(screenshot.device_name, current.size, baseline.size)

        current_px, baseline_px = current.pixels, baseline.pixels
        if opts.ignore_transparency:
            current_px, baseline_px = drop_alpha(current_px), drop_alpha(baseline_px)
        if opts.ignore_colors:
            current_px, baseline_px = to_luminance(current_px), to_luminance(baseline_px)

        comparison = compare_buffers(
            current_px,
            baseline_px,
            threshold=opts.threshold,
            include_antialiasing=not opts.ignore_antialiasing,
        )
        differing = comparison.differing_pixels
        output = comparison.output

        if opts.ignore_regions:
            masked = region_mask((current.height, current.width), opts.ignore_regions)
            differing -= int((comparison.diff_mask & masked).sum())
            output[masked] = 0

        total = current.width * current.height
        diff_percentage = 100.0 * differing / total
        has_diff = diff_percentage > 0

        diff_path = diff_path_for(current_path)
        if has_diff:
            encode_raw_buffer_to_png(output, diff_path)
            message = f"Found {differing} different pixels ({diff_percentage:.2f}%)"
            logger.info("%s: %s", screenshot.device_name, message)
        else:
            # Drop a stale diff image left by an earlier run
            diff_path.unlink(missing_ok=True)
            message = NO_DIFF_MESSAGE
            logger.info("%s: %s", screenshot.device_name, message)

        return DiffRecord(
            device_name=screenshot.device_name,
            engine_kind=screenshot.engine_kind,
            has_diff=has_diff,
            diff_percentage=diff_percentage,
            diff_image_path=str(diff_path) if has_diff else None,
            message=message,
        )
