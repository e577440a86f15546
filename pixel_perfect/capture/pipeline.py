"""Capture pipeline: drives navigation, settling and full-page screenshots per target."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import Sequence

from pixel_perfect.errors import EngineLaunchError, EngineNotReadyError
from pixel_perfect.models.config import CaptureSettings
from pixel_perfect.models.device import CaptureTarget
from pixel_perfect.models.results import ScreenshotRecord

from .retry import navigate_with_retry
from .session_pool import BrowserSessionPool
from .settle import settle_page, wait_for_network_idle

logger = logging.getLogger(__name__)

# Pool-level failures abort the whole batch instead of skipping one target
_FATAL_ERRORS = (EngineLaunchError, EngineNotReadyError)


def normalize_device_name(name: str) -> str:
    """Lowercase ``name`` and collapse whitespace and path separators to ``-``."""
    return re.sub(r"[\s/\\]+", "-", name.strip().lower()).strip("-")


def screenshot_filename(device_name: str, engine: str | None = None) -> str:
    stem = normalize_device_name(device_name)
    if engine:
        stem = f"{stem}-{engine}"
    return f"{stem}.png"


class CapturePipeline:
    """Captures one full-page screenshot per target, at most ``max_parallel`` at a time."""

    def __init__(self, pool: BrowserSessionPool, settings: CaptureSettings | None = None):
        self.pool = pool
        self.settings = settings or CaptureSettings()

    async def capture_all(
        self,
        url: str,
        targets: Sequence[CaptureTarget],
        output_dir: Path,
        max_parallel: int,
    ) -> list[ScreenshotRecord]:
        """Capture every target in fixed-size batches.

        A batch must fully settle before the next one starts. Failed targets
        are logged and left out of the result; records keep target order.
        """
        if max_parallel < 1:
            raise ValueError("max_parallel must be at least 1")

        targets = list(targets)
        not_ready = sorted({t.engine for t in targets if not self.pool.is_ready(t.engine)})
        if not_ready:
            raise EngineNotReadyError(not_ready[0])

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        multi_engine = len({t.engine for t in targets}) > 1

        records: list[ScreenshotRecord] = []
        failures = 0
        for start in range(0, len(targets), max_parallel):
            batch = targets[start:start + max_parallel]
            logger.debug("Capturing batch %d-%d of %d targets",
                         start + 1, start + len(batch), len(targets))
            results = await asyncio.gather(
                *(self.capture_one(url, t, output_dir, multi_engine) for t in batch),
                return_exceptions=True,
            )
            for target, result in zip(batch, results):
                if isinstance(result, _FATAL_ERRORS):
                    raise result
                if isinstance(result, Exception):
                    failures += 1
                    logger.error("Failed to capture screenshot for %s (%s): %s",
                                 target.device.name, target.engine, result)
                    continue
                if isinstance(result, BaseException):
                    raise result
                records.append(result)

        if failures:
            logger.warning("Completed with %d errors. Check logs for details.", failures)
        logger.info("Captured %d/%d screenshots", len(records), len(targets))
        return records

    async def capture_one(
        self,
        url: str,
        target: CaptureTarget,
        output_dir: Path,
        multi_engine: bool = False,
    ) -> ScreenshotRecord:
        """Navigate, settle and capture a single target."""
        device, engine = target.device, target.engine
        label = f"{device.name} ({engine})" if multi_engine else device.name
        path = Path(output_dir) / screenshot_filename(device.name, engine if multi_engine else None)

        context = await self.pool.create_context(device, engine)
        page = await context.new_page()
        try:
            logger.info("Capturing screenshot for %s...", label)
            await navigate_with_retry(
                lambda: page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=self.settings.navigation_timeout_ms,
                ),
                self.settings.retry,
                url,
                label=label,
            )
            await wait_for_network_idle(page, self.settings.network_idle_timeout_ms, label)
            await settle_page(page, self.settings, label)

            await page.screenshot(path=str(path), full_page=True)
            logger.info("Screenshot captured for %s", label)
        finally:
            await page.close()

        return ScreenshotRecord(
            device_name=device.name,
            engine_kind=engine,
            file_path=str(path),
            captured_at_timestamp=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            viewport_width=device.viewport_width,
            viewport_height=device.viewport_height,
        )
