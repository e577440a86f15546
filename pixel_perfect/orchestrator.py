"""Workflow orchestrator: capture then diff then report, or capture then promote to baseline."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from pixel_perfect.baseline.store import BaselineStore
from pixel_perfect.capture.browsers import PlaywrightLauncher
from pixel_perfect.capture.pipeline import CapturePipeline, normalize_device_name
from pixel_perfect.capture.session_pool import BrowserSessionPool, EngineLauncher
from pixel_perfect.devices.registry import DeviceRegistry
from pixel_perfect.diff.engine import DiffEngine
from pixel_perfect.errors import DuplicateDeviceError
from pixel_perfect.models.baseline import BaselineEntry
from pixel_perfect.models.config import PixelPerfectConfig
from pixel_perfect.models.device import CaptureTarget, DeviceProfile
from pixel_perfect.models.results import ReportOutput, ScreenshotRecord
from pixel_perfect.reporter.reporter import ReportAggregator

logger = logging.getLogger(__name__)


class Orchestrator:
    """Coordinates one run against a URL.

    Devices and targets are resolved once here; the stages below only read them.
    """

    def __init__(
        self,
        config: PixelPerfectConfig,
        registry: DeviceRegistry | None = None,
        launcher: EngineLauncher | None = None,
    ):
        self.config = config
        self.output_dir = Path(config.output_dir)

        registry = registry or DeviceRegistry()
        custom = [d for d in config.devices if isinstance(d, DeviceProfile)]
        if custom:
            registry = registry.with_devices(custom)
        self.registry = registry

        self.devices: list[DeviceProfile] = unique_devices(
            registry.resolve_all(config.devices) if config.devices else registry.list_defaults()
        )
        self.engines: list[str] = list(config.browsers)
        self.targets: list[CaptureTarget] = [
            CaptureTarget(device, engine) for device in self.devices for engine in self.engines
        ]
        self._launcher = launcher

    def run(self) -> ReportOutput:
        """Capture, diff against baselines and write the report."""
        return asyncio.run(self.run_async())

    def update_baseline(self) -> list[BaselineEntry]:
        """Capture and replace the stored baselines with the new screenshots."""
        return asyncio.run(self.update_baseline_async())

    async def run_async(self) -> ReportOutput:
        start = time.time()
        logger.info("=== Starting Pixel Perfect test run for %s ===", self.config.url)
        logger.info("Testing on devices: %s (%s)",
                    ", ".join(d.name for d in self.devices), ", ".join(self.engines))

        screenshots = await self._capture()

        logger.info("--- Diff ---")
        stage_start = time.time()
        diffs = await DiffEngine(self.config.diff).compare(screenshots)
        logger.info("--- Diff complete: %d of %d with differences in %.1fs ---",
                    sum(1 for d in diffs if d.has_diff), len(diffs), time.time() - stage_start)

        logger.info("--- Report ---")
        output = ReportAggregator(self.output_dir).generate(screenshots, diffs)

        logger.info("=== Test run complete in %.1fs ===", time.time() - start)
        return output

    async def update_baseline_async(self) -> list[BaselineEntry]:
        logger.info("=== Updating baselines for %s ===", self.config.url)
        screenshots = await self._capture()
        entries = BaselineStore(self.output_dir, self.config.url).promote(screenshots)
        logger.info("=== Updated %d baseline(s) ===", len(entries))
        return entries

    async def _capture(self) -> list[ScreenshotRecord]:
        """Launch engines, capture every target, and always release the browsers."""
        logger.info("--- Capture (%d targets, %d in parallel) ---",
                    len(self.targets), self.config.max_parallel_browsers)
        stage_start = time.time()
        async with BrowserSessionPool(self._make_launcher()) as pool:
            for engine in self.engines:
                await pool.initialize(engine)
            pipeline = CapturePipeline(pool, self.config.capture)
            screenshots = await pipeline.capture_all(
                self.config.url,
                self.targets,
                self.output_dir,
                self.config.max_parallel_browsers,
            )
        logger.info("--- Capture complete: %d screenshots in %.1fs ---",
                    len(screenshots), time.time() - stage_start)
        return screenshots

    def _make_launcher(self) -> EngineLauncher:
        if self._launcher is not None:
            return self._launcher
        return PlaywrightLauncher(
            headless=self.config.capture.headless,
            args=self.config.capture.launch_args,
        )


def unique_devices(devices: list[DeviceProfile]) -> list[DeviceProfile]:
    """Drop repeated devices, keeping first-seen order.

    Screenshots are stored under the normalized device name, so two different
    profiles that normalize to the same stem would overwrite each other's files.
    Those raise :class:`DuplicateDeviceError` instead of being merged.
    """
    by_stem: dict[str, DeviceProfile] = {}
    unique: list[DeviceProfile] = []
    for device in devices:
        stem = normalize_device_name(device.name)
        seen = by_stem.get(stem)
        if seen is None:
            by_stem[stem] = device
            unique.append(device)
        elif seen == device:
            logger.warning("Device %s listed more than once, capturing it once", device.name)
        else:
            raise DuplicateDeviceError(seen.name, device.name, stem)
    return unique
