"""Tests for the capture pipeline."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from pixel_perfect.capture.pipeline import CapturePipeline, normalize_device_name, screenshot_filename
from pixel_perfect.capture.session_pool import BrowserSessionPool
from pixel_perfect.errors import EngineNotReadyError
from pixel_perfect.models.device import CaptureTarget


async def ready_pool(launcher, *engines) -> BrowserSessionPool:
    pool = BrowserSessionPool(launcher)
    for engine in engines or ("chromium",):
        await pool.initialize(engine)
    return pool


class TestFileNames:
    def test_normalize_device_name(self):
        assert normalize_device_name("iPhone 12 Pro Max") == "iphone-12-pro-max"
        assert normalize_device_name("  Galaxy  Tab/S7 ") == "galaxy-tab-s7"

    def test_screenshot_filename(self):
        assert screenshot_filename("iPad Pro") == "ipad-pro.png"
        assert screenshot_filename("iPad Pro", "webkit") == "ipad-pro-webkit.png"


class TestCaptureAll:
    """Tests for batched capture over many targets."""

    @pytest.mark.asyncio
    async def test_captures_every_target_in_order(self, tmp_path: Path, fake_launcher, small_devices, fast_capture_settings):
        pool = await ready_pool(fake_launcher)
        targets = [CaptureTarget(d, "chromium") for d in small_devices]

        records = await CapturePipeline(pool, fast_capture_settings).capture_all(
            "https://example.com", targets, tmp_path / "shots", max_parallel=2,
        )

        assert [r.device_name for r in records] == [d.name for d in small_devices]
        for record, device in zip(records, small_devices):
            path = Path(record.file_path)
            assert path.name == f"{normalize_device_name(device.name)}.png"
            assert record.engine_kind == "chromium"
            assert record.viewport_width == device.viewport_width
            with Image.open(path) as img:
                assert img.size == (device.viewport_width, device.viewport_height)

    @pytest.mark.asyncio
    async def test_never_exceeds_max_parallel(self, tmp_path: Path, launcher_factory, small_devices, fast_capture_settings):
        launcher = launcher_factory(capture_delay=0.02)
        pool = await ready_pool(launcher)
        targets = [CaptureTarget(d, "chromium") for d in small_devices]

        await CapturePipeline(pool, fast_capture_settings).capture_all(
            "https://example.com", targets, tmp_path, max_parallel=2,
        )

        assert launcher.max_in_flight == 2
        assert launcher.in_flight == 0

    @pytest.mark.asyncio
    async def test_sequential_when_parallel_is_one(self, tmp_path: Path, fake_launcher, small_devices, fast_capture_settings):
        pool = await ready_pool(fake_launcher)
        targets = [CaptureTarget(d, "chromium") for d in small_devices[:3]]

        await CapturePipeline(pool, fast_capture_settings).capture_all(
            "https://example.com", targets, tmp_path, max_parallel=1,
        )

        assert fake_launcher.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_failed_target_is_skipped(self, tmp_path: Path, launcher_factory, small_devices, fast_capture_settings):
        # device-1 never loads, device-3 recovers on its third attempt
        launcher = launcher_factory(goto_failures={"device-1": 99, "device-3": 2})
        pool = await ready_pool(launcher)
        targets = [CaptureTarget(d, "chromium") for d in small_devices]

        records = await CapturePipeline(pool, fast_capture_settings).capture_all(
            "https://example.com", targets, tmp_path, max_parallel=3,
        )

        assert [r.device_name for r in records] == ["Device 0", "Device 2", "Device 3", "Device 4"]
        assert [agent for agent, _ in launcher.goto_calls].count("device-1") == 3
        assert [agent for agent, _ in launcher.goto_calls].count("device-3") == 3
        assert not (tmp_path / "device-1.png").exists()
        # Pages are closed on failure too
        assert launcher.in_flight == 0

    @pytest.mark.asyncio
    async def test_multi_engine_file_names(self, tmp_path: Path, fake_launcher, phone, fast_capture_settings):
        pool = await ready_pool(fake_launcher, "chromium", "firefox")
        targets = [CaptureTarget(phone, "chromium"), CaptureTarget(phone, "firefox")]

        records = await CapturePipeline(pool, fast_capture_settings).capture_all(
            "https://example.com", targets, tmp_path, max_parallel=3,
        )

        assert [Path(r.file_path).name for r in records] == ["test-phone-chromium.png", "test-phone-firefox.png"]
        assert [r.engine_kind for r in records] == ["chromium", "firefox"]

    @pytest.mark.asyncio
    async def test_engine_not_ready(self, tmp_path: Path, fake_launcher, phone, fast_capture_settings):
        pool = await ready_pool(fake_launcher, "chromium")
        targets = [CaptureTarget(phone, "chromium"), CaptureTarget(phone, "webkit")]

        with pytest.raises(EngineNotReadyError):
            await CapturePipeline(pool, fast_capture_settings).capture_all(
                "https://example.com", targets, tmp_path, max_parallel=2,
            )
        assert fake_launcher.goto_calls == []

    @pytest.mark.asyncio
    async def test_invalid_parallelism(self, tmp_path: Path, fake_launcher, phone, fast_capture_settings):
        pool = await ready_pool(fake_launcher)
        with pytest.raises(ValueError):
            await CapturePipeline(pool, fast_capture_settings).capture_all(
                "https://example.com", [CaptureTarget(phone, "chromium")], tmp_path, max_parallel=0,
            )

    @pytest.mark.asyncio
    async def test_no_targets(self, tmp_path: Path, fake_launcher, fast_capture_settings):
        pool = await ready_pool(fake_launcher)
        records = await CapturePipeline(pool, fast_capture_settings).capture_all(
            "https://example.com", [], tmp_path, max_parallel=3,
        )
        assert records == []


class TestCaptureOne:
    @pytest.mark.asyncio
    async def test_navigation_and_screenshot_calls(self, tmp_path: Path, mock_launcher, mock_browser, mock_context, mock_page, phone, fast_capture_settings):
        mock_browser.new_context = AsyncMock(return_value=mock_context)
        pool = await ready_pool(mock_launcher)

        record = await CapturePipeline(pool, fast_capture_settings).capture_one(
            "https://example.com", CaptureTarget(phone, "chromium"), tmp_path,
        )

        mock_page.goto.assert_awaited_once_with(
            "https://example.com", wait_until="domcontentloaded", timeout=60000,
        )
        mock_page.wait_for_load_state.assert_awaited_once_with("networkidle", timeout=10000)
        mock_page.screenshot.assert_awaited_once_with(path=str(tmp_path / "test-phone.png"), full_page=True)
        mock_page.close.assert_awaited_once()
        assert record.file_path == str(tmp_path / "test-phone.png")
        assert record.captured_at_timestamp.endswith("Z")

    @pytest.mark.asyncio
    async def test_page_closed_when_screenshot_fails(self, tmp_path: Path, mock_launcher, mock_browser, mock_context, mock_page, phone, fast_capture_settings):
        mock_browser.new_context = AsyncMock(return_value=mock_context)
        mock_page.screenshot.side_effect = RuntimeError("Target closed")
        pool = await ready_pool(mock_launcher)

        with pytest.raises(RuntimeError, match="Target closed"):
            await CapturePipeline(pool, fast_capture_settings).capture_one(
                "https://example.com", CaptureTarget(phone, "chromium"), tmp_path,
            )
        mock_page.close.assert_awaited_once()
