"""Pytest configuration and shared fixtures."""

import asyncio
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image
from playwright.async_api import Browser, BrowserContext, Page

from pixel_perfect.models.config import CaptureSettings, PixelPerfectConfig, RetryPolicy
from pixel_perfect.models.device import DeviceProfile
from pixel_perfect.models.results import DiffRecord, ScreenshotRecord


# ============================================================================
# Image Helpers
# ============================================================================


def write_png(
    path: Path,
    width: int,
    height: int,
    color: tuple = (0, 0, 0, 255),
    pixels: Optional[dict] = None,
) -> Path:
    """Write a solid RGBA PNG, optionally overriding individual ``(x, y)`` pixels."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGBA", (width, height), color)
    for xy, value in (pixels or {}).items():
        img.putpixel(xy, value)
    img.save(path)
    return path


@pytest.fixture
def png_writer():
    """Fixture that provides the write_png helper."""
    return write_png


# ============================================================================
# Fake Browser Stack
# ============================================================================
#
# Fake pages identify their device by the user agent of their context, so test
# devices carry a unique user agent.


class FakePage:
    def __init__(self, launcher: "FakeLauncher", options: dict):
        self.launcher = launcher
        self.options = options
        self.closed = False
        launcher.in_flight += 1
        launcher.max_in_flight = max(launcher.max_in_flight, launcher.in_flight)

    async def goto(self, url, wait_until=None, timeout=None):
        agent = self.options.get("user_agent", "")
        self.launcher.goto_calls.append((agent, url))
        remaining = self.launcher.goto_failures.get(agent, 0)
        if remaining > 0:
            self.launcher.goto_failures[agent] = remaining - 1
            raise TimeoutError(f"Timeout {timeout}ms exceeded navigating to {url}")

    async def wait_for_load_state(self, state=None, timeout=None):
        await asyncio.sleep(0)

    async def wait_for_timeout(self, ms):
        await asyncio.sleep(0)

    async def evaluate(self, script, arg=None):
        return 0

    async def screenshot(self, path=None, full_page=False):
        await asyncio.sleep(self.launcher.capture_delay)
        viewport = self.options["viewport"]
        write_png(Path(path), viewport["width"], viewport["height"], self.launcher.color)

    async def close(self):
        self.closed = True
        self.launcher.in_flight -= 1


class FakeContext:
    def __init__(self, launcher: "FakeLauncher", options: dict):
        self.launcher = launcher
        self.options = options
        self.pages: list[FakePage] = []

    async def new_page(self):
        page = FakePage(self.launcher, self.options)
        self.pages.append(page)
        return page


class FakeBrowser:
    def __init__(self, launcher: "FakeLauncher", engine: str):
        self.launcher = launcher
        self.engine = engine
        self.contexts: list[FakeContext] = []
        self.closed = False

    async def new_context(self, **options):
        context = FakeContext(self.launcher, options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeLauncher:
    """Stands in for PlaywrightLauncher and renders solid-colour screenshots."""

    def __init__(
        self,
        color: tuple = (255, 255, 255, 255),
        fail_engines: tuple = (),
        goto_failures: Optional[dict] = None,
        capture_delay: float = 0.01,
    ):
        self.color = color
        self.fail_engines = set(fail_engines)
        self.goto_failures = dict(goto_failures or {})
        self.capture_delay = capture_delay
        self.browsers: list[FakeBrowser] = []
        self.goto_calls: list[tuple[str, str]] = []
        self.stop_count = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def launch(self, engine: str) -> FakeBrowser:
        if engine in self.fail_engines:
            raise RuntimeError(f"Executable doesn't exist for {engine}")
        browser = FakeBrowser(self, engine)
        self.browsers.append(browser)
        return browser

    async def stop(self) -> None:
        self.stop_count += 1


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def launcher_factory():
    """Fixture that builds FakeLaunchers with custom failure behaviour."""
    return FakeLauncher


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.goto = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.evaluate = AsyncMock(return_value=0)
    page.screenshot = AsyncMock()
    page.close = AsyncMock()
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser context."""
    context = AsyncMock(spec=BrowserContext)
    context.new_page = AsyncMock(return_value=mock_page)
    return context


@pytest.fixture
def mock_browser() -> AsyncMock:
    """Create a mock Playwright browser whose contexts are distinct objects."""
    browser = AsyncMock(spec=Browser)
    browser.new_context = AsyncMock(side_effect=lambda **kwargs: Mock(options=kwargs))
    browser.close = AsyncMock()
    return browser


@pytest.fixture
def mock_launcher(mock_browser: AsyncMock) -> AsyncMock:
    launcher = AsyncMock()
    launcher.launch = AsyncMock(return_value=mock_browser)
    launcher.stop = AsyncMock()
    return launcher


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def phone() -> DeviceProfile:
    return DeviceProfile(
        name="Test Phone", viewport_width=12, viewport_height=20,
        device_scale_factor=3, is_mobile=True, has_touch=True, user_agent="test-phone",
    )


@pytest.fixture
def desktop() -> DeviceProfile:
    return DeviceProfile(name="Test Desktop", viewport_width=24, viewport_height=16, user_agent="test-desktop")


@pytest.fixture
def small_devices() -> list[DeviceProfile]:
    """Five tiny devices with unique user agents."""
    return [
        DeviceProfile(name=f"Device {i}", viewport_width=8 + i, viewport_height=6, user_agent=f"device-{i}")
        for i in range(5)
    ]


@pytest.fixture
def fast_capture_settings() -> CaptureSettings:
    """Capture settings with no settle delays and no retry backoff."""
    return CaptureSettings(
        animation_settle_ms=0,
        image_load_timeout_ms=0,
        post_settle_ms=0,
        retry=RetryPolicy(max_attempts=3, backoff_seconds=0),
    )


@pytest.fixture
def run_config(
    tmp_path: Path, phone: DeviceProfile, desktop: DeviceProfile, fast_capture_settings: CaptureSettings,
) -> PixelPerfectConfig:
    return PixelPerfectConfig(
        url="https://example.com",
        devices=[phone, desktop],
        output_dir=str(tmp_path / "screenshots"),
        capture=fast_capture_settings,
    )


# ============================================================================
# Result Fixtures
# ============================================================================


@pytest.fixture
def screenshot_record(tmp_path: Path) -> ScreenshotRecord:
    path = write_png(tmp_path / "screenshots" / "test-phone.png", 12, 20)
    return ScreenshotRecord(
        device_name="Test Phone",
        engine_kind="chromium",
        file_path=str(path),
        captured_at_timestamp="2025-01-01T00:00:00Z",
        viewport_width=12,
        viewport_height=20,
    )


@pytest.fixture
def clean_diff() -> DiffRecord:
    return DiffRecord(
        device_name="Test Phone",
        engine_kind="chromium",
        has_diff=False,
        diff_percentage=0.0,
        message="No differences found",
    )
