"""Playwright launch and context helpers."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from pixel_perfect.models.device import ENGINE_KINDS, DeviceProfile

logger = logging.getLogger(__name__)


def build_context_options(profile: DeviceProfile) -> dict:
    """Playwright ``new_context`` keyword arguments that emulate ``profile``."""
    options: dict = {
        "viewport": {"width": profile.viewport_width, "height": profile.viewport_height},
        "device_scale_factor": profile.device_scale_factor,
        "is_mobile": profile.is_mobile,
        "has_touch": profile.has_touch,
        "locale": "en-US",
    }
    if profile.user_agent:
        options["user_agent"] = profile.user_agent
    return options


async def create_device_context(browser: Browser, profile: DeviceProfile, engine: str) -> BrowserContext:
    """Create an isolated browsing context for one device.

    Firefox does not implement mobile emulation, so ``is_mobile`` is dropped
    for it; viewport, scale and user agent still apply.
    """
    options = build_context_options(profile)
    if engine == "firefox":
        options.pop("is_mobile", None)
    return await browser.new_context(**options)


class PlaywrightLauncher:
    """Launches Playwright browser engines, sharing one driver process."""

    def __init__(self, headless: bool = True, args: Optional[list[str]] = None):
        self.headless = headless
        self.args = list(args or [])
        self._playwright: Playwright | None = None

    async def launch(self, engine: str) -> Browser:
        if engine not in ENGINE_KINDS:
            raise ValueError(f"Unsupported browser type: {engine}")
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        browser_type = getattr(self._playwright, engine)
        # Chromium-only flags make Firefox/WebKit refuse to start
        args = self.args if engine == "chromium" else []
        logger.debug("Launching %s (headless=%s, args=%s)", engine, self.headless, args)
        return await browser_type.launch(headless=self.headless, args=args)

    async def stop(self) -> None:
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
