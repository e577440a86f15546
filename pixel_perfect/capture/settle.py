"""Best-effort waits for network idle, animations and lazy images before capture."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from pixel_perfect.models.config import CaptureSettings

logger = logging.getLogger(__name__)

# Resolves once every <img> has loaded or errored, or after timeoutMs
_WAIT_FOR_IMAGES_JS = """(timeoutMs) => {
    const pending = Array.from(document.images).filter(img => !img.complete);
    const settled = Promise.all(pending.map(img => new Promise(resolve => {
        img.addEventListener('load', resolve, { once: true });
        img.addEventListener('error', resolve, { once: true });
    })));
    const timeout = new Promise(resolve => setTimeout(resolve, timeoutMs));
    return Promise.race([settled, timeout]).then(() => pending.length);
}"""


async def wait_for_network_idle(page: Page, timeout_ms: int, label: str = "") -> bool:
    """Wait for network idle. Returns False (and logs) if it never arrives."""
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout_ms)
        return True
    except Exception as e:
        logger.warning("Network did not become idle for %s, proceeding anyway... (%s)", label, e)
        return False


async def settle_page(page: Page, settings: CaptureSettings, label: str = "") -> bool:
    """Let animations finish and lazy images load. Never raises."""
    try:
        await page.wait_for_timeout(settings.animation_settle_ms)
        pending = await page.evaluate(_WAIT_FOR_IMAGES_JS, settings.image_load_timeout_ms)
        if pending:
            logger.debug("Waited on %s pending image(s) for %s", pending, label)
        await page.wait_for_timeout(settings.post_settle_ms)
        return True
    except Exception as e:
        logger.warning("Dynamic content did not settle for %s: %s", label, e)
        return False
