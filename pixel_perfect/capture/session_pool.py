"""Browser session pool: one engine per kind, one context per (engine, device)."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, NamedTuple, Protocol

from pixel_perfect.errors import EngineLaunchError, EngineNotReadyError
from pixel_perfect.models.device import DeviceProfile

from .browsers import create_device_context

logger = logging.getLogger(__name__)


class EngineLauncher(Protocol):
    async def launch(self, engine: str) -> Any: ...

    async def stop(self) -> None: ...


class EngineState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    LAUNCHING = "launching"
    READY = "ready"
    CLOSED = "closed"


class SessionKey(NamedTuple):
    engine: str
    device_name: str


class BrowserSessionPool:
    """Owns the launched engines and the per-device contexts created from them.

    Use as an async context manager so every exit path runs ``cleanup()``.
    """

    def __init__(self, launcher: EngineLauncher):
        self.launcher = launcher
        self._engines: dict[str, Any] = {}
        self._states: dict[str, EngineState] = {}
        self._contexts: dict[SessionKey, Any] = {}
        self._context_locks: dict[SessionKey, asyncio.Lock] = {}

    async def __aenter__(self) -> "BrowserSessionPool":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    def state(self, engine: str) -> EngineState:
        return self._states.get(engine, EngineState.UNINITIALIZED)

    def is_ready(self, engine: str) -> bool:
        return self.state(engine) is EngineState.READY

    def active_engine_count(self) -> int:
        return sum(1 for s in self._states.values() if s is EngineState.READY)

    async def initialize(self, engine: str) -> None:
        """Launch ``engine`` unless it is already running."""
        if self.is_ready(engine):
            logger.debug("%s browser already initialized", engine)
            return

        logger.info("Initializing %s browser...", engine)
        self._states[engine] = EngineState.LAUNCHING
        try:
            browser = await self.launcher.launch(engine)
        except Exception as e:
            self._states[engine] = EngineState.UNINITIALIZED
            logger.error("Failed to initialize %s browser: %s", engine, e)
            raise EngineLaunchError(engine, str(e)) from e

        self._engines[engine] = browser
        self._states[engine] = EngineState.READY
        logger.info("%s browser initialized", engine)

    async def create_context(self, device: DeviceProfile, engine: str) -> Any:
        """Return the cached context for (engine, device), creating it on first use."""
        if not self.is_ready(engine):
            raise EngineNotReadyError(engine)

        key = SessionKey(engine, device.name)
        # Concurrent callers for one key wait on the first creation
        lock = self._context_locks.setdefault(key, asyncio.Lock())
        async with lock:
            context = self._contexts.get(key)
            if context is None:
                if not self.is_ready(engine):
                    raise EngineNotReadyError(engine)
                logger.debug("Creating %s context for %s", engine, device.name)
                context = await create_device_context(self._engines[engine], device, engine)
                self._contexts[key] = context
        return context

    async def cleanup(self) -> None:
        """Close every engine. Individual close failures are logged, not raised."""
        for engine, browser in list(self._engines.items()):
            try:
                await browser.close()
                logger.info("Closed %s browser", engine)
            except Exception as e:
                logger.error("Error closing %s browser: %s", engine, e)
            self._states[engine] = EngineState.CLOSED
        self._engines.clear()
        self._contexts.clear()
        self._context_locks.clear()

        try:
            await self.launcher.stop()
        except Exception as e:
            logger.error("Error stopping browser driver: %s", e)
