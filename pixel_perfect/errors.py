"""Exception types raised by the capture, diff and report stages."""

from __future__ import annotations


class PixelPerfectError(Exception):
    """Base class for every error the harness raises on purpose."""


class UnknownDeviceError(PixelPerfectError):
    def __init__(self, name: str, available: list[str] | None = None):
        self.name = name
        self.available = available or []
        message = f"Unknown device: {name!r}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class EngineLaunchError(PixelPerfectError):
    def __init__(self, engine: str, reason: str):
        self.engine = engine
        super().__init__(f"Failed to launch {engine} browser: {reason}")


class EngineNotReadyError(PixelPerfectError):
    def __init__(self, engine: str):
        self.engine = engine
        super().__init__(f"{engine} browser not initialized")


class NavigationError(PixelPerfectError):
    def __init__(self, url: str, attempts: int, reason: str):
        self.url = url
        self.attempts = attempts
        super().__init__(f"Navigation to {url} failed after {attempts} attempt(s): {reason}")


class DiffComparisonError(PixelPerfectError):
    """An image could not be decoded or compared."""


class DimensionMismatchError(DiffComparisonError):
    def __init__(self, device: str, current: tuple[int, int], baseline: tuple[int, int]):
        self.device = device
        self.current = current
        self.baseline = baseline
        super().__init__(
            f"Screenshot for {device} is {current[0]}x{current[1]} but its baseline is "
            f"{baseline[0]}x{baseline[1]}. Run 'pixel-perfect update-baseline' if the "
            f"new size is expected."
        )


class ReportWriteError(PixelPerfectError):
    """The JSON or HTML report could not be written."""


class DuplicateDeviceError(PixelPerfectError):
    def __init__(self, first: str, second: str, stem: str):
        self.first = first
        self.second = second
        self.stem = stem
        super().__init__(
            f"Devices {first!r} and {second!r} would both be saved as {stem!r}; rename one of them"
        )
