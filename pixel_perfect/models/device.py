"""Device profile data structures."""

from __future__ import annotations

from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

EngineKind = Literal["chromium", "firefox", "webkit"]
ENGINE_KINDS: tuple[str, ...] = ("chromium", "firefox", "webkit")


class DeviceProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    viewport_width: int = Field(gt=0)
    viewport_height: int = Field(gt=0)
    device_scale_factor: float = Field(default=1.0, gt=0)
    is_mobile: bool = False
    has_touch: bool = False
    user_agent: str = ""


class CaptureTarget(NamedTuple):
    """One unit of capture work: a device rendered by one engine."""

    device: DeviceProfile
    engine: str
