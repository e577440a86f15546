"""Configuration models for Pixel Perfect runs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from pydantic import BaseModel, Field, field_validator

from .device import DeviceProfile, EngineKind


class IgnoreRegion(BaseModel):
    """A rectangle, in image pixels, excluded from diff statistics and visualization."""

    x: int = Field(default=0, ge=0)
    y: int = Field(default=0, ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    @classmethod
    def parse(cls, value: str) -> "IgnoreRegion":
        """Parse the CLI form ``x,y,width,height``."""
        parts = [p.strip() for p in value.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Expected x,y,width,height but got {value!r}")
        try:
            x, y, width, height = (int(p) for p in parts)
        except ValueError:
            raise ValueError(f"Region values must be integers: {value!r}") from None
        return cls(x=x, y=y, width=width, height=height)


class DiffOptions(BaseModel):
    # Fraction of the maximum per-pixel colour distance treated as equal
    threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    ignore_antialiasing: bool = True
    ignore_colors: bool = False
    ignore_transparency: bool = True
    ignore_regions: list[IgnoreRegion] = Field(default_factory=list)


class RetryPolicy(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    backoff_seconds: float = Field(default=2.0, ge=0.0)


class CaptureSettings(BaseModel):
    headless: bool = True
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--disable-gpu",
            "--disable-dev-shm-usage",
            "--disable-setuid-sandbox",
            "--no-sandbox",
        ]
    )
    navigation_timeout_ms: int = Field(default=60000, gt=0)
    network_idle_timeout_ms: int = Field(default=10000, gt=0)

    # Settle pass
    animation_settle_ms: int = Field(default=500, ge=0)
    image_load_timeout_ms: int = Field(default=5000, ge=0)
    post_settle_ms: int = Field(default=250, ge=0)

    retry: RetryPolicy = Field(default_factory=RetryPolicy)


class PixelPerfectConfig(BaseModel):
    # Target
    url: str

    # Devices and engines; an empty device list means the registry defaults
    devices: list[Union[str, DeviceProfile]] = Field(default_factory=list)
    browsers: list[EngineKind] = Field(default_factory=lambda: ["chromium"])

    # Output
    output_dir: str = "./screenshots"

    # Execution limits
    max_parallel_browsers: int = Field(default=3, ge=1)

    diff: DiffOptions = Field(default_factory=DiffOptions)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)

    @field_validator("url")
    @classmethod
    def url_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("URL is required")
        return v.strip()

    @field_validator("browsers")
    @classmethod
    def dedupe_browsers(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one browser is required")
        return list(dict.fromkeys(v))

    @classmethod
    def load(cls, path: str | Path) -> "PixelPerfectConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
