"""Baseline manifest data structures."""

from __future__ import annotations

from pydantic import BaseModel, Field


class BaselineEntry(BaseModel):
    device_name: str
    engine_kind: str
    viewport_width: int
    viewport_height: int
    image_path: str  # file name inside the baseline directory
    promoted_at: str  # ISO timestamp
    image_hash: str  # SHA-256 hex digest


class BaselineManifest(BaseModel):
    target_url: str = ""
    last_updated: str = ""
    baselines: dict[str, BaselineEntry] = Field(default_factory=dict)
    # key: baseline file name, e.g. "iphone-12.png"
