"""Baseline store: promotes captured screenshots to baselines and tracks them in a manifest."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Sequence

from pixel_perfect.diff.engine import BASELINE_DIR_NAME, baseline_path_for
from pixel_perfect.models.baseline import BaselineEntry, BaselineManifest
from pixel_perfect.models.results import ScreenshotRecord

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


class BaselineStore:
    """Manages the baseline images under ``output_dir/baseline`` and their manifest."""

    def __init__(self, output_dir: Path, target_url: str = ""):
        self.output_dir = Path(output_dir)
        self.baseline_dir = self.output_dir / BASELINE_DIR_NAME
        self.manifest_path = self.baseline_dir / MANIFEST_NAME
        self.target_url = target_url

    def load(self) -> BaselineManifest:
        """Load the manifest from disk, or start a new one."""
        if self.manifest_path.exists():
            try:
                with open(self.manifest_path) as f:
                    data = json.load(f)
                return BaselineManifest(**data)
            except Exception as e:
                logger.warning("Failed to load baseline manifest: %s. Creating new.", e)
        return BaselineManifest(target_url=self.target_url)

    def save(self, manifest: BaselineManifest) -> None:
        self.baseline_dir.mkdir(parents=True, exist_ok=True)
        manifest.last_updated = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        with open(self.manifest_path, "w") as f:
            json.dump(manifest.model_dump(), f, indent=2)
        logger.debug("Saved baseline manifest to %s", self.manifest_path)

    def promote(self, screenshots: Sequence[ScreenshotRecord]) -> list[BaselineEntry]:
        """Move each screenshot into the baseline directory, replacing any previous baseline.

        The current-run files are gone afterwards. Returns the manifest entries written.
        """
        self.baseline_dir.mkdir(parents=True, exist_ok=True)
        manifest = self.load()
        if self.target_url:
            manifest.target_url = self.target_url

        entries = []
        for screenshot in screenshots:
            source = Path(screenshot.file_path)
            dest = baseline_path_for(source)
            if dest.parent.resolve() != self.baseline_dir.resolve():
                dest = self.baseline_dir / source.name
            source.replace(dest)

            entry = BaselineEntry(
                device_name=screenshot.device_name,
                engine_kind=screenshot.engine_kind,
                viewport_width=screenshot.viewport_width,
                viewport_height=screenshot.viewport_height,
                image_path=dest.name,
                promoted_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                image_hash=hashlib.sha256(dest.read_bytes()).hexdigest(),
            )
            manifest.baselines[dest.name] = entry
            entries.append(entry)
            logger.info("Updated baseline for %s: %s", screenshot.device_name, dest)

        self.save(manifest)
        return entries
