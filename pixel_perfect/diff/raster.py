"""Raster helpers: PNG decode/encode, buffer preprocessing and pixel comparison.

Buffers are numpy arrays of shape ``(height, width, 4)`` holding RGBA uint8.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import numpy as np
from PIL import Image
from pixelmatch import pixelmatch

from pixel_perfect.errors import DiffComparisonError
from pixel_perfect.models.config import IgnoreRegion

logger = logging.getLogger(__name__)

DIFF_COLOR = (255, 0, 0)  # current brighter than (or as bright as) baseline
DIFF_COLOR_ALT = (0, 0, 255)  # current darker than baseline
AA_COLOR = (255, 255, 0)
FADE_ALPHA = 0.1
CROP_MARGIN = 2

# YIQ luma weights used by pixelmatch for its grey rendering
_Y_WEIGHTS = np.array([0.29889531, 0.58662247, 0.11448223])
# ITU-R 601-2 luma, as used by Pillow's "L" conversion
_L_WEIGHTS = np.array([0.299, 0.587, 0.114])


@dataclass
class RasterImage:
    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def channels(self) -> int:
        return int(self.pixels.shape[2])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


@dataclass
class Comparison:
    differing_pixels: int
    output: np.ndarray
    diff_mask: np.ndarray  # True where a pixel was counted as different


def decode_to_raw_buffer(path: str | Path) -> RasterImage:
    """Decode an image file to an RGBA buffer."""
    try:
        with Image.open(path) as img:
            rgba = img.convert("RGBA")
    except (OSError, ValueError) as e:
        raise DiffComparisonError(f"Could not decode image {path}: {e}") from e
    return RasterImage(np.array(rgba, dtype=np.uint8))


def encode_raw_buffer_to_png(pixels: np.ndarray, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(path, format="PNG")


def to_luminance(pixels: np.ndarray) -> np.ndarray:
    """Replace RGB with a single grey level per pixel, keeping alpha."""
    grey = np.rint(pixels[..., :3].astype(np.float64) @ _L_WEIGHTS).astype(np.uint8)
    out = pixels.copy()
    out[..., 0] = out[..., 1] = out[..., 2] = grey
    return out


def drop_alpha(pixels: np.ndarray) -> np.ndarray:
    """Make every pixel fully opaque so transparency differences disappear."""
    out = pixels.copy()
    out[..., 3] = 255
    return out


def fade(pixels: np.ndarray, alpha: float = FADE_ALPHA) -> np.ndarray:
    """Render ``pixels`` as pixelmatch draws unchanged pixels: light grey."""
    y = pixels[..., :3].astype(np.float64) @ _Y_WEIGHTS
    a = pixels[..., 3].astype(np.float64) / 255.0
    val = np.clip(np.rint(255.0 + (y - 255.0) * alpha * a), 0, 255).astype(np.uint8)
    out = np.empty_like(pixels)
    out[..., 0] = out[..., 1] = out[..., 2] = val
    out[..., 3] = 255
    return out


def region_mask(shape: tuple[int, int], regions: Iterable[IgnoreRegion]) -> np.ndarray:
    """Boolean ``(height, width)`` mask, True inside any region (clipped to the image)."""
    height, width = shape
    mask = np.zeros((height, width), dtype=bool)
    for r in regions:
        x0, y0 = min(r.x, width), min(r.y, height)
        x1, y1 = min(r.x + r.width, width), min(r.y + r.height, height)
        mask[y0:y1, x0:x1] = True
    return mask


def compare_buffers(
    current: np.ndarray,
    baseline: np.ndarray,
    threshold: float = 0.1,
    include_antialiasing: bool = False,
) -> Comparison:
    """Run pixelmatch over two equal-sized RGBA buffers.

    Counted pixels are drawn red, or blue where the current pixel is darker
    than the baseline. Ignored anti-aliasing pixels are drawn yellow.
    """
    if current.shape != baseline.shape:
        raise ValueError(f"Buffer shapes differ: {current.shape} vs {baseline.shape}")
    height, width = current.shape[:2]

    if np.array_equal(current, baseline):
        return Comparison(0, fade(current), np.zeros((height, width), dtype=bool))

    # pixelmatch is pure Python, so only the bounding box of changed pixels goes through it.
    # Two pixels of margin keep its anti-aliasing neighbourhood intact.
    ys, xs = np.nonzero(np.any(current != baseline, axis=-1))
    y0, y1 = max(int(ys.min()) - CROP_MARGIN, 0), min(int(ys.max()) + CROP_MARGIN + 1, height)
    x0, x1 = max(int(xs.min()) - CROP_MARGIN, 0), min(int(xs.max()) + CROP_MARGIN + 1, width)
    crop_w, crop_h = x1 - x0, y1 - y0

    output = [0] * (crop_w * crop_h * 4)
    count = pixelmatch(
        np.ascontiguousarray(current[y0:y1, x0:x1]).tobytes(),
        np.ascontiguousarray(baseline[y0:y1, x0:x1]).tobytes(),
        crop_w,
        crop_h,
        output,
        threshold=threshold,
        includeAA=include_antialiasing,
        alpha=FADE_ALPHA,
        aa_color=AA_COLOR,
        diff_color=DIFF_COLOR,
    )
    out = fade(current)
    cropped = np.clip(np.rint(np.asarray(output, dtype=np.float64)), 0, 255)
    out[y0:y1, x0:x1] = cropped.astype(np.uint8).reshape(crop_h, crop_w, 4)

    # Faded pixels are grey and AA pixels yellow, so pure red marks exactly the counted ones
    diff_mask = np.all(out[..., :3] == DIFF_COLOR, axis=-1) & (out[..., 3] == 255)
    darker = (current[..., :3].astype(np.float64) @ _Y_WEIGHTS) < (
        baseline[..., :3].astype(np.float64) @ _Y_WEIGHTS
    )
    out[diff_mask & darker, :3] = DIFF_COLOR_ALT

    logger.debug("pixelmatch: %d differing pixels of %d", count, width * height)
    return Comparison(int(count), out, diff_mask)
