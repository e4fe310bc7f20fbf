"""Price and volume series extraction from candlestick screenshots.

The chart area is cropped by fixed fractional margins, then every pixel
column is classified by candle colour:
  - Bull-majority column: close = topmost bull pixel (candle body top)
  - Bear-majority column: close = bottommost bear pixel (candle body bottom)

Rows are normalized so the top of the chart area is 1.0 (highest price)
and the bottom is 0.0.  The volume series comes from a separate panel
band near the bottom of the image, measured as the height of the first
contiguous coloured bar above the panel floor.

Columns without any candle pixel are left unresolved and filled forward,
then backward.  A fully unresolved series falls back to a constant.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd

from config import (
    CLOSE_FALLBACK,
    CROP_BOTTOM_FRAC,
    CROP_LEFT_FRAC,
    CROP_RIGHT_FRAC,
    CROP_TOP_FRAC,
    DEFAULT_BEAR_RGB,
    DEFAULT_BULL_RGB,
    DEFAULT_COLOR_TOLERANCE,
    VOLUME_FALLBACK,
    VOLUME_PANEL_BOTTOM_FRAC,
    VOLUME_PANEL_TOP_FRAC,
)

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class ColorConfig:
    bull: RGB = DEFAULT_BULL_RGB
    bear: RGB = DEFAULT_BEAR_RGB
    tolerance: int = DEFAULT_COLOR_TOLERANCE

    def __post_init__(self) -> None:
        for name in ("bull", "bear"):
            rgb = getattr(self, name)
            if len(rgb) != 3 or any(not 0 <= c <= 255 for c in rgb):
                raise ValueError(f"{name} colour must be three channels in 0..255, got {rgb!r}")
            object.__setattr__(self, name, tuple(int(c) for c in rgb))
        if self.tolerance < 0:
            raise ValueError(f"tolerance must be non-negative, got {self.tolerance}")


# ──────────────────────────────────────────────────────────────────────
# Colour classification
# ──────────────────────────────────────────────────────────────────────

def matches(pixel: Sequence[int], target: Sequence[int], tolerance: int) -> bool:
    """True iff every R, G, B channel is within ``tolerance`` of the target."""
    return all(abs(int(pixel[i]) - int(target[i])) <= tolerance for i in range(3))


def color_mask(region: np.ndarray, target: Sequence[int], tolerance: int) -> np.ndarray:
    """Vectorized :func:`matches` over an (H, W, 3) region -> (H, W) bool mask."""
    diff = np.abs(region[..., :3].astype(np.int16) - np.asarray(target, dtype=np.int16))
    return np.all(diff <= tolerance, axis=-1)


# ──────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────

def _as_grid(grid) -> np.ndarray:
    arr = np.asarray(grid)
    if arr.ndim != 3 or arr.shape[2] < 3:
        raise ValueError(f"pixel grid must have shape (height, width, 3), got {arr.shape}")
    return arr


def _column_bounds(width: int) -> Tuple[int, int]:
    return int(CROP_LEFT_FRAC * width), width - int(CROP_RIGHT_FRAC * width)


def fill_gaps(values: np.ndarray, fallback: float) -> np.ndarray:
    """Forward-fill then backward-fill NaN sentinels; all-NaN -> ``fallback``."""
    filled = pd.Series(values, dtype=float).ffill().bfill().fillna(fallback)
    return np.clip(filled.to_numpy(), 0.0, 1.0)


# ──────────────────────────────────────────────────────────────────────
# Extraction
# ──────────────────────────────────────────────────────────────────────

def extract_close(grid, colors: ColorConfig = ColorConfig()) -> np.ndarray:
    """Extract the normalized close series, one value per chart column.

    Args:
        grid: RGB pixel grid of shape (height, width, 3).
        colors: Candle colours and match tolerance.

    Returns:
        float array in [0, 1] with no unresolved entries.
    """
    arr = _as_grid(grid)
    h, w = arr.shape[:2]
    y0 = int(CROP_TOP_FRAC * h)
    y1 = h - int(CROP_BOTTOM_FRAC * h)
    x0, x1 = _column_bounds(w)

    n_cols = max(0, x1 - x0)
    span = y1 - y0
    if n_cols == 0 or span <= 0:
        return np.full(n_cols, CLOSE_FALLBACK)

    region = arr[y0:y1, x0:x1]
    bull = color_mask(region, colors.bull, colors.tolerance)
    bear = color_mask(region, colors.bear, colors.tolerance)

    bull_count = bull.sum(axis=0)
    bear_count = bear.sum(axis=0)

    top_bull = bull.argmax(axis=0)
    bottom_bear = (span - 1) - bear[::-1].argmax(axis=0)
    rows = np.where(bull_count > bear_count, top_bull, bottom_bear)

    values = 1.0 - rows / span
    unresolved = (bull_count + bear_count) == 0
    values[unresolved] = np.nan

    if unresolved.all():
        logger.warning("no candle pixels found in %d columns; close falls back to %.2f",
                       n_cols, CLOSE_FALLBACK)
    else:
        logger.debug("close series: %d columns, %d unresolved", n_cols, int(unresolved.sum()))

    return fill_gaps(values, CLOSE_FALLBACK)


def extract_volume(grid, colors: ColorConfig = ColorConfig()) -> np.ndarray:
    """Extract the normalized volume series from the volume panel band.

    Each column is scanned bottom-to-top; the first contiguous run of
    bull/bear coloured pixels is the bar height, divided by panel height.
    """
    arr = _as_grid(grid)
    h, w = arr.shape[:2]
    p0 = int(VOLUME_PANEL_TOP_FRAC * h)
    p1 = int(VOLUME_PANEL_BOTTOM_FRAC * h)
    x0, x1 = _column_bounds(w)

    n_cols = max(0, x1 - x0)
    panel_h = p1 - p0
    if n_cols == 0 or panel_h <= 0:
        return np.full(n_cols, VOLUME_FALLBACK)

    panel = arr[p0:p1, x0:x1]
    colored = (color_mask(panel, colors.bull, colors.tolerance)
               | color_mask(panel, colors.bear, colors.tolerance))

    values = np.full(n_cols, np.nan)
    for c in range(n_cols):
        col = colored[::-1, c]
        hits = np.flatnonzero(col)
        if hits.size == 0:
            continue
        run = col[hits[0]:]
        stops = np.flatnonzero(~run)
        length = stops[0] if stops.size else run.size
        values[c] = length / panel_h

    return fill_gaps(values, VOLUME_FALLBACK)
