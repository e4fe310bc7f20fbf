"""Moving-average smoothing and swing (local extremum) detection.

A bar is a swing high when it is strictly above every one of the
``window`` bars on each side, and a swing low when strictly below.  Ties
disqualify both.  The raw swings are then cleaned so highs and lows
alternate and tiny moves are dropped:
  - Consecutive same-type swings collapse to the more extreme one
  - A type change is kept only if it moves at least SWING_MIN_MOVE
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from config import SWING_MIN_MOVE

logger = logging.getLogger(__name__)


@dataclass
class SwingPoint:
    index: int
    value: float
    is_high: bool


def smooth_series(series, window: int) -> np.ndarray:
    """Edge-clamped symmetric moving average.

    At index i the mean covers [max(0, i - window), min(n - 1, i + window)],
    so the window shrinks asymmetrically at the boundaries.  ``window <= 1``
    returns the series unchanged.
    """
    s = np.asarray(series, dtype=float)
    if window <= 1 or s.size == 0:
        return s.copy()

    n = s.size
    csum = np.concatenate(([0.0], np.cumsum(s)))
    idx = np.arange(n)
    lo = np.maximum(0, idx - window)
    hi = np.minimum(n - 1, idx + window)
    return (csum[hi + 1] - csum[lo]) / (hi - lo + 1)


def _raw_swings(s: np.ndarray, window: int) -> List[SwingPoint]:
    swings = []
    n = s.size
    for i in range(window, n - window):
        v = s[i]
        is_max = True
        is_min = True
        for k in range(1, window + 1):
            if s[i - k] >= v or s[i + k] >= v:
                is_max = False
            if s[i - k] <= v or s[i + k] <= v:
                is_min = False
            if not is_max and not is_min:
                break
        if is_max:
            swings.append(SwingPoint(i, float(v), True))
        elif is_min:
            swings.append(SwingPoint(i, float(v), False))
    return swings


def find_swings(series, window: int, min_move: float = SWING_MIN_MOVE) -> List[SwingPoint]:
    """Detect and clean swing points in a (smoothed) series.

    Args:
        series: Normalized values in [0, 1].
        window: Neighbours on each side a swing must strictly exceed.
        min_move: Minimum move between alternating swings.

    Returns:
        SwingPoints ordered by index with strictly alternating ``is_high``.
    """
    s = np.asarray(series, dtype=float)
    if window < 1 or s.size < 2 * window + 1:
        return []

    cleaned: List[SwingPoint] = []
    for sp in _raw_swings(s, window):
        if not cleaned:
            cleaned.append(sp)
            continue
        last = cleaned[-1]
        if sp.is_high == last.is_high:
            if sp.is_high and sp.value > last.value:
                cleaned[-1] = sp
            elif not sp.is_high and sp.value < last.value:
                cleaned[-1] = sp
        elif abs(sp.value - last.value) >= min_move:
            cleaned.append(sp)

    logger.debug("swings: %d cleaned from series of %d", len(cleaned), s.size)
    return cleaned
