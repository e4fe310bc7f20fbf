"""Support / resistance levels from clustered swing points.

Single incremental pass over the swings (not k-means): a swing joins the
first existing level of its type within LEVEL_TOLERANCE, pulling the level
price 30% toward itself, or starts a new level.  Swing lows feed support
levels, swing highs feed resistance levels.

After clustering, each side keeps its MAX_LEVELS most-touched levels,
sorted ascending by price.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from config import (
    LEVEL_MERGE_KEEP,
    LEVEL_STRENGTH_CAP,
    LEVEL_TOLERANCE,
    MAX_LEVELS,
)
from swing_detector import SwingPoint

logger = logging.getLogger(__name__)


@dataclass
class Level:
    price: float
    touches: int
    strength: float
    is_support: bool


def cluster_levels(
    swings: Iterable[SwingPoint],
    tolerance: float = LEVEL_TOLERANCE,
    max_levels: int = MAX_LEVELS,
) -> List[Level]:
    """Cluster swings into support and resistance levels.

    Returns:
        Support levels followed by resistance levels, each side holding at
        most ``max_levels`` entries sorted ascending by price.
    """
    supports: List[Level] = []
    resistances: List[Level] = []

    for sp in swings:
        levels = resistances if sp.is_high else supports
        for lvl in levels:
            if abs(lvl.price - sp.value) <= tolerance:
                lvl.price = LEVEL_MERGE_KEEP * lvl.price + (1.0 - LEVEL_MERGE_KEEP) * sp.value
                lvl.touches += 1
                break
        else:
            levels.append(Level(price=sp.value, touches=1, strength=0.0, is_support=not sp.is_high))

    return _finalize(supports, max_levels) + _finalize(resistances, max_levels)


def _finalize(levels: List[Level], max_levels: int) -> List[Level]:
    for lvl in levels:
        lvl.strength = min(lvl.touches, LEVEL_STRENGTH_CAP) / LEVEL_STRENGTH_CAP
    # Stable sort: ties keep creation order.
    top = sorted(levels, key=lambda lvl: lvl.touches, reverse=True)[:max_levels]
    return sorted(top, key=lambda lvl: lvl.price)


def split_levels(levels: Iterable[Level]) -> Tuple[List[Level], List[Level]]:
    """(supports, resistances), each preserving input order."""
    supports = [lvl for lvl in levels if lvl.is_support]
    resistances = [lvl for lvl in levels if not lvl.is_support]
    return supports, resistances


def nearest_support(levels: Iterable[Level], price: float) -> Optional[Level]:
    """Highest support level at or below ``price``."""
    below = [lvl for lvl in levels if lvl.is_support and lvl.price <= price]
    return max(below, key=lambda lvl: lvl.price) if below else None


def nearest_resistance(levels: Iterable[Level], price: float) -> Optional[Level]:
    """Lowest resistance level at or above ``price``."""
    above = [lvl for lvl in levels if not lvl.is_support and lvl.price >= price]
    return min(above, key=lambda lvl: lvl.price) if above else None
