"""Heuristic feature scores over the extracted series.

Four independent sub-scores, each zero when there is too little data:
  - Trend:     higher-high / higher-low structure of the recent swings
  - Momentum:  net move over the lookback minus a chop penalty
  - Reversal:  double top (bearish) / double bottom (bullish)
  - S/R:       position of price between nearest support and resistance

They are combined linearly with tunable weights and clamped.  A separate
Type 2 breakout detector looks for a close clearing resistance after a
period of consolidation below it.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

from config import (
    BREAKOUT_BELOW_FRACTION,
    BREAKOUT_BELOW_MARGIN,
    BREAKOUT_CLEAR_MARGIN,
    BREAKOUT_LOOKBACK_BARS,
    BREAKOUT_MIN_POINTS,
    BREAKOUT_MIN_TREND,
    BREAKOUT_MOMENTUM_BARS,
    BREAKOUT_SCALE,
    BREAKOUT_W_CLEARANCE,
    BREAKOUT_W_MOMENTUM,
    BREAKOUT_W_TREND,
    DEFAULT_MOMENTUM_WEIGHT,
    DEFAULT_REVERSAL_WEIGHT,
    DEFAULT_SR_WEIGHT,
    DEFAULT_TREND_WEIGHT,
    MOMENTUM_LIMIT,
    MOMENTUM_LOOKBACK,
    MOMENTUM_MIN_POINTS,
    MOMENTUM_SLOPE_COEFF,
    MOMENTUM_VOL_COEFF,
    RAW_SCORE_LIMIT,
    REVERSAL_MIN_SWINGS,
    REVERSAL_SCORE,
    REVERSAL_TOLERANCE,
    SR_DISTANCE_COEFF,
    SR_LIMIT,
    SR_STRENGTH_BASE,
    TREND_MIN_SWINGS,
    TREND_TAIL_SWINGS,
)
from level_aggregator import Level, nearest_resistance, nearest_support
from swing_detector import SwingPoint

logger = logging.getLogger(__name__)


class PatternTag(str, enum.Enum):
    HH_HL = "HH_HL"
    LH_LL = "LH_LL"
    HH_LL_MIXED = "HH_LL_MIXED"
    LH_HL_MIXED = "LH_HL_MIXED"
    DOUBLE_TOP = "DOUBLE_TOP"
    DOUBLE_BOTTOM = "DOUBLE_BOTTOM"
    SUP_RES_USED = "SUP_RES_USED"
    TYPE2_BREAKOUT = "TYPE2_BREAKOUT"


@dataclass(frozen=True)
class Weights:
    trend: float = DEFAULT_TREND_WEIGHT
    momentum: float = DEFAULT_MOMENTUM_WEIGHT
    reversal: float = DEFAULT_REVERSAL_WEIGHT
    sr: float = DEFAULT_SR_WEIGHT

    def scaled(self, trend: float, momentum: float, reversal: float, sr: float) -> "Weights":
        return Weights(
            trend=self.trend * trend,
            momentum=self.momentum * momentum,
            reversal=self.reversal * reversal,
            sr=self.sr * sr,
        )


@dataclass(frozen=True)
class Breakout:
    fired: bool = False
    score: float = 0.0
    level: float = 0.0


@dataclass(frozen=True)
class FeatureBreakdown:
    trend_score: float = 0.0
    momentum_score: float = 0.0
    reversal_score: float = 0.0
    sr_score: float = 0.0
    raw_score: float = 0.0
    patterns: List[PatternTag] = field(default_factory=list)
    breakout: Breakout = Breakout()


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


# ──────────────────────────────────────────────────────────────────────
# Sub-scores
# ──────────────────────────────────────────────────────────────────────

def trend_score(swings: Sequence[SwingPoint]):
    """Return (score in [-2, 2], tag or None) from the last swing highs/lows."""
    if len(swings) < TREND_MIN_SWINGS:
        return 0.0, None

    tail = swings[-TREND_TAIL_SWINGS:]
    highs = [sp.value for sp in tail if sp.is_high]
    lows = [sp.value for sp in tail if not sp.is_high]
    if len(highs) < 2 or len(lows) < 2:
        return 0.0, None

    higher_high = highs[-1] > highs[-2]
    higher_low = lows[-1] > lows[-2]
    score = (1.0 if higher_high else -1.0) + (1.0 if higher_low else -1.0)

    if higher_high and higher_low:
        tag = PatternTag.HH_HL
    elif not higher_high and not higher_low:
        tag = PatternTag.LH_LL
    elif higher_high:
        tag = PatternTag.HH_LL_MIXED
    else:
        tag = PatternTag.LH_HL_MIXED
    return score, tag


def momentum_score(series) -> float:
    """Slope helps, volatility of first differences hurts.  Clamped to ±1.5."""
    s = np.asarray(series, dtype=float)
    if s.size < MOMENTUM_MIN_POINTS:
        return 0.0

    window = s[-MOMENTUM_LOOKBACK:]
    slope = window[-1] - window[0]
    stdev = float(np.std(np.diff(window)))
    score = MOMENTUM_SLOPE_COEFF * slope - MOMENTUM_VOL_COEFF * stdev
    return _clamp(float(score), -MOMENTUM_LIMIT, MOMENTUM_LIMIT)


def reversal_score(swings: Sequence[SwingPoint]):
    """Return (score, tags) for double top (−) and double bottom (+)."""
    if len(swings) < REVERSAL_MIN_SWINGS:
        return 0.0, []

    highs = [sp.value for sp in swings if sp.is_high]
    lows = [sp.value for sp in swings if not sp.is_high]

    score = 0.0
    tags = []
    if len(highs) >= 2 and abs(highs[-1] - highs[-2]) <= REVERSAL_TOLERANCE:
        score -= REVERSAL_SCORE
        tags.append(PatternTag.DOUBLE_TOP)
    if len(lows) >= 2 and abs(lows[-1] - lows[-2]) <= REVERSAL_TOLERANCE:
        score += REVERSAL_SCORE
        tags.append(PatternTag.DOUBLE_BOTTOM)
    return score, tags


def sr_score(last: float, levels: Sequence[Level]):
    """Return (score in [-1, 1], used) from distance to nearest barriers.

    Room above support is bullish, room below resistance is bearish, both
    weighted by the level's strength.
    """
    support = nearest_support(levels, last)
    resistance = nearest_resistance(levels, last)

    score = 0.0
    if support is not None:
        score += SR_DISTANCE_COEFF * (last - support.price) * (SR_STRENGTH_BASE + support.strength)
    if resistance is not None:
        score -= SR_DISTANCE_COEFF * (resistance.price - last) * (SR_STRENGTH_BASE + resistance.strength)
    used = support is not None or resistance is not None
    return _clamp(score, -SR_LIMIT, SR_LIMIT), used


def detect_breakout(closes, levels: Sequence[Level], trend: float) -> Breakout:
    """Type 2 breakout: close clears resistance after consolidating below it.

    Requires BREAKOUT_MIN_POINTS closes, at least one resistance level and
    a trend score of at least BREAKOUT_MIN_TREND.
    """
    c = np.asarray(closes, dtype=float)
    resistances = [lvl.price for lvl in levels if not lvl.is_support]
    if c.size < BREAKOUT_MIN_POINTS or not resistances or trend < BREAKOUT_MIN_TREND:
        return Breakout()

    last = float(c[-1])
    above = [p for p in resistances if p >= last]
    level = min(above) if above else max(resistances)

    recent = c[-BREAKOUT_LOOKBACK_BARS:]
    below = np.count_nonzero(recent <= level - BREAKOUT_BELOW_MARGIN) / recent.size
    if below < BREAKOUT_BELOW_FRACTION or last - level < BREAKOUT_CLEAR_MARGIN:
        return Breakout(level=level)

    clearance = _clamp((last - level) / BREAKOUT_SCALE, 0.0, 1.0)
    thrust = _clamp((last - float(c[-BREAKOUT_MOMENTUM_BARS])) / BREAKOUT_SCALE, 0.0, 1.0)
    trend_part = _clamp(trend / 2.0, 0.0, 1.0)
    score = (BREAKOUT_W_CLEARANCE * clearance
             + BREAKOUT_W_MOMENTUM * thrust
             + BREAKOUT_W_TREND * trend_part)
    return Breakout(fired=True, score=_clamp(score, 0.0, 1.0), level=level)


# ──────────────────────────────────────────────────────────────────────
# Combined score
# ──────────────────────────────────────────────────────────────────────

def score_features(
    closes,
    smooth,
    swings: Sequence[SwingPoint],
    levels: Sequence[Level],
    weights: Weights = Weights(),
) -> FeatureBreakdown:
    """Compute all sub-scores, the weighted raw score and the breakout.

    Args:
        closes: Raw extracted close series (used by the breakout detector).
        smooth: Smoothed close series (momentum and S/R position).
        swings: Cleaned swing points of ``smooth``.
        levels: Clustered support and resistance levels.
        weights: Sub-score multipliers.
    """
    smooth = np.asarray(smooth, dtype=float)
    patterns: List[PatternTag] = []

    t_score, t_tag = trend_score(swings)
    if t_tag is not None:
        patterns.append(t_tag)

    m_score = momentum_score(smooth)

    r_score, r_tags = reversal_score(swings)
    patterns.extend(r_tags)

    s_score = 0.0
    if smooth.size:
        s_score, used = sr_score(float(smooth[-1]), levels)
        if used:
            patterns.append(PatternTag.SUP_RES_USED)

    breakout = detect_breakout(closes, levels, t_score)
    if breakout.fired:
        patterns.append(PatternTag.TYPE2_BREAKOUT)

    raw = (weights.trend * t_score
           + weights.momentum * m_score
           + weights.reversal * r_score
           + weights.sr * s_score)
    raw = _clamp(raw, -RAW_SCORE_LIMIT, RAW_SCORE_LIMIT)

    logger.debug("scores trend=%.3f mom=%.3f rev=%.3f sr=%.3f raw=%.3f breakout=%s",
                 t_score, m_score, r_score, s_score, raw, breakout.fired)

    return FeatureBreakdown(
        trend_score=t_score,
        momentum_score=m_score,
        reversal_score=r_score,
        sr_score=s_score,
        raw_score=raw,
        patterns=patterns,
        breakout=breakout,
    )
