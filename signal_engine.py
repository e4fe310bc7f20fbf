"""Single-timeframe prediction pipeline.

pixels → close/volume series → smoothed series → swings → levels →
feature scores → calibrated probability → signal + trade plan

Calibration steps, in order:
  1. Scale the raw score by time-of-day and open-proximity multipliers
  2. pBull = sigmoid(score / 2.5)
  3. Small scores collapse into a Neutral zone (confidence 50–60)
  4. A Neutral result is promoted to Bullish when a Type 2 breakout fired
  5. Confidence is cut when price sits close to the opposing barrier
  6. Signal tier is gated by risk/reward and the confidence threshold

Configuration is an explicit, immutable ``EngineConfig`` passed to every
call; timeframe scaling derives a new config instead of mutating one.
"""

import dataclasses
import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from config import (
    AFTER_HOURS_MULTIPLIER,
    BARRIER_MID,
    BARRIER_MID_PENALTY,
    BARRIER_NEAR,
    BARRIER_NEAR_PENALTY,
    BREAKOUT_BASE_CONFIDENCE,
    BREAKOUT_CONFIDENCE_SPAN,
    CLOSE_FALLBACK,
    DEFAULT_CONFIDENCE_THRESHOLD,
    MARKET_CLOSE_MIN,
    MARKET_OPEN_MIN,
    NEUTRAL_BASE_CONFIDENCE,
    NEUTRAL_CONFIDENCE_SPAN,
    NEUTRAL_MAX_TILT,
    NEUTRAL_ZONE,
    OPEN_DECAY_FLOOR,
    OPEN_DECAY_WINDOW_MIN,
    PREMARKET_MULTIPLIER,
    PREMARKET_OPEN_MIN,
    REGULAR_MULTIPLIER,
    RR_MIN_SIGNAL,
    RR_STRONG,
    SIGMOID_SATURATION,
    SIGMOID_SCALE,
    SMOOTH_WINDOW,
    STRONG_CONFIDENCE,
    STRONG_TIER_MIN_CONFIDENCE,
    SWING_WINDOW,
    TIMEFRAME_WEIGHT_FACTORS,
)
from feature_scorer import FeatureBreakdown, Weights, score_features
from level_aggregator import Level, cluster_levels, nearest_resistance, nearest_support, split_levels
from series_extractor import ColorConfig, extract_close, extract_volume
from swing_detector import SwingPoint, find_swings, smooth_series
from trade_planner import plan_trade

logger = logging.getLogger(__name__)

UNKNOWN_TIME = -1


class Label(str, enum.Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class Signal(str, enum.Enum):
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    NEUTRAL = "NEUTRAL"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"


class BuyType(str, enum.Enum):
    NONE = "NONE"
    TYPE2_BREAKOUT = "TYPE2_BREAKOUT"


@dataclass(frozen=True)
class EngineConfig:
    colors: ColorConfig = ColorConfig()
    weights: Weights = Weights()
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    # A breakout-promoted long with RR >= 1.2 bypasses the confidence threshold.
    breakout_exemption_single: bool = True
    breakout_exemption_multi: bool = False
    # Fused confluence gate counts timeframes agreeing with the fused label
    # instead of bullish timeframes.
    agreement_confluence_multi: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 100.0:
            raise ValueError(
                f"confidence_threshold must be in [0, 100], got {self.confidence_threshold}"
            )

    def for_timeframe(self, timeframe: Optional[int]) -> "EngineConfig":
        """Config with weights scaled for a 1/5/30-minute chart."""
        if timeframe is None:
            return self
        if timeframe not in TIMEFRAME_WEIGHT_FACTORS:
            raise ValueError(f"unsupported timeframe {timeframe!r}; expected one of "
                             f"{sorted(TIMEFRAME_WEIGHT_FACTORS)}")
        return dataclasses.replace(
            self, weights=self.weights.scaled(*TIMEFRAME_WEIGHT_FACTORS[timeframe])
        )


@dataclass
class ChartAnalysis:
    closes: np.ndarray
    smooth: np.ndarray
    volume: np.ndarray
    swings: List[SwingPoint]
    levels: List[Level]

    @property
    def last(self) -> float:
        return float(self.smooth[-1]) if self.smooth.size else CLOSE_FALLBACK


@dataclass(frozen=True)
class Prediction:
    p_bull: float
    p_bear: float
    label: Label
    confidence: float
    signal: Signal
    stop_loss: float = 0.0
    target1: float = 0.0
    target2: float = 0.0
    risk_reward: float = 0.0
    buy_type: BuyType = BuyType.NONE
    timeframe: Optional[int] = None
    timeframe_bullish: Dict[int, bool] = field(default_factory=dict)
    confluence: int = 0
    current_price: float = 0.0
    adjusted_score: float = 0.0
    support_levels: List[Level] = field(default_factory=list)
    resistance_levels: List[Level] = field(default_factory=list)
    active_support: Optional[float] = None
    active_resistance: Optional[float] = None
    support_distance: Optional[float] = None
    resistance_distance: Optional[float] = None
    breakdown: FeatureBreakdown = FeatureBreakdown()
    trend_points: List[Tuple[int, float]] = field(default_factory=list)

    @property
    def bullish(self) -> bool:
        return self.label is Label.BULLISH


# ──────────────────────────────────────────────────────────────────────
# Time-of-day calibration
# ──────────────────────────────────────────────────────────────────────

def time_to_minutes(hhmm) -> int:
    """Parse a 24-hour ``HH:MM`` string; anything malformed -> UNKNOWN_TIME."""
    if not isinstance(hhmm, str) or len(hhmm) != 5 or hhmm[2] != ":":
        return UNKNOWN_TIME
    hh, mm = hhmm[:2], hhmm[3:]
    if not (hh.isascii() and hh.isdigit() and mm.isascii() and mm.isdigit()):
        return UNKNOWN_TIME
    hours, minutes = int(hh), int(mm)
    if hours > 23 or minutes > 59:
        return UNKNOWN_TIME
    return hours * 60 + minutes


def time_of_day_multiplier(minutes: int) -> float:
    if minutes < 0:
        return 1.0
    if PREMARKET_OPEN_MIN <= minutes < MARKET_OPEN_MIN:
        return PREMARKET_MULTIPLIER
    if MARKET_OPEN_MIN <= minutes <= MARKET_CLOSE_MIN:
        return REGULAR_MULTIPLIER
    return AFTER_HOURS_MULTIPLIER


def open_proximity_decay(minutes: int) -> float:
    """OPEN_DECAY_FLOOR exactly at the open, rising linearly to 1.0 at ±window."""
    if minutes < 0:
        return 1.0
    dist = abs(minutes - MARKET_OPEN_MIN)
    if dist >= OPEN_DECAY_WINDOW_MIN:
        return 1.0
    t = dist / OPEN_DECAY_WINDOW_MIN
    return min(1.0, OPEN_DECAY_FLOOR + (1.0 - OPEN_DECAY_FLOOR) * t)


def sigmoid(x: float) -> float:
    if x > SIGMOID_SATURATION:
        return 1.0
    if x < -SIGMOID_SATURATION:
        return 0.0
    return 1.0 / (1.0 + math.exp(-x))


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


# ──────────────────────────────────────────────────────────────────────
# Signal tiering
# ──────────────────────────────────────────────────────────────────────

def tier_signal(bullish: bool, confidence: float, risk_reward: float) -> Signal:
    """Map risk/reward and confidence to a signal tier.

    RR < 1.2 is always NEUTRAL (this includes the hard RR < 1.0 floor).
    """
    if risk_reward < RR_MIN_SIGNAL:
        return Signal.NEUTRAL
    if risk_reward < RR_STRONG:
        return Signal.BUY if bullish else Signal.SELL
    if confidence >= STRONG_CONFIDENCE:
        return Signal.STRONG_BUY if bullish else Signal.STRONG_SELL
    if confidence >= STRONG_TIER_MIN_CONFIDENCE:
        return Signal.BUY if bullish else Signal.SELL
    return Signal.NEUTRAL


def apply_threshold(
    signal: Signal,
    confidence: float,
    risk_reward: float,
    threshold: float,
    breakout_exempt: bool = False,
) -> Signal:
    """Force NEUTRAL below ``threshold``; exempt breakout longs are forced to BUY."""
    if breakout_exempt and risk_reward >= RR_MIN_SIGNAL:
        return Signal.STRONG_BUY if confidence >= STRONG_CONFIDENCE else Signal.BUY
    if confidence < threshold:
        return Signal.NEUTRAL
    return signal


# ──────────────────────────────────────────────────────────────────────
# Pipeline
# ──────────────────────────────────────────────────────────────────────

def analyze_chart(grid, colors: ColorConfig = ColorConfig()) -> ChartAnalysis:
    """Extract series, swings and levels from a pixel grid."""
    closes = extract_close(grid, colors)
    volume = extract_volume(grid, colors)
    smooth = smooth_series(closes, SMOOTH_WINDOW)
    swings = find_swings(smooth, SWING_WINDOW)
    levels = cluster_levels(swings)
    logger.debug("analysis: %d points, %d swings, %d levels",
                 closes.size, len(swings), len(levels))
    return ChartAnalysis(closes=closes, smooth=smooth, volume=volume, swings=swings, levels=levels)


def evaluate(
    analysis: ChartAnalysis,
    config: EngineConfig,
    minutes: int = UNKNOWN_TIME,
    timeframe: Optional[int] = None,
) -> Prediction:
    """Score an analysed chart and produce a normalized-space Prediction."""
    breakdown = score_features(
        analysis.closes, analysis.smooth, analysis.swings, analysis.levels, config.weights,
    )
    adjusted = (breakdown.raw_score
                * time_of_day_multiplier(minutes)
                * open_proximity_decay(minutes))

    p_bull = sigmoid(adjusted / SIGMOID_SCALE)
    label = Label.BULLISH if p_bull >= 0.5 else Label.BEARISH
    confidence = 100.0 * max(p_bull, 1.0 - p_bull)

    if abs(adjusted) < NEUTRAL_ZONE:
        ratio = _clamp(adjusted / NEUTRAL_ZONE, -1.0, 1.0)
        p_bull = 0.5 + NEUTRAL_MAX_TILT * ratio
        confidence = NEUTRAL_BASE_CONFIDENCE + NEUTRAL_CONFIDENCE_SPAN * abs(ratio)
        label = Label.NEUTRAL

    last = analysis.last
    supports, resistances = split_levels(analysis.levels)
    sup = nearest_support(supports, last)
    res = nearest_resistance(resistances, last)

    common = dict(
        timeframe=timeframe,
        current_price=last,
        adjusted_score=adjusted,
        support_levels=supports,
        resistance_levels=resistances,
        active_support=sup.price if sup else None,
        active_resistance=res.price if res else None,
        support_distance=last - sup.price if sup else None,
        resistance_distance=res.price - last if res else None,
        breakdown=breakdown,
        trend_points=[(sp.index, sp.value) for sp in analysis.swings],
    )

    buy_type = BuyType.NONE
    if label is Label.NEUTRAL:
        if not breakdown.breakout.fired:
            return Prediction(
                p_bull=p_bull,
                p_bear=1.0 - p_bull,
                label=label,
                confidence=_clamp(confidence, 0.0, 100.0),
                signal=Signal.NEUTRAL,
                timeframe_bullish={timeframe: False} if timeframe else {},
                **common,
            )
        score = breakdown.breakout.score
        label = Label.BULLISH
        buy_type = BuyType.TYPE2_BREAKOUT
        confidence = _clamp(BREAKOUT_BASE_CONFIDENCE + BREAKOUT_CONFIDENCE_SPAN * score, 0.0, 100.0)
        p_bull = _clamp(0.65 + 0.25 * score, 0.0, 1.0)

    bullish = label is Label.BULLISH
    plan = plan_trade(last, bullish, analysis.levels)

    barrier = common["resistance_distance"] if bullish else common["support_distance"]
    if barrier is not None:
        if barrier < BARRIER_NEAR:
            confidence *= BARRIER_NEAR_PENALTY
        elif barrier < BARRIER_MID:
            confidence *= BARRIER_MID_PENALTY
    confidence = _clamp(confidence, 0.0, 100.0)

    signal = tier_signal(bullish, confidence, plan.risk_reward)
    exempt = (config.breakout_exemption_single and bullish
              and buy_type is BuyType.TYPE2_BREAKOUT)
    signal = apply_threshold(signal, confidence, plan.risk_reward,
                             config.confidence_threshold, breakout_exempt=exempt)

    logger.debug("prediction %s %s conf=%.1f rr=%.2f", label.value, signal.value,
                 confidence, plan.risk_reward)

    return Prediction(
        p_bull=p_bull,
        p_bear=1.0 - p_bull,
        label=label,
        confidence=confidence,
        signal=signal,
        stop_loss=plan.stop_loss,
        target1=plan.target1,
        target2=plan.target2,
        risk_reward=plan.risk_reward,
        buy_type=buy_type,
        timeframe_bullish={timeframe: bullish} if timeframe else {},
        confluence=1 if bullish else 0,
        **common,
    )


def scale_prediction(pred: Prediction, price_scale: Optional[Tuple[float, float]]) -> Prediction:
    """Map normalized prices to a real (min, max) range; distances stay normalized.

    Plan fields are only mapped when a plan exists (non-Neutral label), so a
    Neutral result keeps its zeroed plan.
    """
    if price_scale is None:
        return pred
    lo, hi = (float(v) for v in price_scale)
    if not hi > lo:
        raise ValueError(f"price scale must satisfy min < max, got ({lo}, {hi})")

    def to_price(v: float) -> float:
        return lo + v * (hi - lo)

    def map_levels(levels: List[Level]) -> List[Level]:
        return [dataclasses.replace(lvl, price=to_price(lvl.price)) for lvl in levels]

    changes = dict(
        current_price=to_price(pred.current_price),
        support_levels=map_levels(pred.support_levels),
        resistance_levels=map_levels(pred.resistance_levels),
        active_support=to_price(pred.active_support) if pred.active_support is not None else None,
        active_resistance=(to_price(pred.active_resistance)
                           if pred.active_resistance is not None else None),
    )
    if pred.label is not Label.NEUTRAL:
        changes.update(
            stop_loss=to_price(pred.stop_loss),
            target1=to_price(pred.target1),
            target2=to_price(pred.target2),
        )
    return dataclasses.replace(pred, **changes)


def run_pipeline(
    grid,
    config: EngineConfig = EngineConfig(),
    time_str: str = "",
    timeframe: Optional[int] = None,
    price_scale: Optional[Tuple[float, float]] = None,
) -> Prediction:
    """Full single-timeframe prediction for one pixel grid.

    Args:
        grid: RGB pixel grid of shape (height, width, 3).
        config: Colours, base weights and thresholds.
        time_str: Market time as ``HH:MM``; malformed -> neutral time adjustment.
        timeframe: 1, 5 or 30 to apply timeframe weight factors, else None.
        price_scale: Optional real (min, max) price range for the output.
    """
    _, pred = run_analysis(grid, config, time_str, timeframe)
    return scale_prediction(pred, price_scale)


def run_analysis(
    grid,
    config: EngineConfig = EngineConfig(),
    time_str: str = "",
    timeframe: Optional[int] = None,
) -> Tuple[ChartAnalysis, Prediction]:
    """Analysis and normalized (unscaled) prediction for one pixel grid."""
    minutes = time_to_minutes(time_str)
    if time_str and minutes == UNKNOWN_TIME:
        logger.warning("unrecognised time %r; time adjustments disabled", time_str)
    effective = config.for_timeframe(timeframe)
    analysis = analyze_chart(grid, effective.colors)
    return analysis, evaluate(analysis, effective, minutes, timeframe)
