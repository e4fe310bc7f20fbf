"""Stop-loss / target / risk-reward plan from the nearest levels.

Bullish: stop below support, target1 at resistance, target2 extends past it.
Bearish: mirrored.  Missing levels fall back to ±PLAN_FALLBACK_DISTANCE.
"""

from dataclasses import dataclass
from typing import Sequence

from config import (
    PLAN_FALLBACK_DISTANCE,
    PLAN_STOP_BUFFER,
    PLAN_TARGET2_EXTENSION,
)
from level_aggregator import Level, nearest_resistance, nearest_support


@dataclass(frozen=True)
class TradePlan:
    stop_loss: float = 0.0
    target1: float = 0.0
    target2: float = 0.0
    risk_reward: float = 0.0


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def plan_trade(last: float, bullish: bool, levels: Sequence[Level]) -> TradePlan:
    """Build a plan for a long (``bullish``) or short position at ``last``.

    All prices are normalized and clamped to [0, 1].  Risk/reward is
    reward / risk measured from ``last``; a non-positive risk gives 0.
    """
    sup = nearest_support(levels, last)
    res = nearest_resistance(levels, last)
    support = _clamp01(sup.price if sup is not None else last - PLAN_FALLBACK_DISTANCE)
    resistance = _clamp01(res.price if res is not None else last + PLAN_FALLBACK_DISTANCE)

    if bullish:
        stop = _clamp01(support - PLAN_STOP_BUFFER)
        target1 = resistance
        target2 = _clamp01(resistance + PLAN_TARGET2_EXTENSION * (resistance - last))
        reward = target1 - last
        risk = last - stop
    else:
        stop = _clamp01(resistance + PLAN_STOP_BUFFER)
        target1 = support
        target2 = _clamp01(support - PLAN_TARGET2_EXTENSION * (last - support))
        reward = last - target1
        risk = stop - last

    rr = reward / risk if risk > 0 else 0.0
    return TradePlan(stop_loss=stop, target1=target1, target2=target2, risk_reward=max(0.0, rr))
