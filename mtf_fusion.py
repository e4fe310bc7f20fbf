"""Multi-timeframe fusion of 1-, 5- and 30-minute predictions.

Each chart runs through the single-timeframe pipeline with its own
timeframe-scaled weights.  The results are reconciled with bias locking:
  - Bias is the 30m label, or the 5m label when 30m is Neutral
  - A non-Neutral bias stands only if 5m agrees with it
  - A Neutral bias yields the 5m label only when 1m and 5m agree

The trade plan is anchored on the 30m chart's price and levels.
"""

import dataclasses
import logging
from typing import Mapping, Optional, Tuple

from config import FUSION_WEIGHTS, MIN_CONFLUENCE, TIMEFRAMES
from signal_engine import (
    BuyType,
    EngineConfig,
    Label,
    Prediction,
    Signal,
    analyze_chart,
    apply_threshold,
    evaluate,
    scale_prediction,
    tier_signal,
    time_to_minutes,
)
from trade_planner import TradePlan, plan_trade

logger = logging.getLogger(__name__)


def fuse_predictions(preds: Mapping[int, Prediction], config: EngineConfig) -> Prediction:
    """Reconcile normalized 1/5/30-minute predictions into one.

    Args:
        preds: Mapping of timeframe (1, 5, 30) to its unscaled Prediction.
        config: Supplies the confidence threshold and breakout policy.
    """
    missing = [tf for tf in TIMEFRAMES if tf not in preds]
    if missing:
        raise ValueError(f"missing predictions for timeframes {missing}")

    p1, p5, p30 = preds[1], preds[5], preds[30]
    p_bull = sum(FUSION_WEIGHTS[tf] * preds[tf].p_bull for tf in TIMEFRAMES)
    confidence = 100.0 * max(p_bull, 1.0 - p_bull)

    bias = p30.label if p30.label is not Label.NEUTRAL else p5.label
    if bias is Label.NEUTRAL:
        agree = p1.label == p5.label and p5.label is not Label.NEUTRAL
        label = p5.label if agree else Label.NEUTRAL
    else:
        label = bias if p5.label == bias else Label.NEUTRAL

    timeframe_bullish = {tf: preds[tf].bullish for tf in TIMEFRAMES}
    confluence = sum(timeframe_bullish.values())

    plan = TradePlan()
    signal = Signal.NEUTRAL
    buy_type = BuyType.NONE
    if label is not Label.NEUTRAL:
        bullish = label is Label.BULLISH
        anchor_levels = p30.support_levels + p30.resistance_levels
        plan = plan_trade(p30.current_price, bullish, anchor_levels)
        if bullish and any(preds[tf].buy_type is BuyType.TYPE2_BREAKOUT for tf in TIMEFRAMES):
            buy_type = BuyType.TYPE2_BREAKOUT

        if config.agreement_confluence_multi:
            gate = sum(1 for tf in TIMEFRAMES if preds[tf].label == label)
        else:
            gate = confluence
        if gate < MIN_CONFLUENCE:
            logger.debug("fusion: confluence %d below %d", gate, MIN_CONFLUENCE)
        elif p30.label is not Label.NEUTRAL and p5.label != p30.label:
            logger.debug("fusion: 5m disagrees with 30m bias")
        elif p30.label is Label.NEUTRAL and p1.label != p5.label:
            logger.debug("fusion: 1m and 5m disagree under neutral 30m")
        else:
            signal = tier_signal(bullish, confidence, plan.risk_reward)
            exempt = (config.breakout_exemption_multi
                      and buy_type is BuyType.TYPE2_BREAKOUT)
            signal = apply_threshold(signal, confidence, plan.risk_reward,
                                     config.confidence_threshold, breakout_exempt=exempt)

    patterns = [tag for tf in TIMEFRAMES for tag in preds[tf].breakdown.patterns]
    adjusted = sum(FUSION_WEIGHTS[tf] * preds[tf].adjusted_score for tf in TIMEFRAMES)

    return dataclasses.replace(
        p30,
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
        timeframe=None,
        timeframe_bullish=timeframe_bullish,
        confluence=confluence,
        adjusted_score=adjusted,
        breakdown=dataclasses.replace(p30.breakdown, patterns=patterns),
    )


def run_multi_timeframe(
    grids: Mapping[int, object],
    config: EngineConfig = EngineConfig(),
    time_str: str = "",
    price_scale: Optional[Tuple[float, float]] = None,
) -> Prediction:
    """Predict each of the 1/5/30-minute charts and fuse the results."""
    minutes = time_to_minutes(time_str)
    preds = {}
    for tf in TIMEFRAMES:
        if tf not in grids:
            raise ValueError(f"missing chart for {tf}m timeframe")
        tf_config = config.for_timeframe(tf)
        analysis = analyze_chart(grids[tf], tf_config.colors)
        preds[tf] = evaluate(analysis, tf_config, minutes, tf)
        logger.debug("%dm: %s %.1f%%", tf, preds[tf].label.value, preds[tf].confidence)

    return scale_prediction(fuse_predictions(preds, config), price_scale)
