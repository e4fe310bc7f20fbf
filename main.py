#!/usr/bin/env python3
"""Candlestick screenshot signal engine: command-line front end.

Usage:
    python main.py charts/test5.png --time 10:15
    python main.py charts/spy.png --timeframe 30 --scale 410.5 418.0 --verbose
    python main.py charts/test1.png charts/test5.png charts/test30.png --multi --time 09:45
    python main.py charts/test30.png --savefig plot.png --ledger history.csv --exit-price 0.62
"""

import argparse
import logging

from backtest_ledger import BacktestLedger, BacktestResult
from config import (
    DEFAULT_BEAR_RGB,
    DEFAULT_BULL_RGB,
    DEFAULT_COLOR_TOLERANCE,
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_MOMENTUM_WEIGHT,
    DEFAULT_REVERSAL_WEIGHT,
    DEFAULT_SR_WEIGHT,
    DEFAULT_TREND_WEIGHT,
)
from predictor import Predictor, TimeframeError, resolve_timeframe
from signal_engine import Label, Prediction, scale_prediction
from visualizer import plot_analysis


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Bullish/Bearish call and trade plan from a chart screenshot")
    p.add_argument("images", nargs="+", help="Chart image(s); three (1m 5m 30m) with --multi")
    p.add_argument("--multi", action="store_true", help="Fuse 1m, 5m and 30m charts")
    p.add_argument("--time", default="", help="Market time as HH:MM (24h)")
    p.add_argument("--timeframe", type=int, choices=(1, 5, 30), default=None,
                   help="Chart timeframe in minutes (default: inferred from filename)")
    p.add_argument("--scale", type=float, nargs=2, metavar=("MIN", "MAX"), default=None,
                   help="Real price range of the chart's vertical axis")
    p.add_argument("--bull-color", type=int, nargs=3, default=DEFAULT_BULL_RGB, metavar=("R", "G", "B"))
    p.add_argument("--bear-color", type=int, nargs=3, default=DEFAULT_BEAR_RGB, metavar=("R", "G", "B"))
    p.add_argument("--tolerance", type=int, default=DEFAULT_COLOR_TOLERANCE, help="Per-channel colour tolerance")
    p.add_argument("--weights", type=float, nargs=4,
                   default=(DEFAULT_TREND_WEIGHT, DEFAULT_MOMENTUM_WEIGHT,
                            DEFAULT_REVERSAL_WEIGHT, DEFAULT_SR_WEIGHT),
                   metavar=("TREND", "MOM", "REV", "SR"), help="Sub-score weights")
    p.add_argument("--threshold", type=float, default=DEFAULT_CONFIDENCE_THRESHOLD,
                   help="Confidence below which signals are NEUTRAL")
    p.add_argument("--savefig", default=None, help="Save an analysis chart (single image only)")
    p.add_argument("--ledger", default=None, help="Export this prediction as a CSV ledger row")
    p.add_argument("--exit-price", type=float, default=None,
                   help="Exit price for the ledger entry (same units as output prices)")
    p.add_argument("--verbose", action="store_true", help="Print scores, levels and debug logs")
    return p


def format_prediction(pred: Prediction) -> str:
    """Multi-line text report of a prediction."""
    lines = [
        f"Prediction: {pred.label.value}",
        f"Bullish: {pred.p_bull * 100.0:.1f}%",
        f"Bearish: {pred.p_bear * 100.0:.1f}%",
        f"Confidence: {pred.confidence:.1f}%",
        f"Signal: {pred.signal.value}",
    ]
    if pred.label is not Label.NEUTRAL:
        lines += [
            f"Stop: {pred.stop_loss:.4f}  T1: {pred.target1:.4f}  T2: {pred.target2:.4f}",
            f"R:R: {pred.risk_reward:.2f}",
        ]
    if pred.timeframe_bullish:
        flags = " ".join(f"{tf}m={'up' if up else '-'}" for tf, up in sorted(pred.timeframe_bullish.items()))
        lines.append(f"Timeframes: {flags}  (confluence {pred.confluence})")
    return "\n".join(lines)


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    predictor = Predictor()
    predictor.set_candle_colors(tuple(args.bull_color), tuple(args.bear_color), args.tolerance)
    predictor.set_weights(*args.weights)
    predictor.set_confidence_threshold(args.threshold)
    scale = tuple(args.scale) if args.scale else None

    # Step 1: Predict
    analysis = normalized = None
    if args.multi:
        if len(args.images) != 3:
            parser.error("--multi needs exactly three images (1m 5m 30m)")
        print(f"Fusing {', '.join(args.images)} at {args.time or 'unknown time'}...")
        pred = predictor.predict_multi(args.images, args.time, scale)
        image_path, timeframe = args.images[-1], 30
    else:
        image_path = args.images[0]
        try:
            timeframe = resolve_timeframe(image_path, args.timeframe)
        except TimeframeError as exc:
            parser.error(str(exc))
        print(f"Analysing {image_path} ({timeframe}m) at {args.time or 'unknown time'}...")
        analysis, normalized = predictor.analyze(image_path, args.time, timeframe)
        pred = scale_prediction(normalized, scale)

    print(format_prediction(pred))

    # Step 2: Details
    if args.verbose:
        bd = pred.breakdown
        print(f"\n  Scores: trend={bd.trend_score:+.2f} momentum={bd.momentum_score:+.2f} "
              f"reversal={bd.reversal_score:+.2f} sr={bd.sr_score:+.2f} "
              f"raw={bd.raw_score:+.2f} adjusted={pred.adjusted_score:+.2f}")
        print(f"  Patterns: {', '.join(tag.value for tag in bd.patterns) or 'none'}")
        if bd.breakout.fired:
            print(f"  Breakout over {bd.breakout.level:.4f} (score {bd.breakout.score:.2f})")
        print(f"  Support levels:    {[round(lvl.price, 4) for lvl in pred.support_levels]}")
        print(f"  Resistance levels: {[round(lvl.price, 4) for lvl in pred.resistance_levels]}")

    # Step 3: Visualize
    if args.savefig and analysis is not None:
        plot_analysis(analysis, normalized, title=f"{image_path}: {pred.label.value}",
                      savefig=args.savefig)
        print(f"\n  Chart saved to {args.savefig}")

    # Step 4: Ledger
    if args.ledger:
        ledger = BacktestLedger()
        exit_price = args.exit_price if args.exit_price is not None else pred.current_price
        ledger.append(BacktestResult.from_prediction(
            pred, image_path, timeframe, pred.current_price, exit_price,
        ))
        if ledger.export_csv(args.ledger):
            m = ledger.metrics()
            print(f"\n  Ledger written to {args.ledger} ({m.trades} trades, win rate {m.win_rate:.1f}%)")
        else:
            print(f"\n  Could not write ledger to {args.ledger}")


if __name__ == "__main__":
    main()
