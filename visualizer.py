"""Extracted series with swings, levels and trade plan using mplfinance."""

from typing import Optional

import mplfinance as mpf
import numpy as np
import pandas as pd

from config import (
    FIGURE_SIZE,
    LINE_ALPHA,
    LINE_WIDTH,
    PANEL_RATIOS,
    PIVOT_MARKER_SIZE,
    SAVE_DPI,
)
from signal_engine import ChartAnalysis, Label, Prediction


def analysis_frame(analysis: ChartAnalysis, timeframe: Optional[int] = None) -> pd.DataFrame:
    """Synthetic OHLCV frame: every OHLC column carries the smoothed close.

    The index is a minute-spaced DatetimeIndex so mplfinance can lay it out.
    """
    n = analysis.smooth.size
    index = pd.date_range("2000-01-03 09:30", periods=n, freq=f"{timeframe or 1}min")
    close = analysis.smooth
    return pd.DataFrame(
        {"Open": close, "High": close, "Low": close, "Close": close,
         "Volume": analysis.volume[:n]},
        index=index,
    )


def plot_analysis(
    analysis: ChartAnalysis,
    prediction: Prediction,
    title: str = "",
    savefig: Optional[str] = None,
    show_swings: bool = True,
) -> None:
    """Plot the series with volume, swing markers, levels and plan lines.

    Levels and plan values are read from ``prediction`` and must be in
    normalized space (i.e. the prediction was not price-scaled).
    """
    df = analysis_frame(analysis, prediction.timeframe)
    addplots = []

    if show_swings and analysis.swings:
        highs = pd.Series(np.nan, index=df.index, dtype=float)
        lows = pd.Series(np.nan, index=df.index, dtype=float)
        for sp in analysis.swings:
            target = highs if sp.is_high else lows
            target.iloc[sp.index] = sp.value
        if highs.notna().any():
            addplots.append(mpf.make_addplot(
                highs, type="scatter", marker="v", markersize=PIVOT_MARKER_SIZE, color="red",
            ))
        if lows.notna().any():
            addplots.append(mpf.make_addplot(
                lows, type="scatter", marker="^", markersize=PIVOT_MARKER_SIZE, color="green",
            ))

    hlines = [lvl.price for lvl in prediction.support_levels]
    colors = ["green"] * len(hlines)
    hlines += [lvl.price for lvl in prediction.resistance_levels]
    colors += ["red"] * (len(hlines) - len(colors))

    if prediction.label is not Label.NEUTRAL:
        for value, color in ((prediction.stop_loss, "black"),
                             (prediction.target1, "blue"),
                             (prediction.target2, "purple")):
            hlines.append(value)
            colors.append(color)

    kwargs = dict(
        type="line",
        style="charles",
        title=title,
        volume=True,
        figsize=FIGURE_SIZE,
        tight_layout=True,
        panel_ratios=PANEL_RATIOS,
    )

    if addplots:
        kwargs["addplot"] = addplots

    if hlines:
        kwargs["hlines"] = dict(
            hlines=hlines,
            colors=colors,
            linewidths=LINE_WIDTH,
            alpha=LINE_ALPHA,
            linestyle="--",
        )

    if savefig:
        kwargs["savefig"] = dict(fname=savefig, dpi=SAVE_DPI, bbox_inches="tight")

    mpf.plot(df, **kwargs)
