"""Tests for the plotting frame builder."""

import pandas as pd

from signal_engine import analyze_chart
from visualizer import analysis_frame


def test_analysis_frame(zigzag_chart):
    analysis = analyze_chart(zigzag_chart)
    df = analysis_frame(analysis, timeframe=5)
    assert list(df.columns) == ["Open", "High", "Low", "Close", "Volume"]
    assert len(df) == analysis.smooth.size
    assert isinstance(df.index, pd.DatetimeIndex)
    assert (df.index[1] - df.index[0]) == pd.Timedelta(minutes=5)
    assert (df["Close"].to_numpy() == analysis.smooth).all()
