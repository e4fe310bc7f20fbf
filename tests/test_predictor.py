"""Tests for image loading, timeframe inference and the Predictor wrapper."""

import numpy as np
import pytest
from PIL import Image

from image_loader import ImageDecodeError, load_pixel_grid
from predictor import Predictor, TimeframeError, infer_timeframe, resolve_timeframe
from signal_engine import Label, Signal


@pytest.fixture
def chart_file(tmp_path, zigzag_chart):
    def save(name):
        path = tmp_path / name
        Image.fromarray(zigzag_chart).save(path)
        return str(path)
    return save


@pytest.mark.parametrize("name,expected", [
    ("assets/charts/test30.png", 30),
    ("assets/charts/test5.png", 5),
    ("assets/charts/test1.png", 1),
    ("spy_30m.png", 30),
    ("spy_5m.png", 5),
    ("spy_1m.png", 1),
    ("spy_daily.png", None),
])
def test_infer_timeframe(name, expected):
    assert infer_timeframe(name) == expected


def test_load_pixel_grid_roundtrip(chart_file, zigzag_chart):
    grid = load_pixel_grid(chart_file("chart.png"))
    assert grid.dtype == np.uint8
    assert np.array_equal(grid, zigzag_chart)


def test_decode_error(tmp_path):
    bad = tmp_path / "broken.png"
    bad.write_bytes(b"not an image")
    with pytest.raises(ImageDecodeError):
        load_pixel_grid(str(bad))
    with pytest.raises(ImageDecodeError):
        load_pixel_grid(str(tmp_path / "missing.png"))


def test_predict_auto_infers_timeframe(chart_file):
    pred = Predictor().predict_auto(chart_file("test5.png"), "10:00")
    assert pred.timeframe == 5


def test_predict_auto_requires_timeframe(chart_file):
    path = chart_file("chart.png")
    with pytest.raises(TimeframeError):
        Predictor().predict_auto(path, "10:00")
    assert Predictor().predict_auto(path, "10:00", timeframe=30).timeframe == 30


def test_predict_multi(chart_file):
    paths = [chart_file(f"test{tf}.png") for tf in (1, 5, 30)]
    pred = Predictor().predict_multi(paths, "10:00")
    assert set(pred.timeframe_bullish) == {1, 5, 30}
    assert 0.0 <= pred.confidence <= 100.0


def test_predict_multi_needs_three(chart_file):
    with pytest.raises(ValueError):
        Predictor().predict_multi([chart_file("test1.png")])


def test_setters_update_config():
    predictor = Predictor()
    predictor.set_weights(1.0, 0.5, 0.8, 0.3)
    predictor.set_confidence_threshold(70)
    predictor.set_candle_colors((0, 255, 0), (255, 0, 0), 30)
    cfg = predictor.config
    assert (cfg.weights.trend, cfg.weights.momentum, cfg.weights.reversal, cfg.weights.sr) == (1.0, 0.5, 0.8, 0.3)
    assert cfg.confidence_threshold == 70
    assert cfg.colors.bull == (0, 255, 0)
    assert cfg.colors.tolerance == 30


def test_setters_validate():
    predictor = Predictor()
    with pytest.raises(ValueError):
        predictor.set_confidence_threshold(-5)
    with pytest.raises(ValueError):
        predictor.set_candle_colors((0, 0, 0), (0, 0, 0), -1)


def test_colors_that_match_nothing_give_neutral(chart_file):
    predictor = Predictor()
    predictor.set_candle_colors((0, 0, 255), (255, 255, 0), 10)
    pred = predictor.predict(chart_file("chart.png"), "12:00")
    assert pred.label is Label.NEUTRAL
    assert pred.signal is Signal.NEUTRAL


def test_resolve_timeframe_prefers_explicit_value():
    assert resolve_timeframe("spy_5m.png", 30) == 30
    assert resolve_timeframe("spy_5m.png") == 5
    with pytest.raises(TimeframeError):
        resolve_timeframe("spy_daily.png")


def test_analyze_returns_unscaled_prediction(chart_file):
    analysis, pred = Predictor().analyze(chart_file("chart.png"), "10:00", 5)
    assert analysis.smooth.size > 0
    assert pred.current_price == pytest.approx(analysis.last)
