"""Synthetic chart screenshots for the pipeline tests."""

import numpy as np
import pytest

from config import (
    CROP_BOTTOM_FRAC,
    CROP_LEFT_FRAC,
    CROP_RIGHT_FRAC,
    CROP_TOP_FRAC,
    DEFAULT_BULL_RGB,
)

BACKGROUND = (20, 20, 20)
HEIGHT = 200
WIDTH = 300


def chart_bounds(h=HEIGHT, w=WIDTH):
    """(y0, y1, x0, x1) of the cropped candle area."""
    return (int(CROP_TOP_FRAC * h), h - int(CROP_BOTTOM_FRAC * h),
            int(CROP_LEFT_FRAC * w), w - int(CROP_RIGHT_FRAC * w))


@pytest.fixture
def blank_grid():
    def make(h=HEIGHT, w=WIDTH):
        return np.full((h, w, 3), BACKGROUND, dtype=np.uint8)
    return make


@pytest.fixture
def draw_series():
    """Paint one candle pixel per chart column at the row for each value."""
    def draw(grid, values, color=DEFAULT_BULL_RGB):
        h, w = grid.shape[:2]
        y0, y1, x0, x1 = chart_bounds(h, w)
        for c, v in enumerate(values[: x1 - x0]):
            row = y0 + int(round((1.0 - v) * (y1 - y0 - 1)))
            grid[row, x0 + c] = color
        return grid
    return draw


@pytest.fixture
def zigzag_chart(blank_grid, draw_series):
    y0, y1, x0, x1 = chart_bounds()
    x = np.arange(x1 - x0)
    # triangle wave: sharp, symmetric turns every 30 columns
    values = 0.3 + 0.4 * np.abs((x % 60) - 30) / 30.0
    return draw_series(blank_grid(), values)
