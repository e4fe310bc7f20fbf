"""Tests for the four sub-scores, the combined score and the breakout detector."""

import numpy as np
import pytest

from feature_scorer import (
    PatternTag,
    Weights,
    detect_breakout,
    momentum_score,
    reversal_score,
    score_features,
    sr_score,
    trend_score,
)
from level_aggregator import Level
from swing_detector import SwingPoint


def swings_from(*pairs):
    """Alternating swings from (value, is_high) pairs."""
    return [SwingPoint(i * 5, v, h) for i, (v, h) in enumerate(pairs)]


RESISTANCE = Level(0.50, 2, 0.2, False)


class TestTrend:

    def test_higher_highs_higher_lows(self):
        score, tag = trend_score(swings_from((0.5, True), (0.3, False), (0.6, True), (0.4, False)))
        assert score == 2.0
        assert tag is PatternTag.HH_HL

    def test_lower_highs_lower_lows(self):
        score, tag = trend_score(swings_from((0.6, True), (0.4, False), (0.5, True), (0.3, False)))
        assert score == -2.0
        assert tag is PatternTag.LH_LL

    def test_mixed(self):
        score, tag = trend_score(swings_from((0.5, True), (0.4, False), (0.6, True), (0.3, False)))
        assert score == 0.0
        assert tag is PatternTag.HH_LL_MIXED

    def test_too_few_swings(self):
        assert trend_score(swings_from((0.5, True), (0.3, False), (0.6, True))) == (0.0, None)


class TestMomentum:

    def test_needs_thirty_points(self):
        assert momentum_score(np.linspace(0, 1, 29)) == 0.0

    def test_steady_rise(self):
        assert momentum_score(np.linspace(0.3, 0.5, 100)) == pytest.approx(1.2)

    def test_clamped(self):
        assert momentum_score(np.linspace(0.0, 1.0, 100)) == 1.5
        assert momentum_score(np.linspace(1.0, 0.0, 100)) == -1.5

    def test_uses_last_140_points(self):
        s = np.concatenate([np.full(100, 0.9), np.linspace(0.3, 0.5, 140)])
        assert momentum_score(s) == pytest.approx(1.2)


class TestReversal:

    def test_double_top_and_bottom(self):
        swings = swings_from((0.6, True), (0.3, False), (0.61, True), (0.31, False),
                             (0.605, True), (0.30, False))
        score, tags = reversal_score(swings)
        assert score == pytest.approx(0.0)
        assert tags == [PatternTag.DOUBLE_TOP, PatternTag.DOUBLE_BOTTOM]

    def test_double_bottom_only(self):
        swings = swings_from((0.6, True), (0.3, False), (0.7, True), (0.35, False),
                             (0.8, True), (0.36, False))
        assert reversal_score(swings) == (pytest.approx(1.2), [PatternTag.DOUBLE_BOTTOM])

    def test_too_few_swings(self):
        assert reversal_score(swings_from((0.6, True), (0.6, True))) == (0.0, [])


class TestSupportResistance:

    LEVELS = [Level(0.40, 1, 0.1, True), Level(0.60, 1, 0.1, False)]

    def test_midpoint_balances(self):
        score, used = sr_score(0.5, self.LEVELS)
        assert score == pytest.approx(0.0)
        assert used

    def test_more_room_above_support_is_bullish(self):
        score, _ = sr_score(0.55, self.LEVELS)
        assert score == pytest.approx(2 * 0.15 * 0.6 - 2 * 0.05 * 0.6)

    def test_no_levels(self):
        assert sr_score(0.5, []) == (0.0, False)


class TestBreakout:

    CLOSES = np.array([0.45] * 30 + [0.51])

    def test_fires_on_clean_breakout(self):
        b = detect_breakout(self.CLOSES, [RESISTANCE], trend=2.0)
        assert b.fired
        assert 0.0 <= b.score <= 1.0
        assert b.score == pytest.approx(0.55 * 0.2 + 0.30 * 1.0 + 0.15 * 1.0)
        assert b.level == pytest.approx(0.50)

    def test_weak_trend_blocks(self):
        assert not detect_breakout(self.CLOSES, [RESISTANCE], trend=0.0).fired

    def test_insufficient_clearance(self):
        closes = np.array([0.45] * 30 + [0.505])
        assert not detect_breakout(closes, [RESISTANCE], trend=2.0).fired

    def test_no_consolidation_below(self):
        closes = np.array([0.45] * 20 + [0.499] * 10 + [0.51])
        assert not detect_breakout(closes, [RESISTANCE], trend=2.0).fired

    def test_needs_resistance_and_history(self):
        assert not detect_breakout(self.CLOSES, [Level(0.4, 1, 0.1, True)], trend=2.0).fired
        assert not detect_breakout(self.CLOSES[-20:], [RESISTANCE], trend=2.0).fired

    def test_targets_nearest_resistance_above(self):
        b = detect_breakout(self.CLOSES, [RESISTANCE, Level(0.70, 1, 0.1, False)], trend=2.0)
        assert not b.fired
        assert b.level == pytest.approx(0.70)


class TestScoreFeatures:

    def test_empty_inputs_score_zero(self):
        bd = score_features(np.full(100, 0.5), np.full(100, 0.5), [], [])
        assert (bd.trend_score, bd.momentum_score, bd.reversal_score, bd.sr_score) == (0, 0, 0, 0)
        assert bd.raw_score == 0.0
        assert bd.patterns == []
        assert not bd.breakout.fired

    def test_weighted_sum(self):
        swings = swings_from((0.5, True), (0.3, False), (0.6, True), (0.4, False))
        smooth = np.linspace(0.3, 0.5, 20)
        bd = score_features(smooth, smooth, swings, [], Weights(trend=1.5, momentum=1, reversal=1, sr=1))
        assert bd.raw_score == pytest.approx(3.0)
        assert bd.patterns == [PatternTag.HH_HL]

    def test_raw_score_clamped(self):
        swings = swings_from((0.5, True), (0.3, False), (0.6, True), (0.4, False))
        smooth = np.linspace(0.3, 0.5, 20)
        bd = score_features(smooth, smooth, swings, [], Weights(trend=10.0))
        assert bd.raw_score == 8.0

    def test_breakout_tag(self):
        swings = swings_from((0.46, True), (0.40, False), (0.48, True), (0.42, False))
        closes = TestBreakout.CLOSES
        bd = score_features(closes, closes, swings, [RESISTANCE])
        assert bd.breakout.fired
        # price already sits above the only level, so no S/R barrier is in play
        assert bd.patterns == [PatternTag.HH_HL, PatternTag.TYPE2_BREAKOUT]
