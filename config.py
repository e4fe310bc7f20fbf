"""Central configuration for all tunable constants.

Every numeric constant used across the chart-screenshot signal pipeline
lives here.  Modules import what they need instead of embedding magic
numbers.

Organisation follows the pipeline order:
  Extraction → Smoothing/swings → Levels → Scoring → Calibration →
  Signal tiering → Multi-timeframe → Visualisation
"""

# ──────────────────────────────────────────────────────────────────────
# Series extraction  (series_extractor.py)
# ──────────────────────────────────────────────────────────────────────

# Fractional crop margins that strip toolbars, price labels and the
# indicator panel from the candle area.
CROP_TOP_FRAC = 0.10
CROP_BOTTOM_FRAC = 0.25
CROP_LEFT_FRAC = 0.03
CROP_RIGHT_FRAC = 0.02

# Volume panel band as fractions of image height.
VOLUME_PANEL_TOP_FRAC = 0.74
VOLUME_PANEL_BOTTOM_FRAC = 0.89

# Default candle colours (RGB) and per-channel match tolerance.
# Bullish candles are green-ish, bearish candles magenta-ish.
DEFAULT_BULL_RGB = (40, 220, 140)
DEFAULT_BEAR_RGB = (220, 60, 220)
DEFAULT_COLOR_TOLERANCE = 45

# Gap-fill values when an entire series is unresolved.  A close series
# with no candles assumes mid-price; a volume series assumes no volume.
CLOSE_FALLBACK = 0.5
VOLUME_FALLBACK = 0.0

# ──────────────────────────────────────────────────────────────────────
# Smoothing and swing detection  (swing_detector.py)
# ──────────────────────────────────────────────────────────────────────

# Half-width of the moving-average window applied before swing search.
SMOOTH_WINDOW = 3

# Neighbours on each side that must be strictly lower (high) or higher (low).
SWING_WINDOW = 8

# Minimum normalized move between alternating swings.  Smaller moves are noise.
SWING_MIN_MOVE = 0.02

# ──────────────────────────────────────────────────────────────────────
# Support / resistance clustering  (level_aggregator.py)
# ──────────────────────────────────────────────────────────────────────

# A swing within this distance of an existing level merges into it.
LEVEL_TOLERANCE = 0.012
# Merge blend: price = KEEP × existing + (1 − KEEP) × new swing.
LEVEL_MERGE_KEEP = 0.7
# Touch count at which strength saturates to 1.0.
LEVEL_STRENGTH_CAP = 10
# Maximum levels kept per side.
MAX_LEVELS = 6

# ──────────────────────────────────────────────────────────────────────
# Feature scoring  (feature_scorer.py)
# ──────────────────────────────────────────────────────────────────────

# Default sub-score multipliers.
DEFAULT_TREND_WEIGHT = 1.6
DEFAULT_MOMENTUM_WEIGHT = 0.35
DEFAULT_REVERSAL_WEIGHT = 1.2
DEFAULT_SR_WEIGHT = 0.6

# Combined raw score is clamped to ±RAW_SCORE_LIMIT.
RAW_SCORE_LIMIT = 8.0

# Trend: minimum swings, and how many trailing swings are inspected.
TREND_MIN_SWINGS = 4
TREND_TAIL_SWINGS = 10

# Momentum: minimum points, lookback, slope / volatility coefficients.
MOMENTUM_MIN_POINTS = 30
MOMENTUM_LOOKBACK = 140
MOMENTUM_SLOPE_COEFF = 6.0
MOMENTUM_VOL_COEFF = 4.0
MOMENTUM_LIMIT = 1.5

# Reversal: double top / bottom detection.
REVERSAL_MIN_SWINGS = 6
REVERSAL_TOLERANCE = 0.015
REVERSAL_SCORE = 1.2

# Support/resistance sub-score.
SR_DISTANCE_COEFF = 2.0
SR_STRENGTH_BASE = 0.5
SR_LIMIT = 1.0

# Type 2 breakout detector.
BREAKOUT_MIN_POINTS = 25
BREAKOUT_MIN_TREND = 0.5
BREAKOUT_LOOKBACK_BARS = 12
BREAKOUT_BELOW_FRACTION = 0.65
BREAKOUT_BELOW_MARGIN = 0.003
BREAKOUT_CLEAR_MARGIN = 0.008
BREAKOUT_MOMENTUM_BARS = 6
BREAKOUT_SCALE = 0.05
BREAKOUT_W_CLEARANCE = 0.55
BREAKOUT_W_MOMENTUM = 0.30
BREAKOUT_W_TREND = 0.15

# ──────────────────────────────────────────────────────────────────────
# Calibration  (signal_engine.py)
# ──────────────────────────────────────────────────────────────────────

# Session boundaries in minutes after midnight.
PREMARKET_OPEN_MIN = 4 * 60
MARKET_OPEN_MIN = 9 * 60 + 30
MARKET_CLOSE_MIN = 16 * 60

PREMARKET_MULTIPLIER = 0.85
REGULAR_MULTIPLIER = 1.00
AFTER_HOURS_MULTIPLIER = 0.90

# Confidence decay near the open: OPEN_DECAY_FLOOR at 09:30, 1.0 at ±window.
OPEN_DECAY_WINDOW_MIN = 10
OPEN_DECAY_FLOOR = 0.70

# pBull = sigmoid(score / SIGMOID_SCALE); |x| beyond saturation → 0 or 1.
SIGMOID_SCALE = 2.5
SIGMOID_SATURATION = 50.0

# Neutral zone: |adjusted score| below this forces a Neutral label.
NEUTRAL_ZONE = 2.0
NEUTRAL_MAX_TILT = 0.05
NEUTRAL_BASE_CONFIDENCE = 50.0
NEUTRAL_CONFIDENCE_SPAN = 10.0

# Breakout promotion of a Neutral result.
BREAKOUT_BASE_CONFIDENCE = 65.0
BREAKOUT_CONFIDENCE_SPAN = 25.0

# Confidence penalty when price sits close to the opposing barrier.
BARRIER_NEAR = 0.015
BARRIER_NEAR_PENALTY = 0.65
BARRIER_MID = 0.030
BARRIER_MID_PENALTY = 0.80

# ──────────────────────────────────────────────────────────────────────
# Trade planning and signal tiering  (trade_planner.py, signal_engine.py)
# ──────────────────────────────────────────────────────────────────────

# Fallback barrier distance when no level exists on one side.
PLAN_FALLBACK_DISTANCE = 0.03
# Stop sits this far beyond the protective level.
PLAN_STOP_BUFFER = 0.01
# target2 extends target1 by this multiple of the distance to target1.
PLAN_TARGET2_EXTENSION = 0.8

# Risk/reward tiers.
RR_FLOOR = 1.0
RR_MIN_SIGNAL = 1.2
RR_STRONG = 1.8
STRONG_CONFIDENCE = 80.0
STRONG_TIER_MIN_CONFIDENCE = 65.0

# Global confidence threshold below which signals are forced NEUTRAL.
DEFAULT_CONFIDENCE_THRESHOLD = 60.0

# ──────────────────────────────────────────────────────────────────────
# Multi-timeframe fusion  (mtf_fusion.py)
# ──────────────────────────────────────────────────────────────────────

TIMEFRAMES = (1, 5, 30)

# Fused pBull weights per timeframe.
FUSION_WEIGHTS = {1: 0.2, 5: 0.3, 30: 0.5}

# Minimum bullish timeframes before a fused signal may fire.
MIN_CONFLUENCE = 2

# Weight factors per timeframe: (trend, momentum, reversal, sr).
TIMEFRAME_WEIGHT_FACTORS = {
    1: (1.0, 1.35, 1.10, 0.80),
    5: (1.1, 1.15, 1.10, 1.00),
    30: (1.35, 0.85, 1.00, 1.35),
}

# Filename tokens used to infer the timeframe, checked in order.
TIMEFRAME_FILENAME_TOKENS = (
    (30, ("test30", "_30m")),
    (5, ("test5", "_5m")),
    (1, ("test1", "_1m")),
)

# ──────────────────────────────────────────────────────────────────────
# Visualiser  (visualizer.py)
# ──────────────────────────────────────────────────────────────────────

# Chart dimensions (inches).
FIGURE_SIZE = (16, 10)
# Level lines.
LINE_WIDTH = 0.6
LINE_ALPHA = 0.8
# Swing scatter markers.
PIVOT_MARKER_SIZE = 60
# Saved image resolution.
SAVE_DPI = 150
# Panel ratios: main series : volume.
PANEL_RATIOS = (4, 1)
