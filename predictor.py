"""File-level convenience wrappers around the prediction pipeline.

``Predictor`` holds the user's current configuration and offers the
single, auto-timeframe and multi-timeframe entry points.  Every call
passes an explicit snapshot of that configuration into the pipeline, so
nothing is mutated mid-prediction.
"""

import dataclasses
import logging
import os
from typing import Optional, Sequence, Tuple

from config import TIMEFRAME_FILENAME_TOKENS
from feature_scorer import Weights
from image_loader import load_pixel_grid
from mtf_fusion import run_multi_timeframe
from series_extractor import ColorConfig
from signal_engine import ChartAnalysis, EngineConfig, Prediction, run_analysis, scale_prediction

logger = logging.getLogger(__name__)


class TimeframeError(ValueError):
    """Raised when a chart's timeframe can be neither inferred nor given."""


def infer_timeframe(image_path: str) -> Optional[int]:
    """Timeframe in minutes from filename tokens like ``test30`` or ``_5m``."""
    name = os.path.basename(image_path)
    for minutes, tokens in TIMEFRAME_FILENAME_TOKENS:
        if any(tok in name for tok in tokens):
            return minutes
    return None


def resolve_timeframe(image_path: str, timeframe: Optional[int] = None) -> int:
    """An explicit ``timeframe``, else the one inferred from the filename.

    Raises:
        TimeframeError: If neither is available.
    """
    tf = timeframe if timeframe is not None else infer_timeframe(image_path)
    if tf is None:
        raise TimeframeError(
            f"cannot infer timeframe from {image_path!r}; pass timeframe explicitly"
        )
    return tf


class Predictor:
    def __init__(self, config: EngineConfig = EngineConfig()) -> None:
        self.config = config

    # ── Configuration setters ────────────────────────────────────────

    def set_candle_colors(
        self,
        bull: Tuple[int, int, int],
        bear: Tuple[int, int, int],
        tolerance: int,
    ) -> None:
        self.config = dataclasses.replace(
            self.config, colors=ColorConfig(bull=bull, bear=bear, tolerance=tolerance),
        )

    def set_weights(self, trend: float, momentum: float, reversal: float, sr: float) -> None:
        self.config = dataclasses.replace(
            self.config, weights=Weights(trend=trend, momentum=momentum, reversal=reversal, sr=sr),
        )

    def set_confidence_threshold(self, threshold: float) -> None:
        self.config = dataclasses.replace(self.config, confidence_threshold=threshold)

    # ── Prediction ───────────────────────────────────────────────────

    def predict(
        self,
        image_path: str,
        time_str: str = "",
        timeframe: Optional[int] = None,
        price_scale: Optional[Tuple[float, float]] = None,
    ) -> Prediction:
        """Single-timeframe prediction.  ``timeframe`` None uses base weights."""
        _, pred = self.analyze(image_path, time_str, timeframe)
        return scale_prediction(pred, price_scale)

    def analyze(
        self,
        image_path: str,
        time_str: str = "",
        timeframe: Optional[int] = None,
    ) -> Tuple[ChartAnalysis, Prediction]:
        """Decode once; return the chart analysis and its unscaled prediction."""
        grid = load_pixel_grid(image_path)
        return run_analysis(grid, self.config, time_str, timeframe)

    def predict_auto(
        self,
        image_path: str,
        time_str: str = "",
        price_scale: Optional[Tuple[float, float]] = None,
        timeframe: Optional[int] = None,
    ) -> Prediction:
        """Prediction with the timeframe inferred from the filename.

        An explicit ``timeframe`` takes precedence over the filename.

        Raises:
            TimeframeError: If no filename token matches and ``timeframe``
                was not supplied.
        """
        tf = resolve_timeframe(image_path, timeframe)
        logger.debug("timeframe for %s: %dm", image_path, tf)
        return self.predict(image_path, time_str, tf, price_scale)

    def predict_multi(
        self,
        image_paths: Sequence[str],
        time_str: str = "",
        price_scale: Optional[Tuple[float, float]] = None,
    ) -> Prediction:
        """Fuse 1-, 5- and 30-minute charts given in that order."""
        if len(image_paths) != 3:
            raise ValueError(f"expected 1m, 5m and 30m charts, got {len(image_paths)} paths")
        grids = {tf: load_pixel_grid(path) for tf, path in zip((1, 5, 30), image_paths)}
        return run_multi_timeframe(grids, self.config, time_str, price_scale)
