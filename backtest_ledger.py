"""Append-only record of past predictions with a simple win-rate counter.

The ledger is owned by the caller; several independent ledgers (one per
strategy run, say) can coexist.  Entries are never mutated after append.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

import pandas as pd

from signal_engine import Label, Prediction, Signal

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "timestamp", "imagePath", "timeframe", "label", "confidence", "pBull", "pBear",
    "signal", "stopLoss", "target1", "target2", "rr", "confluence",
)


@dataclass(frozen=True)
class BacktestResult:
    timestamp: datetime
    image_path: str
    timeframe_minutes: int
    prediction: Prediction
    entry_price: float
    exit_price: float
    pnl: float
    was_correct: bool
    bars_held: int

    @classmethod
    def from_prediction(
        cls,
        prediction: Prediction,
        image_path: str,
        timeframe_minutes: int,
        entry_price: float,
        exit_price: float,
        bars_held: int = 0,
        timestamp: Optional[datetime] = None,
    ) -> "BacktestResult":
        """Derive pnl and correctness from the predicted direction.

        Longs profit when price rises, shorts when it falls; a Neutral call
        has zero pnl and is never counted correct.
        """
        if prediction.label is Label.BULLISH:
            pnl = exit_price - entry_price
        elif prediction.label is Label.BEARISH:
            pnl = entry_price - exit_price
        else:
            pnl = 0.0
        return cls(
            timestamp=timestamp or datetime.now(),
            image_path=image_path,
            timeframe_minutes=timeframe_minutes,
            prediction=prediction,
            entry_price=entry_price,
            exit_price=exit_price,
            pnl=pnl,
            was_correct=pnl > 0,
            bars_held=bars_held,
        )


@dataclass(frozen=True)
class LedgerMetrics:
    trades: int
    wins: int
    win_rate: float


class BacktestLedger:
    def __init__(self) -> None:
        self._entries: List[BacktestResult] = []

    def append(self, result: BacktestResult) -> None:
        self._entries.append(result)

    @property
    def entries(self) -> Tuple[BacktestResult, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[BacktestResult]:
        return iter(self._entries)

    def metrics(self) -> LedgerMetrics:
        """Win rate (percent) over entries whose signal is not NEUTRAL."""
        traded = [r for r in self._entries if r.prediction.signal is not Signal.NEUTRAL]
        wins = sum(1 for r in traded if r.was_correct)
        rate = 100.0 * wins / len(traded) if traded else 0.0
        return LedgerMetrics(trades=len(traded), wins=wins, win_rate=rate)

    # ── Export ───────────────────────────────────────────────────────

    @staticmethod
    def _row(r: BacktestResult) -> List[str]:
        p = r.prediction
        return [
            r.timestamp.isoformat(timespec="seconds"),
            r.image_path,
            str(r.timeframe_minutes),
            p.label.value,
            f"{p.confidence:.2f}",
            f"{p.p_bull:.4f}",
            f"{p.p_bear:.4f}",
            p.signal.value,
            f"{p.stop_loss:.4f}",
            f"{p.target1:.4f}",
            f"{p.target2:.4f}",
            f"{p.risk_reward:.2f}",
            str(p.confluence),
        ]

    def to_csv(self) -> str:
        """Header plus one unquoted, comma-separated row per entry."""
        lines = [",".join(CSV_COLUMNS)]
        lines.extend(",".join(self._row(r)) for r in self._entries)
        return "\n".join(lines) + "\n"

    def export_csv(self, path: str) -> bool:
        """Write :meth:`to_csv` to ``path``.  Returns False if the write failed."""
        try:
            with open(path, "w", encoding="utf-8", newline="") as fh:
                fh.write(self.to_csv())
        except OSError as exc:
            logger.warning("could not export ledger to %s: %s", path, exc)
            return False
        logger.debug("exported %d ledger rows to %s", len(self._entries), path)
        return True

    def to_frame(self) -> pd.DataFrame:
        """Entries as a DataFrame with the CSV columns plus outcome fields."""
        rows = []
        for r in self._entries:
            p = r.prediction
            rows.append((
                r.timestamp, r.image_path, r.timeframe_minutes, p.label.value, p.confidence,
                p.p_bull, p.p_bear, p.signal.value, p.stop_loss, p.target1, p.target2,
                p.risk_reward, p.confluence,
                r.entry_price, r.exit_price, r.pnl, r.was_correct, r.bars_held,
            ))
        columns = list(CSV_COLUMNS) + ["entryPrice", "exitPrice", "pnl", "wasCorrect", "barsHeld"]
        return pd.DataFrame(rows, columns=columns)
