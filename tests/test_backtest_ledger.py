"""Tests for the backtest ledger, CSV export and win-rate metrics."""

from datetime import datetime

import pytest

from backtest_ledger import CSV_COLUMNS, BacktestLedger, BacktestResult
from signal_engine import Label, Prediction, Signal

HEADER = ("timestamp,imagePath,timeframe,label,confidence,pBull,pBear,"
          "signal,stopLoss,target1,target2,rr,confluence")


def make_pred(label=Label.BULLISH, signal=Signal.BUY, p_bull=0.8):
    return Prediction(
        p_bull=p_bull, p_bear=1.0 - p_bull, label=label, confidence=100.0 * max(p_bull, 1 - p_bull),
        signal=signal, stop_loss=0.44, target1=0.6, target2=0.68, risk_reward=1.6667, confluence=2,
    )


def record(pred, entry, exit_, path="charts/test5.png"):
    return BacktestResult.from_prediction(
        pred, path, 5, entry, exit_, bars_held=3, timestamp=datetime(2024, 3, 1, 9, 45),
    )


def test_header_matches_column_order():
    assert ",".join(CSV_COLUMNS) == HEADER
    assert BacktestLedger().to_csv() == HEADER + "\n"


def test_csv_rows():
    ledger = BacktestLedger()
    ledger.append(record(make_pred(), 0.5, 0.6))
    ledger.append(record(make_pred(Label.NEUTRAL, Signal.NEUTRAL, 0.5), 0.5, 0.5))
    lines = ledger.to_csv().splitlines()

    assert lines[0] == HEADER
    assert len(lines) == 3
    assert lines[1] == ("2024-03-01T09:45:00,charts/test5.png,5,Bullish,80.00,0.8000,0.2000,"
                        "BUY,0.4400,0.6000,0.6800,1.67,2")
    assert lines[2].split(",")[3] == "Neutral"
    assert all(len(line.split(",")) == len(CSV_COLUMNS) for line in lines)


def test_export_csv(tmp_path):
    ledger = BacktestLedger()
    ledger.append(record(make_pred(), 0.5, 0.6))
    out = tmp_path / "ledger.csv"
    assert ledger.export_csv(str(out))
    assert out.read_text(encoding="utf-8") == ledger.to_csv()


def test_export_to_unwritable_path_reports_failure(tmp_path):
    ledger = BacktestLedger()
    assert not ledger.export_csv(str(tmp_path / "missing" / "ledger.csv"))


def test_metrics_ignore_neutral_signals():
    ledger = BacktestLedger()
    ledger.append(record(make_pred(), 0.5, 0.6))                       # win
    ledger.append(record(make_pred(), 0.5, 0.4))                       # loss
    ledger.append(record(make_pred(Label.BEARISH, Signal.SELL, 0.2), 0.5, 0.45))  # win
    ledger.append(record(make_pred(Label.BULLISH, Signal.NEUTRAL), 0.5, 0.9))     # not traded
    m = ledger.metrics()
    assert m.trades == 3
    assert m.wins == 2
    assert m.win_rate == pytest.approx(200.0 / 3)


def test_metrics_empty():
    m = BacktestLedger().metrics()
    assert (m.trades, m.wins, m.win_rate) == (0, 0, 0.0)


def test_pnl_direction():
    assert record(make_pred(), 0.5, 0.6).pnl == pytest.approx(0.1)
    short = record(make_pred(Label.BEARISH, Signal.SELL, 0.2), 0.5, 0.6)
    assert short.pnl == pytest.approx(-0.1)
    assert not short.was_correct
    flat = record(make_pred(Label.NEUTRAL, Signal.NEUTRAL, 0.5), 0.5, 0.6)
    assert flat.pnl == 0.0


def test_entries_are_append_only_view():
    ledger = BacktestLedger()
    ledger.append(record(make_pred(), 0.5, 0.6))
    assert isinstance(ledger.entries, tuple)
    assert len(ledger) == 1
    assert list(ledger) == list(ledger.entries)


def test_independent_ledgers():
    a, b = BacktestLedger(), BacktestLedger()
    a.append(record(make_pred(), 0.5, 0.6))
    assert len(a) == 1 and len(b) == 0


def test_to_frame():
    ledger = BacktestLedger()
    ledger.append(record(make_pred(), 0.5, 0.6))
    df = ledger.to_frame()
    assert list(df.columns[: len(CSV_COLUMNS)]) == list(CSV_COLUMNS)
    assert df.loc[0, "signal"] == "BUY"
    assert df.loc[0, "pnl"] == pytest.approx(0.1)
    assert bool(df.loc[0, "wasCorrect"])
