"""
Tests for perps/analysis/bull_runs.py - bull-run finder.

Tests cover:
- find_bull_runs() - completed runs, unfinished run at end of data,
  reset on a new low, min_increase filtering
- BullRun.increase / return_rate / drawdown_steps
- drawdown_table() / runs_to_frame()
"""

import pytest

from perps.analysis.bull_runs import BullRun, drawdown_table, find_bull_runs, runs_to_frame


@pytest.fixture
def rally(make_candle):
    """Entry at 100, peak high 300, then a >50% drawdown to 140."""
    return [
        make_candle(0, 100.0),
        make_candle(1, 125.0, high=130.0, low=120.0),
        make_candle(2, 190.0, high=200.0, low=110.0),
        make_candle(3, 295.0, high=300.0, low=290.0),
        make_candle(4, 145.0, high=150.0, low=140.0),
        make_candle(5, 145.0, high=146.0, low=139.0),
    ]


class TestFindBullRuns:
    """Tests for find_bull_runs."""

    def test_empty(self):
        assert find_bull_runs([]) == []

    def test_completed_run(self, rally):
        runs = find_bull_runs(rally)

        assert len(runs) == 1
        run = runs[0]
        assert run.entry is rally[0]
        assert run.peak is rally[3]
        assert run.end is rally[4]
        assert run.increase == pytest.approx(2.0)
        assert run.return_rate == pytest.approx(1.45)

    def test_drawdown_steps(self, rally):
        run = find_bull_runs(rally)[0]
        assert run.drawdown_steps == [
            (pytest.approx(0.3), pytest.approx(1 - 120.0 / 130.0)),
            (pytest.approx(1.0), pytest.approx(0.45)),
        ]

    def test_unfinished_run_at_end(self, make_candle):
        candles = [make_candle(0, 100.0), make_candle(1, 180.0, high=200.0, low=150.0)]

        runs = find_bull_runs(candles)

        assert len(runs) == 1
        assert runs[0].end is candles[-1]
        assert runs[0].increase == pytest.approx(1.0)

    def test_new_low_resets_entry(self, make_candle):
        candles = [
            make_candle(0, 100.0),
            make_candle(1, 180.0, high=200.0, low=150.0),
            make_candle(2, 92.0, high=95.0, low=90.0),
        ]
        assert find_bull_runs(candles) == []

    def test_small_run_filtered(self, make_candle):
        candles = [
            make_candle(0, 100.0),
            make_candle(1, 118.0, high=120.0, low=115.0),
            make_candle(2, 111.0, high=112.0, low=110.0),
        ]
        assert find_bull_runs(candles, drawdown_base=0.05, drawdown_slope=0.0) == []

        runs = find_bull_runs(candles, min_increase=0.1, drawdown_base=0.05, drawdown_slope=0.0)
        assert len(runs) == 1
        assert runs[0].end is candles[2]


class TestTables:
    """Tests for drawdown_table and runs_to_frame."""

    def test_drawdown_table(self, rally):
        df = drawdown_table(find_bull_runs(rally))

        assert list(df.columns) == ["run", "entry_time", "increase_pct", "max_drawdown_pct"]
        assert len(df) == 2
        assert df["increase_pct"].tolist() == pytest.approx([30.0, 100.0])
        assert df["max_drawdown_pct"].iloc[1] == pytest.approx(45.0)

    def test_drawdown_table_empty(self):
        df = drawdown_table([])
        assert df.empty
        assert "increase_pct" in df.columns

    def test_runs_to_frame(self, rally):
        df = runs_to_frame(find_bull_runs(rally))
        assert len(df) == 1
        assert df.loc[0, "peak_high"] == 300.0
        assert df.loc[0, "return_rate"] == pytest.approx(1.45)

    def test_bull_run_properties(self, make_candle):
        run = BullRun(make_candle(0, 50.0), make_candle(2, 90.0), make_candle(1, 100.0, high=110.0))
        assert run.increase == pytest.approx(1.2)
        assert run.return_rate == pytest.approx(1.8)
        assert run.drawdown_steps == []
