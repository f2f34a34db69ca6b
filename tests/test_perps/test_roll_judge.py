"""
Tests for perps/strategy/roll_judge.py - recent-candle extremes window.
"""

import pytest

from perps.strategy.roll_judge import RollJudge


class TestRollJudge:
    """Tests for RollJudge."""

    def test_invalid_length(self):
        with pytest.raises(ValueError, match="max_length"):
            RollJudge(0)

    def test_empty_window(self):
        judge = RollJudge(3)
        with pytest.raises(ValueError, match="empty"):
            judge.max(3)
        with pytest.raises(ValueError, match="empty"):
            judge.is_min(1)

    def test_evicts_oldest(self, make_candle):
        judge = RollJudge(2)
        for i, close in enumerate([50.0, 10.0, 20.0]):
            judge.update(make_candle(i, close))
        assert len(judge) == 2
        # The 50 high has been evicted
        assert judge.max(5).high == 20.0

    def test_max_and_min_within_size(self, make_candle):
        judge = RollJudge(10)
        candles = [
            make_candle(0, 100.0, high=120.0, low=90.0),
            make_candle(1, 100.0, high=110.0, low=95.0),
            make_candle(2, 100.0, high=105.0, low=98.0),
        ]
        for candle in candles:
            judge.update(candle)

        assert judge.max(3) == candles[0]
        assert judge.max(2) == candles[1]
        assert judge.min(3) == candles[0]
        assert judge.min(1) == candles[2]

    def test_is_max_is_min(self, make_candle):
        judge = RollJudge(5)
        judge.update(make_candle(0, 100.0, high=101.0, low=99.0))
        judge.update(make_candle(1, 102.0, high=103.0, low=100.0))

        assert judge.is_max(2)
        assert not judge.is_min(2)
        assert judge.is_min(1)

    def test_equal_high_is_not_new_max(self, make_candle):
        judge = RollJudge(5)
        judge.update(make_candle(0, 100.0, high=105.0))
        judge.update(make_candle(1, 100.0, high=105.0))
        assert not judge.is_max(2)

    def test_equal_low_is_min(self, make_candle):
        judge = RollJudge(5)
        judge.update(make_candle(0, 100.0, low=95.0))
        judge.update(make_candle(1, 100.0, low=95.0))
        assert judge.is_min(2)
