"""
Shared fixtures for perps tests.

Provides candle factories with 1-minute bars starting 2021-03-26 UTC.
"""

import pytest
from datetime import datetime, timedelta, timezone

from perps.data.candles import Candle
from perps.simulation.capital_pool import SharedCapitalPool

BASE_TIME = datetime(2021, 3, 26, tzinfo=timezone.utc)


def build_candle(index, close, high=None, low=None, open_=None, volume=1.0):
    """
    Build the index-th 1-minute candle.

    high/low default to the close, open defaults to the close.
    """
    open_time = BASE_TIME + timedelta(minutes=index)
    return Candle(
        open=close if open_ is None else open_,
        high=close if high is None else high,
        low=close if low is None else low,
        close=close,
        volume=volume,
        open_time=open_time,
        close_time=open_time + timedelta(minutes=1) - timedelta(milliseconds=1),
    )


@pytest.fixture
def make_candle():
    """Factory fixture: make_candle(index, close, high=None, low=None)."""
    return build_candle


@pytest.fixture
def flat_candles():
    """Ten flat candles at 100."""
    return [build_candle(i, 100.0) for i in range(10)]


@pytest.fixture
def make_series():
    """
    Factory fixture building candles from closes.

    Each candle's low and high span the previous and current close, so a
    rising series never dips below the prior close.
    """

    def _make(closes):
        candles = []
        prev = closes[0]
        for i, close in enumerate(closes):
            candles.append(
                build_candle(i, close, high=max(prev, close), low=min(prev, close), open_=prev)
            )
            prev = close
        return candles

    return _make


@pytest.fixture
def pool():
    """Shared pool with 1,000 of capital."""
    return SharedCapitalPool(1000.0)
