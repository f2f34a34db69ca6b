"""
Rolling window of recent candles for local extreme checks.

The window is kept most-recent-first: index 0 is the latest candle.
"""

from collections import deque
from typing import Deque

from perps.data.candles import Candle


class RollJudge:
    """Fixed-length window answering "is the latest candle a local high/low?"."""

    def __init__(self, max_length: int):
        if max_length < 1:
            raise ValueError(f"max_length must be at least 1, got {max_length}")
        self.max_length = max_length
        self._window: Deque[Candle] = deque(maxlen=max_length)

    def __len__(self) -> int:
        return len(self._window)

    def update(self, candle: Candle) -> None:
        """Push the newest candle, evicting the oldest when full."""
        self._window.appendleft(candle)

    def _recent(self, size: int):
        if not self._window:
            raise ValueError("RollJudge window is empty")
        return [c for _, c in zip(range(size), self._window)]

    def max(self, size: int) -> Candle:
        """
        Candle with the highest high among the `size` most recent.

        Ties resolve to the oldest candle, so a latest candle that only
        equals an earlier high is not a new maximum.
        """
        return max(reversed(self._recent(size)), key=lambda c: c.high)

    def min(self, size: int) -> Candle:
        """Candle with the lowest low among the `size` most recent (ties: newest)."""
        return min(self._recent(size), key=lambda c: c.low)

    def is_max(self, size: int) -> bool:
        return self.max(size) == self._window[0]

    def is_min(self, size: int) -> bool:
        return self.min(size) == self._window[0]
