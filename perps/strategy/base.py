"""
Strategy interface for candle-driven backtests.

Every strategy consumes one candle at a time, owns at most one open
Contract, and reports its realized-plus-margin value. Implementations:
- RollStrategy: ladder escalation (perps.strategy.roll_strategy)
- GeoStrategy: periodic proportional reopening (perps.strategy.geo_strategy)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from perps.data.candles import Candle


class EventKind(str, Enum):
    """Qualitative strategy event types for reporting."""

    OPEN = "OPEN"
    TAKE_PROFIT = "TAKE_PROFIT"
    STOP_OUT = "STOP_OUT"
    DRAWDOWN_EXIT = "DRAWDOWN_EXIT"
    TOP_UP = "TOP_UP"
    CLOSE = "CLOSE"


@dataclass(frozen=True)
class StrategyEvent:
    """One entry in a strategy's event log."""

    time: Optional[datetime]
    kind: EventKind
    price: float
    value: float
    level: Optional[int] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization."""
        return {
            "time": self.time.isoformat() if self.time else None,
            "kind": self.kind.value,
            "price": self.price,
            "value": self.value,
            "level": self.level,
            "reason": self.reason,
        }


class Strategy(ABC):
    """
    Base class for backtest strategies.

    Subclasses implement update() and value(); close() defaults to
    reporting value() for strategies that hold nothing to realize.
    """

    def __init__(self) -> None:
        self.events: List[StrategyEvent] = []

    @abstractmethod
    def update(self, candle: Candle) -> None:
        """Advance the strategy by one candle."""

    def close(self, price: float, time: Optional[datetime] = None) -> float:
        """Force-close any open position at `price` and return value()."""
        return self.value()

    @abstractmethod
    def value(self) -> float:
        """Current capital plus margin of any open position."""

    @property
    def is_finished(self) -> bool:
        """True once further candles can no longer change the outcome."""
        return False

    def _record(
        self,
        kind: EventKind,
        time: Optional[datetime],
        price: float,
        level: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> StrategyEvent:
        event = StrategyEvent(
            time=time,
            kind=kind,
            price=price,
            value=self.value(),
            level=level,
            reason=reason,
        )
        self.events.append(event)
        return event
