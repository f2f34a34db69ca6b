"""
Candle-driven backtest strategies.

Provides the Strategy interface, the roll (ladder escalation) strategy,
the geo (periodic proportional reopening) strategy and the RollJudge
local-extreme window.
"""

from .base import EventKind, Strategy, StrategyEvent

from .roll_strategy import (
    LadderLevel,
    RollLadder,
    RollStatus,
    RollStrategy,
)

from .geo_strategy import GeoStrategy

from .roll_judge import RollJudge

__all__ = [
    # Interface
    "Strategy",
    "StrategyEvent",
    "EventKind",
    # Roll
    "LadderLevel",
    "RollLadder",
    "RollStatus",
    "RollStrategy",
    # Geo
    "GeoStrategy",
    # Helpers
    "RollJudge",
]
