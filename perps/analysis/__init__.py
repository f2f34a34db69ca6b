"""
Historical price analysis used to tune strategy parameters.
"""

from .bull_runs import BullRun, drawdown_table, find_bull_runs, runs_to_frame

__all__ = [
    "BullRun",
    "find_bull_runs",
    "drawdown_table",
    "runs_to_frame",
]
