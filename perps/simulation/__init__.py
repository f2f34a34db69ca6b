"""
Backtest simulation: shared capital pool and candle driver.
"""

from .capital_pool import InsufficientCapitalError, SharedCapitalPool

from .driver import BacktestResult, results_to_frame, run_many, run_strategy

__all__ = [
    # Capital
    "SharedCapitalPool",
    "InsufficientCapitalError",
    # Driver
    "BacktestResult",
    "run_strategy",
    "run_many",
    "results_to_frame",
]
