"""
Leveraged perpetual futures backtester.

Replays historical candles through leveraged position strategies with
maker fees, maintenance margin, stop-losses and liquidation penalties.

Modules:
- data: Candle records and kline CSV loading
- trading: Contract model, fees and liquidation math
- strategy: Roll (ladder escalation) and geo (periodic reopening) strategies
- simulation: Shared capital pool and backtest driver
- analysis: Bull-run detection for parameter tuning
- runners: Command-line entry point
"""

__version__ = "0.1.0"

# Convenience imports for common usage
from perps.data import Candle, CandleChart

from perps.trading import Contract, ExitReason

from perps.simulation import (
    BacktestResult,
    InsufficientCapitalError,
    SharedCapitalPool,
    run_many,
    run_strategy,
)

from perps.strategy import (
    GeoStrategy,
    RollLadder,
    RollStatus,
    RollStrategy,
    Strategy,
)

__all__ = [
    # Data
    "Candle",
    "CandleChart",
    # Trading
    "Contract",
    "ExitReason",
    # Simulation
    "BacktestResult",
    "InsufficientCapitalError",
    "SharedCapitalPool",
    "run_many",
    "run_strategy",
    # Strategies
    "GeoStrategy",
    "RollLadder",
    "RollStatus",
    "RollStrategy",
    "Strategy",
]
