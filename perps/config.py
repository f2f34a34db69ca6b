"""
Configuration for the leveraged perpetual futures backtester.

Defines margin rules, liquidation penalties, the default roll ladder,
and default strategy parameters. Fee rates live in perps.trading.fees.
"""

from datetime import timedelta
from typing import Dict, List, Optional, Tuple

# =============================================================================
# MARGIN CONFIGURATION
# =============================================================================

# Maintenance margin = 0.4% of the initial notional value.
# Shifts the liquidation price towards entry by entry × rate.
MAINTENANCE_MARGIN_RATE: float = 0.004

# Forced liquidation loses 15% of the otherwise-computed close value
# (insurance fund fee). Stop-losses exist to avoid paying it.
LIQUIDATION_PENALTY: float = 0.15

# Minimum leverage accepted by the contract model. The upper bound is
# implied by MAINTENANCE_MARGIN_RATE: at 1 / rate the liquidation price
# reaches the entry price.
MIN_LEVERAGE: float = 1.0

# =============================================================================
# ROLL STRATEGY CONFIGURATION
# =============================================================================

# Stop-loss distance as a fraction of the theoretical liquidation distance.
# 0.99 places the stop ~1% of the margin ahead of liquidation.
STOP_LOSS_SAFETY_FACTOR: float = 0.99

# Ladder levels: (leverage, take_profit_ratio, max_drawdown)
# Comments: take-profit move / cumulative capital multiple after the level
DEFAULT_ROLL_LADDER: List[Tuple[float, float, Optional[float]]] = [
    (25.0, 0.04, None),    # 4%     104%
    (20.0, 0.05, None),    # 5%     109.2%
    (20.0, 0.05, None),    # 5%     114.7%
    # Kept at 0.67 as shipped; the 6.7% in this table suggests 0.067 was meant.
    # Pass a custom ladder to RollStrategy to use the corrected value.
    (15.0, 0.67, None),    # 6.7%   122.3%
    (10.0, 0.1, None),     # 10%    134.5%
    (5.0, 0.2, None),      # 20%    161.4%
    (3.0, 0.33, None),     # 33%    215.3%
    (2.0, 0.5, 0.6),       # 50%    322.9%
    (1.0, 1.0, 0.2),       # 100%   645.7%
]

# Default starting capital for roll runs
DEFAULT_ROLL_CAPITAL: float = 100.0

# =============================================================================
# GEO STRATEGY CONFIGURATION
# =============================================================================

DEFAULT_GEO_PARAMS: Dict[str, float] = {
    "leverage": 10.0,
    "position_ratio": 1.0,
    "min_capital_floor": 10.0,   # Top capital up to this before each open
    "stop_loss_ratio": 0.03,
    "take_profit_ratio": 0.002,
}

DEFAULT_REOPEN_INTERVAL: timedelta = timedelta(minutes=60)

# Shared pool balance drawn on by concurrently run geo strategies
DEFAULT_SHARED_POOL: float = 1_000_000.0

# =============================================================================
# DATA CONFIGURATION
# =============================================================================

# Candle width of the kline files being replayed
DEFAULT_CANDLE_INTERVAL: timedelta = timedelta(minutes=1)

# Binance kline CSV column order (extra trailing columns are ignored)
KLINE_COLUMNS: List[str] = [
    "open_time",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "close_time",
]
