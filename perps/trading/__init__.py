"""
Trading logic module for leveraged perpetual futures.

Provides the contract model, fee calculations and liquidation math.
"""

from .contract import Contract, ExitReason

from .fees import (
    calculate_closing_fee,
    margin_from_offer,
    min_take_profit_ratio,
    MAKER_FEE_RATE,
    TAKER_FEE_RATE,
)

from .derivatives import (
    calculate_liquidation_price,
    calculate_stop_loss_price,
    calculate_position_size,
    is_stop_loss_reachable,
    max_leverage,
    validate_leverage,
)

__all__ = [
    # Contract
    "Contract",
    "ExitReason",
    # Fees
    "calculate_closing_fee",
    "margin_from_offer",
    "min_take_profit_ratio",
    "MAKER_FEE_RATE",
    "TAKER_FEE_RATE",
    # Derivatives
    "calculate_liquidation_price",
    "calculate_stop_loss_price",
    "calculate_position_size",
    "is_stop_loss_reachable",
    "max_leverage",
    "validate_leverage",
]
