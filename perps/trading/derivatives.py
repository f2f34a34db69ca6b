"""
Derivatives-specific utilities for leveraged perpetual futures.

Handles:
- Leverage validation
- Liquidation price calculation
- Protective stop-loss placement relative to liquidation
- Position sizing in contract units
"""

from typing import Optional

from perps.config import (
    MAINTENANCE_MARGIN_RATE,
    MIN_LEVERAGE,
    STOP_LOSS_SAFETY_FACTOR,
)


def max_leverage(maintenance_rate: float = MAINTENANCE_MARGIN_RATE) -> float:
    """
    Leverage at which the liquidation price reaches the entry price.

    Any leverage at or above this value would be liquidated immediately.
    """
    return 1.0 / maintenance_rate


def validate_leverage(leverage: float) -> None:
    """
    Reject leverage the contract model cannot represent.

    Args:
        leverage: Requested leverage

    Raises:
        ValueError: If leverage is below 1x or at/above the maintenance bound
    """
    if leverage < MIN_LEVERAGE:
        raise ValueError(f"leverage must be >= {MIN_LEVERAGE}, got {leverage}")
    if leverage >= max_leverage():
        raise ValueError(
            f"leverage must be < {max_leverage():.0f} with maintenance rate "
            f"{MAINTENANCE_MARGIN_RATE}, got {leverage}"
        )


def calculate_liquidation_price(
    entry_price: float,
    is_long: bool,
    leverage: float,
    maintenance_rate: float = MAINTENANCE_MARGIN_RATE,
) -> float:
    """
    Calculate liquidation price for a leveraged position.

    Liquidation occurs when the unrealized loss eats the margin down to the
    maintenance buffer.

    For a long: liq_price = entry * (1 - 1/leverage) + entry * maintenance
    For a short: liq_price = entry * (1 + 1/leverage) - entry * maintenance

    Args:
        entry_price: Position entry price
        is_long: True for long, False for short
        leverage: Position leverage
        maintenance_rate: Maintenance margin as a fraction of notional

    Returns:
        Liquidation price
    """
    if is_long:
        return entry_price * (1 - 1 / leverage) + entry_price * maintenance_rate
    return entry_price * (1 + 1 / leverage) - entry_price * maintenance_rate


def calculate_stop_loss_price(
    entry_price: float,
    is_long: bool,
    leverage: float,
    safety_factor: float = STOP_LOSS_SAFETY_FACTOR,
    maintenance_rate: float = MAINTENANCE_MARGIN_RATE,
) -> float:
    """
    Place a stop-loss just ahead of the liquidation price.

    Same formula as the liquidation price with the 1/leverage distance
    scaled by `safety_factor`, so the stop fires before the exchange's
    forced liquidation and its penalty.

    Example:
        >>> calculate_stop_loss_price(100.0, True, 10.0)
        90.5  # liquidation at 90.4
    """
    distance = safety_factor / leverage
    if is_long:
        return entry_price * (1 - distance) + entry_price * maintenance_rate
    return entry_price * (1 + distance) - entry_price * maintenance_rate


def is_stop_loss_reachable(
    stop_loss: Optional[float],
    liquidation_price: float,
    is_long: bool,
) -> bool:
    """
    Check whether a stop-loss can fire before liquidation.

    A long stop below the liquidation price (or a short stop above it)
    is only crossed after the position has been liquidated.

    Returns:
        True when stop_loss is None or sits on the reachable side
    """
    if stop_loss is None:
        return True
    if is_long:
        return stop_loss >= liquidation_price
    return stop_loss <= liquidation_price


def calculate_position_size(margin: float, leverage: float, entry_price: float) -> float:
    """Contract units for a margin at a leverage (units × price = notional)."""
    return margin * leverage / entry_price