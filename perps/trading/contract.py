"""
Leveraged perpetual contract model.

A Contract is one open leveraged position: pure computation, no
time-stepping. Strategies open a Contract, probe it against candle
extremes, and discard it once a close value has been realized.

Exit precedence when probing a price:
1. Price through the liquidation price -> forced liquidation, 15% penalty
   (a candle that gaps through both the stop and liquidation cannot be
   filled at the stop)
2. Price through the stop-loss only -> filled at the stop-loss price
3. Otherwise no protective exit
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from perps.config import LIQUIDATION_PENALTY
from perps.trading.derivatives import (
    calculate_liquidation_price,
    calculate_position_size,
    is_stop_loss_reachable,
    validate_leverage,
)
from perps.trading.fees import MAKER_FEE_RATE, calculate_closing_fee, margin_from_offer

logger = logging.getLogger(__name__)


class ExitReason(str, Enum):
    """Reason a position was (or would be) realized."""

    STOP_LOSS = "STOP"
    LIQUIDATION = "LIQUIDATION"
    TAKE_PROFIT = "TARGET"
    DRAWDOWN = "DRAWDOWN"
    MANUAL = "MANUAL"


@dataclass(frozen=True)
class Contract:
    """
    A single open leveraged position.

    Attributes:
        is_long: Direction (True = long, False = short)
        margin: Initial margin backing the position
        entry_price: Open price
        open_time: Open timestamp
        liquidation_price: Forced liquidation price
        position_size: Contract units (position_size × price = notional)
        leverage: Position leverage
        stop_loss: Protective stop price, None when absent or unreachable
    """

    is_long: bool
    margin: float
    entry_price: float
    open_time: datetime
    liquidation_price: float
    position_size: float
    leverage: float
    stop_loss: Optional[float] = None

    @classmethod
    def open(
        cls,
        is_long: bool,
        entry_price: float,
        offered_capital: float,
        leverage: float,
        open_time: datetime,
        stop_loss: Optional[float] = None,
    ) -> "Contract":
        """
        Open a position with `offered_capital` gross funds.

        The opening fee is netted out of the offered funds:
        margin + margin × leverage × fee_rate = offered_capital.

        Args:
            is_long: True for long, False for short
            entry_price: Entry price (> 0)
            offered_capital: Gross funds committed including the fee budget (> 0)
            leverage: Leverage (>= 1 and below the maintenance bound)
            open_time: Open timestamp
            stop_loss: Optional protective stop price; dropped when it sits
                on the far side of the liquidation price

        Returns:
            New Contract

        Raises:
            ValueError: On non-positive price/capital or invalid leverage
        """
        if entry_price <= 0:
            raise ValueError(f"entry_price must be positive, got {entry_price}")
        if offered_capital <= 0:
            raise ValueError(f"offered_capital must be positive, got {offered_capital}")
        validate_leverage(leverage)

        margin = margin_from_offer(offered_capital, leverage)
        liquidation_price = calculate_liquidation_price(entry_price, is_long, leverage)
        position_size = calculate_position_size(margin, leverage, entry_price)

        if not is_stop_loss_reachable(stop_loss, liquidation_price, is_long):
            logger.error(
                "Stop loss %.6f is beyond liquidation price %.6f (%s), dropping it",
                stop_loss,
                liquidation_price,
                "long" if is_long else "short",
            )
            stop_loss = None

        return cls(
            is_long=is_long,
            margin=margin,
            entry_price=entry_price,
            open_time=open_time,
            liquidation_price=liquidation_price,
            position_size=position_size,
            leverage=leverage,
            stop_loss=stop_loss,
        )

    def _crossed(self, price: float, level: float) -> bool:
        """Whether `price` is strictly on the losing side of `level`."""
        if self.is_long:
            return price < level
        return price > level

    def exit_reason(self, price: float) -> Optional[ExitReason]:
        """
        Protective exit triggered at `price`, if any.

        Returns:
            ExitReason.LIQUIDATION, ExitReason.STOP_LOSS or None
        """
        if self._crossed(price, self.liquidation_price):
            return ExitReason.LIQUIDATION
        if self.stop_loss is not None and self._crossed(price, self.stop_loss):
            return ExitReason.STOP_LOSS
        return None

    def liquidate(self, price: float) -> Optional[float]:
        """
        Realize the position if `price` crosses the stop-loss or liquidation.

        Stop-loss exits fill at the stop price. Forced liquidations realize
        the close value at the liquidation price less LIQUIDATION_PENALTY.

        Args:
            price: Probe price, usually the candle's adverse extreme

        Returns:
            Realized value, or None if no protective exit is triggered
        """
        reason = self.exit_reason(price)
        if reason is ExitReason.STOP_LOSS:
            return self.cover(self.stop_loss)
        if reason is ExitReason.LIQUIDATION:
            return self.cover(self.liquidation_price) * (1 - LIQUIDATION_PENALTY)
        return None

    def close(self, price: float) -> float:
        """Realize the position at `price`, honoring stop-loss and liquidation."""
        realized = self.liquidate(price)
        if realized is not None:
            return realized
        return self.cover(price)

    def cover(self, price: float) -> float:
        """
        Mark-to-market close value at `price` without any penalty.

        Only the closing leg is fee-charged here; the opening fee was netted
        into the margin at open.
        """
        if self.is_long:
            pnl = self.position_size * (price - self.entry_price)
        else:
            pnl = self.position_size * (self.entry_price - price)
        return pnl + self.margin - calculate_closing_fee(self.position_size, price, MAKER_FEE_RATE)

    def notional(self, price: float) -> float:
        """Notional value at `price`."""
        return self.position_size * price

    def unrealized_pnl(self, price: float) -> float:
        """Close value at `price` minus the margin put up."""
        return self.cover(price) - self.margin
