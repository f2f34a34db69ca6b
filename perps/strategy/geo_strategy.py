"""
Geo strategy - periodic proportional reopening.

Whenever flat and at least `reopen_interval` has passed since the last
open, commits a fixed fraction of its capital to a new leveraged position
with a percentage stop-loss. An open position is realized early only by its
stop-loss or liquidation; after `reopen_interval` it is also realized once
the close clears the take-profit ratio.

Capital below `min_capital_floor` is topped up before each open, first
from the strategy's own borrowed stake and then from a SharedCapitalPool
shared with other runs. Everything drawn from the pool is tracked as
cumulative_cost.

For fixed other parameters, runs with equal
position_ratio × leverage / (1 + leverage × MAKER_FEE_RATE) carry the same
return and risk profile.

Usage:
    pool = SharedCapitalPool(1_000_000.0)
    strategy = GeoStrategy(
        is_long=True,
        leverage=10,
        position_ratio=1.0,
        reopen_interval=timedelta(hours=1),
        min_capital_floor=10.0,
        stop_loss_ratio=0.03,
        take_profit_ratio=0.002,
        shared_pool=pool,
    )
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from perps.data.candles import Candle
from perps.simulation.capital_pool import SharedCapitalPool
from perps.strategy.base import EventKind, Strategy
from perps.trading.contract import Contract, ExitReason
from perps.trading.derivatives import validate_leverage
from perps.trading.fees import MAKER_FEE_RATE, min_take_profit_ratio

logger = logging.getLogger(__name__)


class GeoStrategy(Strategy):
    """
    Periodic reopening strategy drawing top-ups from a shared pool.

    Attributes:
        is_long: Direction of every position
        leverage: Position leverage
        position_ratio: Fraction of capital committed per open
        reopen_interval: Minimum time between opens, and holding time
            before take-profit applies
        min_capital_floor: Capital is topped up to this value before opening
        stop_loss_ratio: Stop distance from the entry price
        take_profit_ratio: Take-profit distance from the entry price
        capital: Free capital not committed to a position
        borrowed_stake: Capital drawn from the pool but not yet used
        cumulative_cost: Total drawn from the shared pool
        open_count: Number of positions opened
        last_open_time: Close time of the candle of the last open
        contract: Open position, if any
    """

    def __init__(
        self,
        is_long: bool,
        leverage: float,
        position_ratio: float,
        reopen_interval: timedelta,
        min_capital_floor: float,
        stop_loss_ratio: float,
        take_profit_ratio: float,
        shared_pool: SharedCapitalPool,
    ) -> None:
        super().__init__()
        validate_leverage(leverage)
        if not 0 < position_ratio <= 1:
            raise ValueError(f"position_ratio must be in (0, 1], got {position_ratio}")
        if reopen_interval < timedelta(0):
            raise ValueError(f"reopen_interval must be non-negative, got {reopen_interval}")
        if min_capital_floor <= 0:
            raise ValueError(f"min_capital_floor must be positive, got {min_capital_floor}")
        if not 0 < stop_loss_ratio < 1:
            raise ValueError(f"stop_loss_ratio must be in (0, 1), got {stop_loss_ratio}")
        if take_profit_ratio < 0:
            raise ValueError(f"take_profit_ratio must be non-negative, got {take_profit_ratio}")

        if take_profit_ratio < min_take_profit_ratio(MAKER_FEE_RATE):
            logger.warning(
                "take profit ratio %s is too low, can't take profit unless it is greater than %s",
                take_profit_ratio,
                min_take_profit_ratio(MAKER_FEE_RATE),
            )

        self.is_long = is_long
        self.leverage = leverage
        self.position_ratio = position_ratio
        self.reopen_interval = reopen_interval
        self.min_capital_floor = min_capital_floor
        self.stop_loss_ratio = stop_loss_ratio
        self.take_profit_ratio = take_profit_ratio
        self.shared_pool = shared_pool

        self.contract: Optional[Contract] = None
        self.capital = 0.0
        self.borrowed_stake = 0.0
        self.cumulative_cost = 0.0
        self.open_count = 0
        self.last_open_time: Optional[datetime] = None

    @property
    def return_rate(self) -> float:
        """value() over everything drawn from the pool, 0 if nothing was drawn."""
        if self.cumulative_cost <= 0:
            return 0.0
        return self.value() / self.cumulative_cost

    def _take_profit_hit(self, contract: Contract, price: float) -> bool:
        if self.is_long:
            return price > contract.entry_price * (1 + self.take_profit_ratio)
        return price < contract.entry_price * (1 - self.take_profit_ratio)

    def update(self, candle: Candle) -> None:
        if self.contract is not None:
            self._manage_contract(candle)

        if self.contract is not None:
            return
        if (
            self.last_open_time is not None
            and self.last_open_time + self.reopen_interval > candle.close_time
        ):
            return

        self._top_up(candle)
        self._open(candle)

    def _manage_contract(self, candle: Candle) -> None:
        contract = self.contract
        adverse = candle.adverse_price(self.is_long)

        realized = contract.liquidate(adverse)
        if realized is not None:
            self.contract = None
            self.capital += realized
            reason = contract.exit_reason(adverse)
            self._record(EventKind.STOP_OUT, candle.close_time, adverse, reason=reason.value)
            logger.debug("geo stop out (%s) at %s, value: %.4f", reason.value, adverse, self.value())
            return

        held_long_enough = contract.open_time + self.reopen_interval <= candle.close_time
        if held_long_enough and self._take_profit_hit(contract, candle.close):
            self.contract = None
            self.capital += contract.close(candle.close)
            self._record(
                EventKind.TAKE_PROFIT,
                candle.close_time,
                candle.close,
                reason=ExitReason.TAKE_PROFIT.value,
            )
            logger.debug("geo take profit at %s, value: %.4f", candle.close, self.value())

    def _top_up(self, candle: Candle) -> None:
        """
        Raise capital to min_capital_floor.

        Raises:
            InsufficientCapitalError: If the shared pool cannot cover the draw
        """
        if self.capital >= self.min_capital_floor:
            return

        needed = self.min_capital_floor - self.capital
        if self.borrowed_stake < needed:
            supplement = needed - self.borrowed_stake
            self.shared_pool.withdraw(supplement)
            self.borrowed_stake = needed
            self.cumulative_cost += supplement
        self.borrowed_stake -= needed
        self.capital = self.min_capital_floor
        self._record(EventKind.TOP_UP, candle.close_time, candle.close)

    def _open(self, candle: Candle) -> None:
        if self.is_long:
            stop_loss = (1 - self.stop_loss_ratio) * candle.close
        else:
            stop_loss = (1 + self.stop_loss_ratio) * candle.close

        committed = self.capital * self.position_ratio
        self.contract = Contract.open(
            self.is_long,
            candle.close,
            committed,
            self.leverage,
            candle.close_time,
            stop_loss,
        )
        self.capital -= committed
        self.last_open_time = candle.close_time
        self.open_count += 1
        self._record(EventKind.OPEN, candle.close_time, candle.close)

    def close(self, price: float, time: Optional[datetime] = None) -> float:
        """Realize any open position at `price` and return value()."""
        if self.contract is not None:
            contract = self.contract
            self.contract = None
            self.capital += contract.close(price)
            self._record(EventKind.CLOSE, time, price, reason=ExitReason.MANUAL.value)
        return self.value()

    def value(self) -> float:
        """Position margin plus free capital plus unused borrowed stake."""
        value = self.capital + self.borrowed_stake
        if self.contract is not None:
            value += self.contract.margin
        return value
