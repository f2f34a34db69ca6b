"""
Roll strategy - ladder escalation of a single leveraged position.

Starts with high leverage and a small take-profit, and each time a
level's take-profit is reached rolls the whole realized capital into the
next (usually lower leverage) level. A protective stop sits just ahead of
the liquidation price; a stop-out or liquidation ends the run as FAILED.
Late levels may define a maximum drawdown from the best mark-to-market
value, which ends the run as SUCCEEDED.

Usage:
    strategy = RollStrategy(is_long=True, capital=100.0)
    for candle in candles:
        strategy.update(candle)
        if strategy.is_finished:
            break
    if strategy.status is RollStatus.PROCESSING:
        strategy.close(candles[-1].close)

Note: reaching a level's take-profit does not leave PROCESSING. The
realized capital is rolled into the next level on the same candle, and
once the ladder is exhausted the strategy idles holding capital until it
is closed externally.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from perps.config import DEFAULT_ROLL_LADDER
from perps.data.candles import Candle
from perps.strategy.base import EventKind, Strategy
from perps.trading.contract import Contract, ExitReason
from perps.trading.derivatives import calculate_stop_loss_price, validate_leverage

logger = logging.getLogger(__name__)


class RollStatus(str, Enum):
    """Lifecycle of a roll run. Everything but PROCESSING is terminal."""

    PROCESSING = "Processing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    ABORTED = "Aborted"


class LadderLevel(NamedTuple):
    """One ladder stage: leverage, take-profit ratio, optional max drawdown."""

    leverage: float
    take_profit: float
    max_drawdown: Optional[float] = None


LevelSpec = Union[LadderLevel, Tuple[float, float, Optional[float]]]


@dataclass
class RollLadder:
    """Ordered ladder levels a RollStrategy advances through."""

    levels: List[LadderLevel] = field(default_factory=list)

    def __post_init__(self):
        self.levels = [LadderLevel(*level) for level in self.levels]
        for i, level in enumerate(self.levels):
            try:
                validate_leverage(level.leverage)
            except ValueError as e:
                raise ValueError(f"ladder level {i}: {e}") from e
            if level.take_profit <= 0:
                raise ValueError(
                    f"ladder level {i}: take_profit must be positive, got {level.take_profit}"
                )
            if level.max_drawdown is not None and not 0 < level.max_drawdown <= 1:
                raise ValueError(
                    f"ladder level {i}: max_drawdown must be in (0, 1], got {level.max_drawdown}"
                )

    @classmethod
    def from_tuples(cls, levels: Iterable[LevelSpec]) -> "RollLadder":
        """Build a ladder from (leverage, take_profit, max_drawdown) tuples."""
        return cls(levels=list(levels))

    @classmethod
    def default(cls) -> "RollLadder":
        """Nine-level ladder from 25x down to 1x."""
        return cls.from_tuples(DEFAULT_ROLL_LADDER)

    @classmethod
    def linear(cls, k: float, b: float, max_leverage: float) -> "RollLadder":
        """
        Ladder with leverages x0 = 1, x(n+1) = x(n) * k + b, while x < max_leverage.

        Each level takes profit at 100% and has no drawdown exit.

        Raises:
            ValueError: If the leverage sequence does not grow
        """
        levels = []
        x = 1.0
        while x < max_leverage:
            levels.append(LadderLevel(x, 1.0, None))
            next_x = x * k + b
            if next_x <= x:
                raise ValueError(f"linear ladder does not grow: k={k}, b={b}")
            x = next_x
        return cls(levels=levels)

    def __len__(self) -> int:
        return len(self.levels)

    def __getitem__(self, index: int) -> LadderLevel:
        return self.levels[index]

    def __iter__(self) -> Iterator[LadderLevel]:
        return iter(self.levels)


class RollStrategy(Strategy):
    """
    Ladder escalation strategy owning at most one Contract.

    Attributes:
        is_long: Direction of every ladder position
        capital: Realized capital not committed to a position
        ladder: Ladder levels
        level: Number of levels entered so far (index of the next level)
        contract: Open position, if any
        max_value: Best mark-to-market value seen while holding
        best_price: Price at which max_value was seen
        status: RollStatus
    """

    def __init__(
        self,
        is_long: bool,
        capital: float,
        ladder: Union[RollLadder, Sequence[LevelSpec], None] = None,
    ) -> None:
        super().__init__()
        if capital <= 0:
            raise ValueError(f"capital must be positive, got {capital}")

        if ladder is None:
            ladder = RollLadder.default()
        elif not isinstance(ladder, RollLadder):
            ladder = RollLadder.from_tuples(ladder)

        self.is_long = is_long
        self.capital = capital
        self.ladder = ladder
        self.level = 0
        self.contract: Optional[Contract] = None
        self.max_value = 0.0
        self.best_price = 0.0
        self.status = RollStatus.PROCESSING

    @property
    def is_finished(self) -> bool:
        return self.status is not RollStatus.PROCESSING

    def _take_profit_hit(self, contract: Contract, take_profit: float, price: float) -> bool:
        if self.is_long:
            return price > contract.entry_price * (1 + take_profit)
        return price < contract.entry_price * (1 - take_profit)

    def update(self, candle: Candle) -> None:
        if self.status is not RollStatus.PROCESSING:
            return

        if self.contract is not None and self._manage_contract(candle):
            return

        # Still holding, or the ladder is exhausted: idle with capital
        if self.contract is not None or self.level >= len(self.ladder):
            return
        self._open_next_level(candle)

    def _manage_contract(self, candle: Candle) -> bool:
        """
        Apply the exit rules to the open contract.

        Returns:
            True when the run reached a terminal status on this candle
        """
        contract = self.contract
        level = self.ladder[self.level - 1]

        adverse = candle.adverse_price(self.is_long)
        realized = contract.liquidate(adverse)
        if realized is not None:
            reason = contract.exit_reason(adverse)
            self.contract = None
            self.capital += realized
            self.status = RollStatus.FAILED
            self._record(EventKind.STOP_OUT, candle.close_time, adverse, self.level, reason.value)
            logger.info(
                "roll failed (%s): time: %s, price: %s, level: %d, value: %.4f",
                reason.value,
                candle.close_time,
                adverse,
                self.level,
                self.value(),
            )
            return True

        if self._take_profit_hit(contract, level.take_profit, candle.close):
            self.contract = None
            self.capital += contract.close(candle.close)
            self._record(
                EventKind.TAKE_PROFIT,
                candle.close_time,
                candle.close,
                self.level,
                ExitReason.TAKE_PROFIT.value,
            )
            logger.info(
                "roll take profit: time: %s, price: %s, level: %d, value: %.4f",
                candle.close_time,
                candle.close,
                self.level,
                self.value(),
            )
            return False

        for price in (candle.high, candle.low):
            value = contract.close(price)
            if self.max_value < value:
                self.max_value = value
                self.best_price = price

        if level.max_drawdown is not None:
            close_value = contract.close(candle.close)
            if close_value < self.max_value * (1 - level.max_drawdown):
                self.contract = None
                self.capital += close_value
                self.status = RollStatus.SUCCEEDED
                self._record(
                    EventKind.DRAWDOWN_EXIT,
                    candle.close_time,
                    candle.close,
                    self.level,
                    ExitReason.DRAWDOWN.value,
                )
                logger.info(
                    "roll succeeded: time: %s, price: %s, level: %d, value: %.4f",
                    candle.close_time,
                    candle.close,
                    self.level,
                    self.value(),
                )
                return True

        return False

    def _open_next_level(self, candle: Candle) -> None:
        leverage = self.ladder[self.level].leverage
        stop_loss = calculate_stop_loss_price(candle.close, self.is_long, leverage)
        self.contract = Contract.open(
            self.is_long,
            candle.close,
            self.capital,
            leverage,
            candle.close_time,
            stop_loss,
        )
        self.capital = 0.0
        self.level += 1
        self._record(EventKind.OPEN, candle.close_time, candle.close, self.level)
        logger.info(
            "roll open new: time: %s, price: %s, level: %d, leverage: %s, value: %.4f",
            candle.close_time,
            candle.close,
            self.level,
            leverage,
            self.value(),
        )

    def close(self, price: float, time: Optional[datetime] = None) -> float:
        """
        Force-close at `price` (`time` is only used for the event log).

        Realizes any open contract; a run still PROCESSING becomes ABORTED,
        terminal statuses are kept.

        Returns:
            Capital after the close
        """
        if self.contract is not None:
            contract = self.contract
            self.contract = None
            self.capital += contract.close(price)
            self._record(EventKind.CLOSE, time, price, self.level, ExitReason.MANUAL.value)
        if self.status is RollStatus.PROCESSING:
            self.status = RollStatus.ABORTED
        return self.capital

    def value(self) -> float:
        """Capital plus the margin of any open contract (not marked to market)."""
        if self.contract is not None:
            return self.capital + self.contract.margin
        return self.capital
