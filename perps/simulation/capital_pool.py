"""
Shared Capital Pool

A single balance that several concurrently backtested strategies top up
from. Passed explicitly to each strategy at construction; never a global.

Key features:
- Thread-safe check-and-decrement withdrawals
- Running total of capital handed out
- Fatal InsufficientCapitalError when a required draw cannot be met

Usage:
    pool = SharedCapitalPool(1_000_000.0)
    if pool.try_withdraw(10.0):
        ...
    pool.withdraw(10.0)  # raises InsufficientCapitalError if short
"""

import logging
import threading

logger = logging.getLogger(__name__)


class InsufficientCapitalError(RuntimeError):
    """The shared pool cannot cover a required top-up (configuration error)."""


class SharedCapitalPool:
    """
    Mutable balance shared by strategy instances.

    The lock is held only for the balance check-and-decrement, never across
    candle processing.
    """

    def __init__(self, balance: float):
        if balance < 0:
            raise ValueError(f"pool balance must be non-negative, got {balance}")
        self._balance = float(balance)
        self._withdrawn = 0.0
        self._lock = threading.Lock()

    @property
    def balance(self) -> float:
        """Capital still available in the pool."""
        with self._lock:
            return self._balance

    @property
    def withdrawn(self) -> float:
        """Total capital handed out so far."""
        with self._lock:
            return self._withdrawn

    def try_withdraw(self, amount: float) -> bool:
        """
        Atomically withdraw `amount` if the balance covers it.

        Returns:
            True if withdrawn, False if the balance was insufficient
        """
        if amount < 0:
            raise ValueError(f"withdrawal must be non-negative, got {amount}")
        with self._lock:
            if self._balance < amount:
                return False
            self._balance -= amount
            self._withdrawn += amount
            return True

    def withdraw(self, amount: float) -> None:
        """
        Withdraw `amount` or fail.

        Raises:
            InsufficientCapitalError: If the pool cannot cover `amount`
        """
        if not self.try_withdraw(amount):
            # Balance read outside the failed attempt is only for the message
            raise InsufficientCapitalError(
                f"shared pool balance {self.balance:.4f} is not enough, need {amount:.4f}"
            )
        logger.debug("Withdrew %.4f from shared pool", amount)
