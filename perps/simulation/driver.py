"""
Backtest driver.

Feeds an ordered candle series to strategies one candle at a time,
force-closes at the last close, and collects the outcome. Several
strategies can be run concurrently on worker threads; they only share
state through an explicit SharedCapitalPool.

Usage:
    from perps.simulation.driver import run_strategy, run_many

    result = run_strategy(RollStrategy(True, 100.0), chart.candles, name="roll")
    print(result.summary())

    results = run_many(
        {f"geo_{lev}x": partial(make_geo, lev) for lev in (5, 10, 20)},
        chart.candles,
    )
    print(results_to_frame(results))
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from perps.data.candles import Candle
from perps.strategy.base import EventKind, Strategy, StrategyEvent

logger = logging.getLogger(__name__)


@dataclass
class BacktestResult:
    """
    Outcome of one strategy run.

    Attributes:
        name: Run label
        final_value: Strategy value() after the final close
        status: Terminal status name for strategies that report one
        candles_processed: Candles fed before stopping
        cost: Capital put in (pool draws for pool-funded strategies,
            starting value otherwise)
        open_count: Positions opened
        events: Strategy event log
        error: Error message when the run was aborted
    """

    name: str
    final_value: float = np.nan
    status: Optional[str] = None
    candles_processed: int = 0
    cost: float = 0.0
    open_count: int = 0
    events: List[StrategyEvent] = field(default_factory=list)
    error: Optional[str] = None
    last_time: Optional[datetime] = None

    @property
    def return_rate(self) -> float:
        """final_value / cost, 0 when nothing was put in."""
        if self.cost <= 0 or np.isnan(self.final_value):
            return 0.0
        return self.final_value / self.cost

    def summary(self) -> str:
        """Generate text summary of the run."""
        lines = [
            "=" * 60,
            f"BACKTEST: {self.name}",
            "=" * 60,
            f"Candles: {self.candles_processed}",
            f"Last candle: {self.last_time}" if self.last_time else "Last candle: N/A",
            f"Status: {self.status}" if self.status else "Status: N/A",
            "",
            "CAPITAL:",
            f"  Cost: {self.cost:.4f}",
            f"  Final Value: {self.final_value:.4f}",
            f"  Return Rate: {self.return_rate:.4f}",
            "",
            "ACTIVITY:",
            f"  Positions Opened: {self.open_count}",
            f"  Events: {len(self.events)}",
        ]
        if self.error:
            lines.extend(["", f"ERROR: {self.error}"])
        lines.append("=" * 60)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization (events as a count)."""
        return {
            "name": self.name,
            "final_value": self.final_value,
            "status": self.status,
            "candles_processed": self.candles_processed,
            "cost": self.cost,
            "return_rate": self.return_rate,
            "open_count": self.open_count,
            "events": len(self.events),
            "error": self.error,
        }


def _snapshot(strategy: Strategy, result: BacktestResult) -> None:
    """Copy the strategy's current outcome into `result`."""
    result.final_value = strategy.value()
    status = getattr(strategy, "status", None)
    result.status = status.value if status is not None else None
    cost = getattr(strategy, "cumulative_cost", None)
    if cost is not None:
        result.cost = cost
    result.events = list(strategy.events)
    result.open_count = sum(1 for e in strategy.events if e.kind is EventKind.OPEN)


def _simulate(
    strategy: Strategy,
    candles: Iterable[Candle],
    result: BacktestResult,
    stop_when_finished: bool,
) -> None:
    last: Optional[Candle] = None
    for candle in candles:
        if last is not None and candle.close_time < last.close_time:
            raise ValueError(
                f"candles out of order: {candle.close_time} after {last.close_time}"
            )
        strategy.update(candle)
        last = candle
        result.candles_processed += 1
        result.last_time = candle.close_time
        if stop_when_finished and strategy.is_finished:
            logger.debug("%s finished at %s", result.name, candle.close_time)
            break

    if last is not None:
        strategy.close(last.close, last.close_time)
    _snapshot(strategy, result)


def run_strategy(
    strategy: Strategy,
    candles: Iterable[Candle],
    name: str = "strategy",
    stop_when_finished: bool = True,
) -> BacktestResult:
    """
    Run one strategy over `candles` and force-close at the last close.

    Args:
        strategy: Freshly constructed strategy
        candles: Candles ordered by close time
        name: Run label
        stop_when_finished: Stop feeding once strategy.is_finished

    Returns:
        BacktestResult

    Raises:
        ValueError: If a candle closes before the previous one
        InsufficientCapitalError: If a pool-funded strategy runs dry
    """
    result = BacktestResult(name=name, cost=strategy.value())
    _simulate(strategy, candles, result, stop_when_finished)
    logger.info(
        "%s: value %.4f after %d candles (status: %s)",
        name,
        result.final_value,
        result.candles_processed,
        result.status,
    )
    return result


def _run_guarded(
    name: str,
    factory: Callable[[], Strategy],
    candles: List[Candle],
    stop_when_finished: bool,
) -> BacktestResult:
    strategy = factory()
    result = BacktestResult(name=name, cost=strategy.value())
    try:
        _simulate(strategy, candles, result, stop_when_finished)
    except Exception as e:
        logger.error("%s aborted after %d candles: %s", name, result.candles_processed, e)
        _snapshot(strategy, result)
        result.error = str(e)
    return result


def run_many(
    factories: Mapping[str, Callable[[], Strategy]],
    candles: Iterable[Candle],
    max_workers: Optional[int] = None,
    stop_when_finished: bool = True,
) -> Dict[str, BacktestResult]:
    """
    Run several strategies concurrently, one worker thread per run.

    A run that raises is aborted and reported with `error` set; the other
    runs continue.

    Args:
        factories: Run label -> zero-argument strategy constructor
        candles: Candles ordered by close time
        max_workers: Thread pool size (default: one per run)

    Returns:
        Dict of run label -> BacktestResult, in `factories` order
    """
    if not factories:
        return {}

    candles = list(candles)
    workers = max_workers or len(factories)
    results: Dict[str, BacktestResult] = {}

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(_run_guarded, name, factory, candles, stop_when_finished): name
            for name, factory in factories.items()
        }
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
            except Exception as e:
                logger.error("%s could not be started: %s", name, e)
                results[name] = BacktestResult(name=name, error=str(e))

    failed = sum(1 for r in results.values() if r.error)
    logger.info("Finished %d runs (%d failed)", len(results), failed)
    return {name: results[name] for name in factories}


def results_to_frame(results: Mapping[str, BacktestResult]) -> pd.DataFrame:
    """Tabulate results, one row per run indexed by run label."""
    rows = [r.to_dict() for r in results.values()]
    columns = [
        "name",
        "final_value",
        "status",
        "candles_processed",
        "cost",
        "return_rate",
        "open_count",
        "events",
        "error",
    ]
    return pd.DataFrame(rows, columns=columns).set_index("name")
