"""
Bull-run finder.

Scans a candle series for sustained rallies: a run starts at the lowest
low seen, tracks the running peak high, and ends once the drawdown from
the peak exceeds a tolerance that widens with the gain so far:

    tolerance = min(increase * drawdown_slope + drawdown_base, drawdown_cap)

Runs whose increase beats `min_increase` are reported along with the
drawdowns endured on the way up, which is what ladder max-drawdown
settings are tuned from.

Usage:
    runs = find_bull_runs(chart.candles)
    print(drawdown_table(runs))
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from perps.data.candles import Candle

logger = logging.getLogger(__name__)


@dataclass
class BullRun:
    """
    One detected rally.

    Attributes:
        entry: Candle with the lowest low the run started from
        end: Candle on which the run ended (last candle if unfinished)
        peak: Candle with the highest high of the run
        drawdown_steps: (increase, max_drawdown) recorded each time a new
            peak followed a deeper drawdown than any before it
    """

    entry: Candle
    end: Candle
    peak: Candle
    drawdown_steps: List[Tuple[float, float]] = field(default_factory=list)

    @property
    def increase(self) -> float:
        """Peak high over entry low, minus one."""
        return self.peak.high / self.entry.low - 1

    @property
    def return_rate(self) -> float:
        """End close over entry low."""
        return self.end.close / self.entry.low


def find_bull_runs(
    candles: Sequence[Candle],
    min_increase: float = 0.5,
    drawdown_base: float = 0.1,
    drawdown_slope: float = 0.5,
    drawdown_cap: float = 0.5,
) -> List[BullRun]:
    """
    Find rallies whose increase exceeds `min_increase`.

    Args:
        candles: Candles ordered by close time
        min_increase: Minimum peak/entry - 1 for a run to be kept
        drawdown_base: Drawdown tolerance at zero increase
        drawdown_slope: Extra tolerance per unit of increase
        drawdown_cap: Maximum drawdown tolerance

    Returns:
        Runs in chronological order
    """
    runs: List[BullRun] = []
    if not candles:
        return runs

    entry = peak = None
    max_drawdown = 0.0
    recorded_drawdown = 0.0
    steps: List[Tuple[float, float]] = []
    start_new = True

    for candle in candles:
        if start_new or candle.low < entry.low:
            entry = peak = candle
            max_drawdown = 0.0
            recorded_drawdown = 0.0
            steps = []
            start_new = False
            continue

        if peak.high < candle.high:
            if max_drawdown > recorded_drawdown:
                recorded_drawdown = max_drawdown
                steps.append((peak.high / entry.low - 1, max_drawdown))
            peak = candle

        max_drawdown = max(max_drawdown, 1 - candle.low / peak.high)
        increase = peak.high / entry.low - 1
        if max_drawdown > min(increase * drawdown_slope + drawdown_base, drawdown_cap):
            if increase > min_increase:
                runs.append(BullRun(entry, candle, peak, list(steps)))
                logger.debug("Bull run %s -> %s, increase %.4f", entry.close_time, candle.close_time, increase)
            start_new = True

    if not start_new and peak.high / entry.low - 1 > min_increase:
        runs.append(BullRun(entry, candles[-1], peak, list(steps)))

    logger.info("Found %d bull runs in %d candles", len(runs), len(candles))
    return runs


def drawdown_table(runs: Sequence[BullRun]) -> pd.DataFrame:
    """
    Flatten every run's drawdown steps into one table.

    Columns: run (index into `runs`), entry_time, increase_pct, max_drawdown_pct.
    """
    rows = [
        {
            "run": i,
            "entry_time": run.entry.close_time,
            "increase": increase,
            "max_drawdown": drawdown,
        }
        for i, run in enumerate(runs)
        for increase, drawdown in run.drawdown_steps
    ]
    df = pd.DataFrame(rows, columns=["run", "entry_time", "increase", "max_drawdown"])
    df["increase_pct"] = np.round(df.pop("increase").astype(float) * 100, 4)
    df["max_drawdown_pct"] = np.round(df.pop("max_drawdown").astype(float) * 100, 4)
    return df


def runs_to_frame(runs: Sequence[BullRun]) -> pd.DataFrame:
    """One row per run with entry/peak/end times and prices."""
    return pd.DataFrame(
        [
            {
                "entry_time": run.entry.close_time,
                "entry_low": run.entry.low,
                "peak_time": run.peak.close_time,
                "peak_high": run.peak.high,
                "end_time": run.end.close_time,
                "end_close": run.end.close,
                "increase": run.increase,
                "return_rate": run.return_rate,
            }
            for run in runs
        ],
        columns=[
            "entry_time",
            "entry_low",
            "peak_time",
            "peak_high",
            "end_time",
            "end_close",
            "increase",
            "return_rate",
        ],
    )
