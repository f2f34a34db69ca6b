"""
Candle data for backtesting.

Candle is an immutable OHLCV record keyed by its close time.
CandleChart holds an ordered, de-duplicated candle series and loads it
from Binance kline CSV exports (a single file or a directory of daily/
monthly files).

Usage:
    from perps.data.candles import CandleChart

    chart = CandleChart.read_from_csv("data/ETHUSDT", timedelta(minutes=1))
    for candle in chart.after(datetime(2021, 3, 26, tzinfo=timezone.utc)):
        strategy.update(candle)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

import pandas as pd

from perps.config import DEFAULT_CANDLE_INTERVAL, KLINE_COLUMNS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Candle:
    """
    One OHLCV bar. Equality and ordering use close_time only.

    Attributes:
        open, high, low, close: Prices
        open_time: Bar open timestamp
        close_time: Bar close timestamp (ordering key)
        volume: Traded base volume
    """

    close_time: datetime
    open: float = field(compare=False)
    high: float = field(compare=False)
    low: float = field(compare=False)
    close: float = field(compare=False)
    open_time: datetime = field(compare=False)
    volume: float = field(default=0.0, compare=False)

    def __post_init__(self):
        if not self.open_time < self.close_time:
            raise ValueError(
                f"open_time {self.open_time} must be before close_time {self.close_time}"
            )

    def adverse_price(self, is_long: bool) -> float:
        """Worst intrabar price for a position direction (low for longs)."""
        return self.low if is_long else self.high


def prepare_candles(candles: Iterable[Candle]) -> List[Candle]:
    """
    Sort candles by close time and drop duplicate close times.

    The first candle seen for a close time is kept.
    """
    ordered = sorted(candles)
    unique: List[Candle] = []
    for candle in ordered:
        if unique and unique[-1].close_time == candle.close_time:
            continue
        unique.append(candle)

    dropped = len(ordered) - len(unique)
    if dropped:
        logger.warning("Dropped %d candles with duplicate close times", dropped)
    return unique


def _read_kline_file(path: Path) -> Optional[pd.DataFrame]:
    """
    Read one kline CSV into a typed DataFrame.

    Files may or may not carry a header row; any row whose open_time is not
    numeric (headers, corrupt lines) is dropped.

    Returns:
        Typed DataFrame, or None for an empty file

    Raises:
        ValueError: If the file has fewer than the kline columns
    """
    try:
        raw = pd.read_csv(path, header=None, dtype=str)
    except pd.errors.EmptyDataError:
        logger.warning("Skipping empty kline file %s", path)
        return None

    if raw.shape[1] < len(KLINE_COLUMNS):
        raise ValueError(f"{path}: expected >= {len(KLINE_COLUMNS)} kline columns, got {raw.shape[1]}")
    raw = raw.iloc[:, : len(KLINE_COLUMNS)].copy()
    raw.columns = KLINE_COLUMNS

    numeric = raw.apply(pd.to_numeric, errors="coerce")
    bad_rows = numeric.isna().any(axis=1)
    if bad_rows.any():
        # A single leading header row is expected, anything more is worth a warning
        n_bad = int(bad_rows.sum())
        if n_bad > 1 or not bad_rows.iloc[0]:
            logger.warning("Skipping %d malformed rows in %s", n_bad, path)
        numeric = numeric[~bad_rows].copy()

    numeric["open_time"] = pd.to_datetime(numeric["open_time"].astype("int64"), unit="ms", utc=True)
    numeric["close_time"] = pd.to_datetime(numeric["close_time"].astype("int64"), unit="ms", utc=True)
    return numeric


@dataclass
class CandleChart:
    """
    Ordered candle series for one symbol.

    Attributes:
        interval: Candle width
        candles: Candles sorted by close time, no duplicate close times
    """

    interval: timedelta = DEFAULT_CANDLE_INTERVAL
    candles: List[Candle] = field(default_factory=list)

    @classmethod
    def read_from_csv(
        cls,
        path: Union[str, Path],
        interval: timedelta = DEFAULT_CANDLE_INTERVAL,
    ) -> "CandleChart":
        """
        Load klines from a CSV file or every CSV file in a directory.

        Column order: open_time(ms), open, high, low, close, volume,
        close_time(ms), ...; trailing columns are ignored.

        Args:
            path: File or directory path
            interval: Candle width

        Returns:
            CandleChart sorted by close time

        Raises:
            FileNotFoundError: If path is neither a file nor a directory
            ValueError: If a file has fewer than the kline columns
        """
        path = Path(path)
        logger.info("Reading candles from %s", path)

        if path.is_dir():
            files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() == ".csv")
        elif path.is_file():
            files = [path]
        else:
            raise FileNotFoundError(f"Invalid candle path: {path}")

        if not files:
            logger.warning("No CSV files found in %s", path)
            return cls(interval=interval)

        frames = [df for df in (_read_kline_file(p) for p in files) if df is not None]
        if not frames:
            logger.warning("No kline rows found in %s", path)
            return cls(interval=interval)

        chart = cls.from_frame(pd.concat(frames, ignore_index=True), interval=interval)
        logger.info("Loaded %d candles from %d file(s)", len(chart), len(files))
        return chart

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        interval: timedelta = DEFAULT_CANDLE_INTERVAL,
    ) -> "CandleChart":
        """
        Build a chart from a DataFrame with open/high/low/close/open_time/
        close_time (and optionally volume) columns.
        """
        has_volume = "volume" in df.columns
        candles = [
            Candle(
                open=float(row.open),
                high=float(row.high),
                low=float(row.low),
                close=float(row.close),
                volume=float(row.volume) if has_volume else 0.0,
                open_time=pd.Timestamp(row.open_time).to_pydatetime(),
                close_time=pd.Timestamp(row.close_time).to_pydatetime(),
            )
            for row in df.itertuples(index=False)
        ]
        return cls(interval=interval, candles=prepare_candles(candles))

    def to_frame(self) -> pd.DataFrame:
        """Candles as a DataFrame in kline column order."""
        return pd.DataFrame(
            [
                {
                    "open_time": c.open_time,
                    "open": c.open,
                    "high": c.high,
                    "low": c.low,
                    "close": c.close,
                    "volume": c.volume,
                    "close_time": c.close_time,
                }
                for c in self.candles
            ],
            columns=KLINE_COLUMNS,
        )

    def after(self, start: datetime) -> List[Candle]:
        """Candles closing strictly after `start`."""
        return [c for c in self.candles if c.close_time > start]

    @property
    def last(self) -> Optional[Candle]:
        """Most recent candle, None for an empty chart."""
        return self.candles[-1] if self.candles else None

    def __len__(self) -> int:
        return len(self.candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(self.candles)
