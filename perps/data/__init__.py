"""
Candle data module.

Provides the Candle record and CandleChart loader for kline CSV files.
"""

from .candles import Candle, CandleChart, prepare_candles

__all__ = [
    "Candle",
    "CandleChart",
    "prepare_candles",
]
