"""
CLI Entry Point for perps backtests

Runs the roll or geo strategy over Binance kline CSV data, or scans the
data for bull runs.

Usage:
    python -m perps.runners.cli roll --data data/ETHUSDT --start 2021-03-26
    python -m perps.runners.cli geo --data data/ETHUSDT --leverage 5 --leverage 10 --ratio 0.5
    python -m perps.runners.cli bull-runs --data data/PEOPLEUSDT --csv result.csv
"""

import argparse
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List

import pandas as pd

from perps.analysis.bull_runs import drawdown_table, find_bull_runs, runs_to_frame
from perps.config import DEFAULT_GEO_PARAMS, DEFAULT_REOPEN_INTERVAL, DEFAULT_ROLL_CAPITAL, DEFAULT_SHARED_POOL
from perps.data.candles import CandleChart
from perps.logging_setup import setup_logging
from perps.settings import get_data_dir, get_log_dir, get_log_level
from perps.simulation.capital_pool import SharedCapitalPool
from perps.simulation.driver import results_to_frame, run_many, run_strategy
from perps.strategy.geo_strategy import GeoStrategy
from perps.strategy.roll_strategy import RollStrategy

logger = logging.getLogger(__name__)


def _common_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)

    # Data selection
    common.add_argument('--data', '-d', default=None,
                        help='Kline CSV file or directory (default: $PERPS_DATA_DIR)')
    common.add_argument('--start', default=None,
                        help='Only use candles closing after YYYY-MM-DD (UTC)')
    common.add_argument('--interval-minutes', type=int, default=1,
                        help='Candle width in minutes (default: 1)')

    # Output
    common.add_argument('--csv', default=None, metavar='OUT',
                        help='Write results to this CSV file')
    common.add_argument('--log-dir', default=None,
                        help='Also log to a timestamped file in this directory')
    common.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose logging')
    return common


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Leveraged perpetual futures backtester',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest='command', required=True)
    common = _common_parser()

    roll = subparsers.add_parser('roll', parents=[common],
                                 help='Ladder escalation strategy')
    roll.add_argument('--capital', type=float, default=DEFAULT_ROLL_CAPITAL,
                      help=f'Starting capital (default: {DEFAULT_ROLL_CAPITAL:g})')
    roll.add_argument('--short', action='store_true',
                      help='Short instead of long')

    geo = subparsers.add_parser('geo', parents=[common],
                                help='Periodic proportional reopening strategy')
    geo.add_argument('--leverage', type=float, action='append', default=None,
                     help=f'Leverage, repeat to run several in parallel '
                          f'(default: {DEFAULT_GEO_PARAMS["leverage"]:g})')
    geo.add_argument('--ratio', type=float, default=DEFAULT_GEO_PARAMS['position_ratio'],
                     help='Fraction of capital per open (default: %(default)s)')
    geo.add_argument('--reopen-minutes', type=int,
                     default=int(DEFAULT_REOPEN_INTERVAL.total_seconds() // 60),
                     help='Minutes between opens (default: %(default)s)')
    geo.add_argument('--supply', type=float, default=DEFAULT_GEO_PARAMS['min_capital_floor'],
                     help='Top capital up to this floor before opening (default: %(default)s)')
    geo.add_argument('--stop-loss', type=float, default=DEFAULT_GEO_PARAMS['stop_loss_ratio'],
                     help='Stop-loss ratio (default: %(default)s)')
    geo.add_argument('--take-profit', type=float, default=DEFAULT_GEO_PARAMS['take_profit_ratio'],
                     help='Take-profit ratio (default: %(default)s)')
    geo.add_argument('--pool', type=float, default=DEFAULT_SHARED_POOL,
                     help='Shared capital pool (default: %(default)s)')
    geo.add_argument('--short', action='store_true',
                     help='Short instead of long')

    bull = subparsers.add_parser('bull-runs', parents=[common],
                                 help='Find bull runs and their drawdowns')
    bull.add_argument('--min-increase', type=float, default=0.5,
                      help='Minimum peak/entry - 1 to report (default: %(default)s)')

    return parser.parse_args(argv)


def validate_args(args) -> List[str]:
    """
    Validate arguments that are not checked by the strategies themselves.

    Returns:
        List of validation error messages (empty if valid)
    """
    issues = []
    if args.interval_minutes <= 0:
        issues.append(f"interval-minutes must be positive, got {args.interval_minutes}")
    if args.start is not None:
        try:
            datetime.strptime(args.start, '%Y-%m-%d')
        except ValueError:
            issues.append(f"start must be YYYY-MM-DD, got {args.start}")
    if args.command == 'geo' and args.pool < 0:
        issues.append(f"pool must be non-negative, got {args.pool}")
    if args.command == 'geo' and args.reopen_minutes < 0:
        issues.append(f"reopen-minutes must be non-negative, got {args.reopen_minutes}")
    return issues


def load_candles(args):
    """Load and filter the candle series selected by the arguments."""
    path = Path(args.data) if args.data else get_data_dir()
    chart = CandleChart.read_from_csv(path, timedelta(minutes=args.interval_minutes))
    if args.start is None:
        return chart.candles
    start = datetime.strptime(args.start, '%Y-%m-%d').replace(tzinfo=timezone.utc)
    return chart.after(start)


def run_roll(args, candles):
    strategy = RollStrategy(is_long=not args.short, capital=args.capital)
    result = run_strategy(strategy, candles, name='roll_short' if args.short else 'roll_long')
    print(result.summary())

    if args.csv:
        events = pd.DataFrame([e.to_dict() for e in result.events])
        events.to_csv(args.csv, index=False)
        print(f"\nEvents exported to: {args.csv}")
    return result


def run_geo(args, candles):
    pool = SharedCapitalPool(args.pool)
    leverages = list(dict.fromkeys(args.leverage or [DEFAULT_GEO_PARAMS['leverage']]))
    if args.leverage and len(leverages) < len(args.leverage):
        logger.warning("Ignoring repeated leverages, running %s", ", ".join(f"{x:g}x" for x in leverages))

    strategies = {
        f"geo_{leverage:g}x": GeoStrategy(
            is_long=not args.short,
            leverage=leverage,
            position_ratio=args.ratio,
            reopen_interval=timedelta(minutes=args.reopen_minutes),
            min_capital_floor=args.supply,
            stop_loss_ratio=args.stop_loss,
            take_profit_ratio=args.take_profit,
            shared_pool=pool,
        )
        for leverage in leverages
    }
    results = run_many({name: (lambda s=s: s) for name, s in strategies.items()}, candles)

    for result in results.values():
        print(result.summary())
    frame = results_to_frame(results)
    print(frame.to_string())
    print(f"\nShared pool: {pool.balance:.4f} left, {pool.withdrawn:.4f} drawn")

    if args.csv:
        frame.to_csv(args.csv)
        print(f"\nResults exported to: {args.csv}")
    return results


def run_bull_runs(args, candles):
    runs = find_bull_runs(candles, min_increase=args.min_increase)
    print(runs_to_frame(runs).to_string())
    print(f"\nBull runs found: {len(runs)}")

    if args.csv:
        drawdown_table(runs).to_csv(args.csv, index=False)
        print(f"\nDrawdown steps exported to: {args.csv}")
    return runs


COMMANDS = {
    'roll': run_roll,
    'geo': run_geo,
    'bull-runs': run_bull_runs,
}


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    # Setup logging
    try:
        level = logging.DEBUG if args.verbose else get_log_level()
    except ValueError as e:
        level = logging.INFO
        setup_logging(level)
        logger.error("Config error: %s", e)
        sys.exit(1)
    log_file = setup_logging(level, log_dir=args.log_dir or get_log_dir(), name=args.command)
    if log_file is not None:
        logger.info("Logging to %s", log_file)

    # Validate
    issues = validate_args(args)
    if issues:
        for issue in issues:
            logger.error("Config error: %s", issue)
        sys.exit(1)

    try:
        candles = load_candles(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Config error: %s", e)
        sys.exit(1)
    if not candles:
        logger.error("Config error: no candles to backtest")
        sys.exit(1)

    try:
        return COMMANDS[args.command](args, candles)
    except ValueError as e:
        logger.error("Config error: %s", e)
        sys.exit(1)


if __name__ == '__main__':
    main()
