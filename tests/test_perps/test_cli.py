"""
Tests for perps/runners/cli.py - command-line entry point.

Tests cover:
- parse_args() defaults per subcommand
- validate_args() issue collection
- roll / geo / bull-runs end to end on a temporary kline file
- Exit code 1 on configuration errors
"""

import logging
import pytest

import pandas as pd

from perps.runners.cli import main, parse_args, validate_args

MS = 60_000
START_MS = 1616716800000  # 2021-03-26T00:00:00Z


@pytest.fixture(autouse=True)
def restore_package_logger(monkeypatch):
    """Undo handlers and level set by setup_logging and isolate env settings."""
    for name in ("PERPS_LOG_LEVEL", "PERPS_LOG_DIR", "PERPS_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)
    logger = logging.getLogger("perps")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


@pytest.fixture
def kline_file(tmp_path):
    """Sixty 1-minute klines rising from 100 then sliding back."""
    closes = [100.0 + i for i in range(40)] + [139.0 - 2 * i for i in range(20)]
    lines = []
    prev = closes[0]
    for i, close in enumerate(closes):
        open_ms = START_MS + i * MS
        lines.append(
            f"{open_ms},{prev},{max(prev, close)},{min(prev, close)},{close},10,{open_ms + MS - 1},0,0"
        )
        prev = close
    path = tmp_path / "ETHUSDT-1m.csv"
    path.write_text("\n".join(lines) + "\n")
    return path


# =============================================================================
# ARGUMENT TESTS
# =============================================================================


class TestParseArgs:
    """Tests for parse_args and validate_args."""

    def test_roll_defaults(self):
        args = parse_args(["roll", "--data", "x.csv"])
        assert args.command == "roll"
        assert args.capital == 100.0
        assert args.short is False
        assert args.interval_minutes == 1
        assert args.csv is None

    def test_geo_defaults(self):
        args = parse_args(["geo"])
        assert args.leverage is None
        assert args.ratio == 1.0
        assert args.reopen_minutes == 60
        assert args.supply == 10.0
        assert args.stop_loss == 0.03
        assert args.take_profit == 0.002
        assert args.pool == 1_000_000.0

    def test_repeated_leverage(self):
        args = parse_args(["geo", "--leverage", "5", "--leverage", "10"])
        assert args.leverage == [5.0, 10.0]

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_validate_ok(self):
        assert validate_args(parse_args(["roll", "--start", "2021-03-26"])) == []

    def test_validate_collects_issues(self):
        args = parse_args(["geo", "--start", "26/03/2021", "--interval-minutes", "0", "--pool", "-1"])
        issues = validate_args(args)
        assert len(issues) == 3


# =============================================================================
# COMMAND TESTS
# =============================================================================


class TestCommands:
    """End-to-end command tests."""

    def test_roll(self, kline_file, capsys):
        result = main(["roll", "--data", str(kline_file)])

        assert result.candles_processed > 0
        assert "BACKTEST: roll_long" in capsys.readouterr().out

    def test_roll_events_csv(self, kline_file, tmp_path):
        out = tmp_path / "events.csv"
        main(["roll", "--data", str(kline_file), "--csv", str(out)])

        events = pd.read_csv(out)
        assert events["kind"].iloc[0] == "OPEN"

    def test_geo_parallel_leverages(self, kline_file, tmp_path, capsys):
        out = tmp_path / "geo.csv"
        results = main([
            "geo", "--data", str(kline_file),
            "--leverage", "5", "--leverage", "10",
            "--reopen-minutes", "5", "--pool", "1000",
            "--csv", str(out),
        ])

        assert list(results) == ["geo_5x", "geo_10x"]
        assert all(r.error is None for r in results.values())
        frame = pd.read_csv(out, index_col="name")
        assert list(frame.index) == ["geo_5x", "geo_10x"]
        assert "Shared pool" in capsys.readouterr().out

    def test_repeated_leverage_runs_once(self, kline_file, caplog):
        with caplog.at_level(logging.WARNING, logger="perps.runners.cli"):
            results = main([
                "geo", "--data", str(kline_file),
                "--leverage", "10", "--leverage", "10", "--pool", "1000",
            ])

        assert list(results) == ["geo_10x"]
        assert "Ignoring repeated leverages" in caplog.text

    def test_bull_runs(self, kline_file, tmp_path, capsys):
        out = tmp_path / "drawdowns.csv"
        runs = main(["bull-runs", "--data", str(kline_file), "--min-increase", "0.2", "--csv", str(out)])

        assert isinstance(runs, list)
        assert "Bull runs found" in capsys.readouterr().out
        assert out.exists()

    def test_start_filter(self, kline_file):
        result = main(["roll", "--data", str(kline_file), "--start", "2021-03-25"])
        assert result.candles_processed > 0

    def test_log_dir(self, kline_file, tmp_path):
        log_dir = tmp_path / "logs"
        main(["roll", "--data", str(kline_file), "--log-dir", str(log_dir)])
        assert len(list(log_dir.glob("roll_*.log"))) == 1


# =============================================================================
# CONFIGURATION ERROR TESTS
# =============================================================================


class TestConfigErrors:
    """Configuration errors exit with code 1."""

    def test_missing_data(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["roll", "--data", str(tmp_path / "missing.csv")])
        assert exc.value.code == 1

    def test_empty_data_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(SystemExit) as exc:
            main(["roll", "--data", str(path)])
        assert exc.value.code == 1

    def test_too_few_columns(self, tmp_path):
        path = tmp_path / "short.csv"
        path.write_text("1,2,3,1,2\n")
        with pytest.raises(SystemExit) as exc:
            main(["roll", "--data", str(path)])
        assert exc.value.code == 1

    def test_bad_start(self, kline_file):
        with pytest.raises(SystemExit) as exc:
            main(["roll", "--data", str(kline_file), "--start", "yesterday"])
        assert exc.value.code == 1

    def test_no_candles_after_start(self, kline_file):
        with pytest.raises(SystemExit) as exc:
            main(["roll", "--data", str(kline_file), "--start", "2030-01-01"])
        assert exc.value.code == 1

    def test_invalid_strategy_parameter(self, kline_file):
        with pytest.raises(SystemExit) as exc:
            main(["geo", "--data", str(kline_file), "--ratio", "1.5"])
        assert exc.value.code == 1

    def test_invalid_capital(self, kline_file):
        with pytest.raises(SystemExit) as exc:
            main(["roll", "--data", str(kline_file), "--capital", "0"])
        assert exc.value.code == 1

    def test_invalid_log_level(self, kline_file, monkeypatch):
        monkeypatch.setenv("PERPS_LOG_LEVEL", "LOUD")
        with pytest.raises(SystemExit) as exc:
            main(["roll", "--data", str(kline_file)])
        assert exc.value.code == 1
