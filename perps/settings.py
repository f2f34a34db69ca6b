"""
Environment settings for the perps backtester.

Values come from the process environment, optionally seeded from a
project-root .env file (never required). Explicitly set environment
variables take precedence over .env entries.

Recognized variables:
    PERPS_LOG_LEVEL  - Logging level name (default: INFO)
    PERPS_LOG_DIR    - Directory for log files (default: none, console only)
    PERPS_DATA_DIR   - Default kline CSV location (default: ./data)

Usage:
    from perps.settings import get_log_level, get_data_dir

    level = get_log_level()
    data_dir = get_data_dir() / "ETHUSDT"
"""

import logging
import os
from pathlib import Path
from typing import Optional

# Flag to track if config has been loaded
_CONFIG_LOADED = False

PROJECT_ROOT = Path(__file__).parent.parent

_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def load_config(force_reload: bool = False) -> None:
    """
    Load environment variables from the project root .env file, if any.

    Args:
        force_reload: If True, reload even if already loaded
    """
    global _CONFIG_LOADED

    if _CONFIG_LOADED and not force_reload:
        return

    # Import here to keep settings importable before dependencies are needed
    from dotenv import load_dotenv

    env_path = PROJECT_ROOT / '.env'
    if env_path.exists():
        load_dotenv(env_path, override=False)

    _CONFIG_LOADED = True


def get_log_level() -> int:
    """
    Get the configured logging level.

    Returns:
        logging level constant

    Raises:
        ValueError: If PERPS_LOG_LEVEL is not a known level name
    """
    load_config()
    name = os.getenv('PERPS_LOG_LEVEL', 'INFO').upper()
    if name not in _LOG_LEVELS:
        raise ValueError(f"Invalid PERPS_LOG_LEVEL: {name}. Use one of {', '.join(_LOG_LEVELS)}.")
    return getattr(logging, name)


def get_log_dir() -> Optional[Path]:
    """Get the log file directory (None means console logging only)."""
    load_config()
    value = os.getenv('PERPS_LOG_DIR')
    return Path(value) if value else None


def get_data_dir() -> Path:
    """Get the default kline data directory."""
    load_config()
    return Path(os.getenv('PERPS_DATA_DIR', str(PROJECT_ROOT / 'data')))


def is_config_loaded() -> bool:
    """Check if configuration has been loaded."""
    return _CONFIG_LOADED
