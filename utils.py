"""Utility functions: logging setup, rounding and ratio helpers, formatting."""

import math
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round halves toward positive infinity (0.5 -> 1, -0.5 -> 0).

    Unlike round(), which rounds halves to even.
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round_currency(value: float) -> int:
    """Round a monetary figure to the nearest whole unit."""
    return int(round_half_up(value))


def round_percent(value: float) -> float:
    """Round a percentage to one decimal place."""
    return round_half_up(value, 1)


def safe_percentage(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Return numerator / denominator * 100, or default when the denominator is not positive."""
    if denominator <= 0:
        return default
    return numerator / denominator * 100


def format_currency(amount: float) -> str:
    """Format a currency amount."""
    return f"${amount:,.0f}"


def format_compact_currency(amount: float) -> str:
    """Short currency label: $1.2M, $45k, $800."""
    if amount >= 1_000_000:
        return f"${round_half_up(amount / 1_000_000, 1):.1f}M"
    if amount >= 1000:
        return f"${round_half_up(amount / 1000):.0f}k"
    return f"${amount:,.0f}"


def format_percent(pct: float) -> str:
    """Format a percentage that is already on a 0-100 scale."""
    return f"{pct:.1f}%"


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (optional)
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logger.info(f"Logging to file: {log_file}")
        except OSError as e:
            logger.error(f"Failed to setup file logging: {e}")

    logger.info(f"Logging configured at level {log_level}")
