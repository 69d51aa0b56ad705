"""Display helpers for valuation figures."""

from typing import Optional

_SUFFIXES = (
    (1e12, 'T'),
    (1e9, 'B'),
    (1e6, 'M'),
    (1e3, 'K'),
)


def format_currency(value: float, decimals: int = 2) -> str:
    """Format a dollar amount with a T/B/M/K suffix, e.g. ``$1.50B``."""
    for threshold, suffix in _SUFFIXES:
        if abs(value) >= threshold:
            return f"${value / threshold:.{decimals}f}{suffix}"
    return f"${value:.{decimals}f}"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    """Format a decimal fraction as a percentage, e.g. ``0.215 -> 21.5%``."""
    if value is None:
        return "n/a"
    return f"{value * 100:.{decimals}f}%"
