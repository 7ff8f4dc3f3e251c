"""Human readable formatting of sizes, durations and ratios."""

from typing import Union

def _format_number(value: float, max_fraction_digits: int) -> str:
    text = f"{value:,.{max_fraction_digits}f}"
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    if text == '-0':
        text = '0'
    return text

def format_to_kb(size: Union[int, float]) -> str:
    """Format a byte count as kilobytes, e.g. ``1.2345 kB``."""
    return f"{_format_number(size / 1000, 4)} kB"

def format_to_ms(nanoseconds: Union[int, float]) -> str:
    """Format a duration in nanoseconds as milliseconds, e.g. ``12 ms``."""
    return f"{_format_number(nanoseconds / 1000000, 0)} ms"

def format_to_percent(partial: Union[int, float], total: Union[int, float]) -> str:
    """Format ``partial`` as a percentage of ``total``, e.g. ``45.5%``."""
    if not total:
        return '0%'
    return f"{_format_number(partial / total * 100, 2)}%"

# Exported functions
__all__ = ['format_to_kb', 'format_to_ms', 'format_to_percent']
