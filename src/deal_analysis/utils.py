"""
Small shared helpers.

uuid7() wraps fastuuid.uuid7() to return a stdlib uuid.UUID instance.
fastuuid.UUID is a Rust-backed type that is NOT isinstance-compatible with
uuid.UUID, so we roundtrip through the string representation.
"""

import math
import re
from typing import Any
from uuid import UUID

import fastuuid

_NUMERIC_NOISE = re.compile(r'[$,\s%]')


def uuid7() -> UUID:
    """Generate a UUIDv7 (time-sortable) as a stdlib uuid.UUID."""
    return UUID(str(fastuuid.uuid7()))


def to_number(value: Any) -> float | None:
    """
    Coerce a loosely-typed value to a finite float.

    Accepts ints, floats and numeric strings with currency/thousands noise
    ("$1,250.00"). Returns None for anything else, including booleans,
    NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = _NUMERIC_NOISE.sub('', value)
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def to_money(value: Any) -> float | None:
    """Coerce to a non-negative amount, or None when absent/invalid/negative."""
    number = to_number(value)
    if number is None or number < 0:
        return None
    return number


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def format_currency(value: float | None) -> str:
    """Render an amount for a prompt, 'N/A' when absent."""
    if value is None:
        return 'N/A'
    return f'${value:,.0f}'


def format_number(value: float | None, suffix: str = '', decimals: int = 0) -> str:
    """Render a plain figure for a prompt, 'N/A' when absent."""
    if value is None:
        return 'N/A'
    return f'{value:,.{decimals}f}{suffix}'
