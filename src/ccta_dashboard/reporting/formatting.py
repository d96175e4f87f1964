"""Numeric display formatting shared by every dashboard surface."""

from __future__ import annotations

import math

PLACEHOLDER = "—"
NEW_SENTINEL = "New"
INFINITE_SENTINEL = "∞"

# Changes smaller than this are treated as no change.
CHANGE_EPSILON = 1e-6


def format_number(value: float | None, decimals: int = 1) -> str:
    """Format *value* with a fixed number of decimals and thousands separators.

    ``None`` and NaN render as an em-dash placeholder.

    >>> format_number(1234.56)
    '1,234.6'
    """
    if value is None:
        return PLACEHOLDER
    value = float(value)
    if math.isnan(value):
        return PLACEHOLDER
    return f"{value:,.{decimals}f}"


def format_signed(value: float, decimals: int = 1) -> str:
    """Format a change with an explicit ``+`` for positive values.

    Values that round to zero are shown unsigned (``"0"``, never ``"-0"``).
    """
    if round(value, decimals) == 0:
        return format_number(0.0, decimals)
    sign = "+" if value > 0 else ""
    return f"{sign}{format_number(value, decimals)}"


def format_percentage_change(delta: float, prior: float, current: float) -> str | None:
    """Percentage change label with sentinels for a zero prior value.

    Returns
    -------
    str or None
        ``"+25%"`` style label; ``"New"`` when the prior value is zero and the
        current value is positive; ``"∞"`` when the prior value is zero and
        the current value is negative; ``None`` when both are zero.
    """
    if abs(prior) < CHANGE_EPSILON:
        if abs(current) < CHANGE_EPSILON:
            return None
        return NEW_SENTINEL if current > 0 else INFINITE_SENTINEL
    pct = delta / prior * 100.0
    return f"{format_signed(pct, 0)}%"
