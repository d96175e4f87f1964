"""Continuous FFRct colouring.

The segment map can paint FFRct on a fixed 51-step ramp instead of the five
discrete tiers.  The ramp spans FFRct 0.50 (index 0, red) to 1.00 (index 50,
green); out-of-range inputs clamp to the ramp ends.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from ccta_dashboard.domain.models import Segment

RAMP_MIN = 0.50
RAMP_MAX = 1.00
RAMP_STEPS = 51

NOT_ASSESSED_HEX = "#9e9e9e"

# (FFRct value, colour) anchors; the ramp interpolates linearly between them.
_ANCHORS: tuple[tuple[float, str], ...] = (
    (0.50, "#b2182b"),
    (0.70, "#ef6c00"),
    (0.80, "#fdd835"),
    (0.90, "#7cb342"),
    (1.00, "#1b7837"),
)


def _hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    h = hex_color.lstrip("#")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def _build_ramp() -> tuple[str, ...]:
    """Interpolate the anchor colours onto ``RAMP_STEPS`` evenly spaced values."""
    values = np.linspace(RAMP_MIN, RAMP_MAX, RAMP_STEPS)
    xs = np.array([a[0] for a in _ANCHORS], dtype=np.float64)
    rgb = np.array([_hex_to_rgb(a[1]) for a in _ANCHORS], dtype=np.float64)
    channels = [np.rint(np.interp(values, xs, rgb[:, i])).astype(int) for i in range(3)]
    return tuple(
        f"#{r:02x}{g:02x}{b:02x}" for r, g, b in zip(*channels)
    )


FFRCT_RAMP: tuple[str, ...] = _build_ramp()


def ffrct_ramp_index(value: float | None) -> int | None:
    """Map an FFRct value to a ramp index in ``[0, 50]``.

    Halves round up.  ``None`` (not assessed) returns ``None``.
    """
    if value is None or math.isnan(value):
        return None
    position = (value - RAMP_MIN) / (RAMP_MAX - RAMP_MIN) * (RAMP_STEPS - 1)
    index = math.floor(position + 0.5)
    return max(0, min(RAMP_STEPS - 1, index))


def ffrct_ramp_color(value: float | None) -> str:
    """Hex colour for *value* on the continuous ramp."""
    index = ffrct_ramp_index(value)
    if index is None:
        return NOT_ASSESSED_HEX
    return FFRCT_RAMP[index]


def pullback_colors(segment: Segment) -> list[str]:
    """Ramp colours for each pullback sample, proximal to distal."""
    if not segment.ffrct_pullback:
        return []
    return [ffrct_ramp_color(v) for v in segment.ffrct_pullback]


def lowest_ffrct(segments: Sequence[Segment]) -> float | None:
    """Worst-case (lowest) positive FFRct across *segments*.

    Segments without FFRct, and non-positive values, are ignored.  Returns
    ``None`` when no segment was assessed.
    """
    values = [s.ffrct for s in segments if s.ffrct is not None and s.ffrct > 0]
    if not values:
        return None
    return min(values)
