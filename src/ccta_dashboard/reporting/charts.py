"""Presentation adapters for the dashboard charts.

Each function turns report data into the plain values a chart needs (bar
heights, colours, labels) so that the rendering layer holds no clinical
logic.  Colours are CSS variable names except for the segment map, which
needs concrete hex values and resolves them through the configured palette.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from ccta_dashboard.classification.metrics import (
    CP_VOLUME,
    FFRCT,
    HRP,
    LRNC_VOLUME,
    NCP_VOLUME,
    PAV,
    STENOSIS,
    TPV,
)
from ccta_dashboard.classification.thresholds import (
    NO_PLAQUE,
    NON_CALCIFIED_DOMINANT,
    RiskColor,
    classify,
    composition_color,
    dominant_composition,
    risk_color,
    tier_color,
)
from ccta_dashboard.config.settings import get_typed_config
from ccta_dashboard.domain.anatomy import (
    SEGMENT_ORDER,
    VESSEL_FILTERS,
    VESSEL_SEGMENTS,
    segment_label,
)
from ccta_dashboard.domain.models import CctaReport, Segment
from ccta_dashboard.reporting.formatting import CHANGE_EPSILON, format_number
from ccta_dashboard.serial.comparison import NEUTRAL, compare_values, format_delta

logger = logging.getLogger(__name__)

BURDEN = "Burden"
COMPOSITION = "Composition"

CHART_METRICS: tuple[str, ...] = (
    STENOSIS, BURDEN, HRP, LRNC_VOLUME, NCP_VOLUME, CP_VOLUME, COMPOSITION,
)


# ---------------------------------------------------------------------------
# Chart configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChartConfig:
    """Axis settings of one bar chart."""

    title: str
    max: float
    unit: str
    thresholds: tuple[tuple[float, str], ...] = ()


CHART_CONFIG: Mapping[str, ChartConfig] = MappingProxyType({
    STENOSIS: ChartConfig(
        "Stenosis (%)", 100, "%",
        ((25, "Mild"), (50, "Moderate"), (70, "Severe")),
    ),
    BURDEN: ChartConfig(
        "Plaque Burden (PAV %)", 40, "%",
        ((5, "Mild"), (15, "Moderate")),
    ),
    HRP: ChartConfig(
        "High-Risk Plaque Features", 2, "",
        ((1, "1 Feature"),),
    ),
    LRNC_VOLUME: ChartConfig(
        "LRNC Volume (mm³)", 40, " mm³",
        ((5, "Moderate"), (15, "High"), (30, "Very High")),
    ),
    NCP_VOLUME: ChartConfig(
        "NCP Volume (mm³)", 120, " mm³",
        ((20, "Moderate"), (50, "High"), (100, "Very High")),
    ),
    CP_VOLUME: ChartConfig(
        "CP Volume (mm³)", 350, " mm³",
        ((50, "Moderate"), (150, "High"), (300, "Very High")),
    ),
    COMPOSITION: ChartConfig("Dominant Plaque Type", 1, ""),
})


def chart_config(metric: str | None) -> ChartConfig | None:
    """Axis settings for *metric*, with title/max/unit overridable by config.

    Returns ``None`` for an unknown metric (nothing selected).
    """
    if metric == PAV:
        metric = BURDEN
    base = CHART_CONFIG.get(metric or "")
    if base is None:
        return None
    override = get_typed_config().chart(metric)
    if not override:
        return base
    return ChartConfig(
        title=str(override.get("title", base.title)),
        max=float(override.get("max", base.max)),
        unit=str(override.get("unit", base.unit)),
        thresholds=base.thresholds,
    )


# ---------------------------------------------------------------------------
# Bars
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BarInfo:
    """Height value, colour variable and label of one segment bar."""

    value: float = 0.0
    color: str = RiskColor.NEUTRAL_GRAY.value
    label: str = "0"


_NO_PLAQUE_BAR = BarInfo()


def bar_info(segment: Segment | None, metric: str) -> BarInfo:
    """Return the bar for *segment* under *metric*.

    An absent segment or an unknown metric yields a zero grey bar.
    """
    if segment is None:
        return _NO_PLAQUE_BAR
    if metric == STENOSIS:
        v = segment.stenosis_pct
        return BarInfo(v, risk_color(STENOSIS, v).value, format_number(v, 0))
    if metric in (BURDEN, PAV):
        v = segment.pav_pct
        return BarInfo(v, risk_color(PAV, v).value, format_number(v, 1))
    if metric == HRP:
        v = float(segment.hrp_count)
        return BarInfo(v, risk_color(HRP, v).value, ", ".join(segment.hrp) or "0")
    if metric in (LRNC_VOLUME, NCP_VOLUME, CP_VOLUME):
        v = {
            LRNC_VOLUME: segment.lrnc_mm3,
            NCP_VOLUME: segment.ncp_mm3,
            CP_VOLUME: segment.cp_mm3,
        }[metric]
        return BarInfo(v, risk_color(metric, v).value, format_number(v, 1))
    if metric == COMPOSITION:
        dominant = dominant_composition(segment.ncp_mm3, segment.cp_mm3)
        if dominant == NO_PLAQUE:
            label = ""
        else:
            label = "NCP" if dominant == NON_CALCIFIED_DOMINANT else "CP"
        return BarInfo(
            1.0 if dominant != NO_PLAQUE else 0.0,
            composition_color(segment.ncp_mm3, segment.cp_mm3).value,
            label,
        )
    return _NO_PLAQUE_BAR


def bar_height_pct(value: float, metric: str) -> float | None:
    """Bar height as a percentage of the axis, capped at 100.

    HRP counts above the axis maximum are drawn at the maximum.  Returns
    ``None`` for an unknown metric.
    """
    config = chart_config(metric)
    if config is None or config.max <= 0:
        return None
    if metric == HRP:
        value = min(value, config.max)
    return min(100.0, value / config.max * 100.0)


def chart_bars(report: CctaReport, metric: str) -> list[tuple[int, str, BarInfo]]:
    """``(seg_id, name, bar)`` for every segment in chart order."""
    segments = report.segment_map()
    return [
        (seg_id, segment_label(seg_id), bar_info(segments.get(seg_id), metric))
        for seg_id in SEGMENT_ORDER
    ]


# ---------------------------------------------------------------------------
# Segment map colours
# ---------------------------------------------------------------------------

def darken_color(hex_color: str, percent: float) -> str:
    """Darken a ``#rrggbb`` (or ``#rgb``) colour by *percent*.

    Each channel becomes ``floor(c * (1 - percent / 100))``.  Anything that is
    not a hex colour is returned unchanged.
    """
    if not hex_color or not hex_color.startswith("#"):
        return hex_color
    if len(hex_color) == 4:
        hex_color = "#" + "".join(ch * 2 for ch in hex_color[1:])
    try:
        channels = [int(hex_color[i:i + 2], 16) for i in (1, 3, 5)]
    except ValueError:
        return hex_color
    amount = 1 - percent / 100
    return "#" + "".join(
        f"{max(0, math.floor(c * amount)):02x}" for c in channels
    )


def palette_hex(color_var: str) -> str:
    """Resolve a CSS colour variable to its configured hex value.

    Unknown variables are returned unchanged.
    """
    return get_typed_config().palette_hex(color_var) or color_var


def _map_color_var(segment: Segment, mode: str, sub_mode: str | None) -> str:
    if mode == STENOSIS:
        return risk_color(STENOSIS, segment.stenosis_pct).value
    if mode == FFRCT:
        return tier_color(classify(FFRCT, segment.ffrct)).value
    if mode == COMPOSITION:
        if sub_mode == LRNC_VOLUME:
            return risk_color(LRNC_VOLUME, segment.lrnc_mm3).value
        if sub_mode == NCP_VOLUME:
            return risk_color(NCP_VOLUME, segment.ncp_mm3).value
        if sub_mode == CP_VOLUME:
            return risk_color(CP_VOLUME, segment.cp_mm3).value
        if sub_mode == TPV:
            return risk_color(TPV, segment.tpv_mm3).value
        if sub_mode == PAV:
            return risk_color(PAV, segment.pav_pct).value
        return composition_color(segment.ncp_mm3, segment.cp_mm3).value
    return RiskColor.DARK_GREEN.value


def segment_map_colors(
    report: CctaReport,
    mode: str,
    sub_mode: str | None = None,
) -> dict[int, tuple[str, str]]:
    """Per-segment ``(fill, stroke)`` hex pairs for the anatomy diagram.

    Parameters
    ----------
    report:
        Report whose segments are painted.
    mode:
        ``Stenosis``, ``FFRct`` or ``Composition``; any other mode paints
        every segment dark green.
    sub_mode:
        Composition sub-mode (``LRNC_Volume``, ``NCP_Volume``, ``CP_Volume``,
        ``TPV`` or ``PAV``); ``None`` paints the dominant plaque type.
    """
    darken_pct = get_typed_config().stroke_darken_pct
    colors: dict[int, tuple[str, str]] = {}
    for segment in report.all_segments():
        fill = palette_hex(_map_color_var(segment, mode, sub_mode))
        colors[segment.seg_id] = (fill, darken_color(fill, darken_pct))
    return colors


# ---------------------------------------------------------------------------
# PAV triangle
# ---------------------------------------------------------------------------

def pav_triangle_active_bars(
    pav: float,
    bars: int | None = None,
    max_pav: float | None = None,
) -> int:
    """Index of the last lit bar of the PAV triangle, or ``-1`` for no plaque.

    *bars* and *max_pav* default to the configured gauge (12 bars, 25%).
    """
    cfg_bars, cfg_max = get_typed_config().pav_triangle
    bars = cfg_bars if bars is None else bars
    max_pav = cfg_max if max_pav is None else max_pav
    if pav <= 0:
        return -1
    return min(bars - 1, math.floor(pav / max_pav * (bars - 1)))


# ---------------------------------------------------------------------------
# Serial bar chart
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SerialBarPair:
    """Prior and current bars of one segment on the serial chart."""

    seg_id: int
    label: str
    prior: BarInfo
    current: BarInfo
    prior_height_pct: float
    current_height_pct: float
    favorability: str = NEUTRAL
    change_label: str = ""


def serial_bar_pairs(
    report: CctaReport,
    prior: CctaReport | None,
    metric: str,
    vessel_filter: str = "Whole Heart",
) -> list[SerialBarPair]:
    """Prior/current bar pairs for the serial comparison chart.

    Favourability comes from the serial engine rules; the change label is
    ``"(+n)"`` and is omitted for HRP and for unchanged segments.  Returns an
    empty list without a prior, for an unknown metric, or for an unknown
    vessel filter.
    """
    prior = prior if prior is not None else report.prior_study
    config = chart_config(metric)
    if prior is None or config is None or metric == COMPOSITION:
        return []
    if vessel_filter not in VESSEL_FILTERS:
        logger.warning("Unknown vessel filter %r.", vessel_filter)
        return []

    vessel_id = VESSEL_FILTERS[vessel_filter]
    seg_ids = [
        s for s in SEGMENT_ORDER
        if vessel_id is None or s in VESSEL_SEGMENTS[vessel_id]
    ]
    current_map = report.segment_map()
    prior_map = prior.segment_map()

    pairs = []
    for seg_id in seg_ids:
        before = bar_info(prior_map.get(seg_id), metric)
        after = bar_info(current_map.get(seg_id), metric)
        delta = compare_values(metric, before.value, after.value)
        change = after.value - before.value
        change_label = ""
        if metric != HRP and abs(change) >= CHANGE_EPSILON:
            change_label = f"({format_delta(metric, change, before.value, after.value)})"
        pairs.append(SerialBarPair(
            seg_id=seg_id,
            label=segment_label(seg_id),
            prior=before,
            current=after,
            prior_height_pct=bar_height_pct(before.value, metric) or 0.0,
            current_height_pct=bar_height_pct(after.value, metric) or 0.0,
            favorability=delta.favorability,
            change_label=change_label,
        ))
    return pairs
