"""Threshold classifier: maps raw per-segment metrics to risk tiers.

The boundary tables in this module are the single source of truth for cut
points.  Every surface (segment map, bar charts, donut charts, change matrix,
serial comparison) classifies through :func:`classify`.

Tiers are ordinal: a higher tier is always worse.  Every table maps ``0`` to
``Tier.NONE``.  FFRct is the one metric with inverted polarity: low values
are worse, and a missing value is ``Tier.NOT_ASSESSED`` rather than a
measurement.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Callable, Mapping

from ccta_dashboard.classification.metrics import (
    CP_VOLUME,
    FFRCT,
    HRP,
    LRNC_VOLUME,
    NCP_VOLUME,
    PAV,
    STENOSIS,
    TPV,
    TPV_WHOLE_HEART,
    metric_decimals,
    normalize_metric,
)
from ccta_dashboard.domain.models import ClassifiedValue
from ccta_dashboard.reporting.formatting import format_number

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tiers and colours
# ---------------------------------------------------------------------------

class Tier(IntEnum):
    """Ordered risk tier; higher is worse."""

    NOT_ASSESSED = -1
    NONE = 0
    MINIMAL = 1
    MILD = 2
    MODERATE = 3
    SEVERE = 4


class RiskColor(str, Enum):
    """CSS custom properties used to paint a tier."""

    DARK_GREEN = "--risk-dark-green"
    GREEN = "--risk-green"
    YELLOW = "--risk-yellow"
    ORANGE = "--risk-orange"
    RED = "--risk-red"
    NEUTRAL_GRAY = "--risk-neutral-gray"


class CompositionColor(str, Enum):
    """CSS custom properties for the dominant plaque type."""

    NCP = "--ncp-color"
    CP = "--cp-color"
    NONE = "--risk-neutral-gray"


TIER_COLORS: Mapping[Tier, RiskColor] = MappingProxyType({
    Tier.NOT_ASSESSED: RiskColor.NEUTRAL_GRAY,
    Tier.NONE: RiskColor.DARK_GREEN,
    Tier.MINIMAL: RiskColor.GREEN,
    Tier.MILD: RiskColor.YELLOW,
    Tier.MODERATE: RiskColor.ORANGE,
    Tier.SEVERE: RiskColor.RED,
})

# Dominant composition categories
NO_PLAQUE = "none"
NON_CALCIFIED_DOMINANT = "non-calcified-dominant"
CALCIFIED_DOMINANT = "calcified-dominant"


# ---------------------------------------------------------------------------
# Boundary tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThresholdTable:
    """Ascending cut points for one metric.

    ``steps`` holds ``(bound, inclusive, tier)`` triples checked in order: a
    non-zero value below ``bound`` (or equal to it when ``inclusive``) gets
    ``tier``.  Values past the last step get ``top``.
    """

    metric: str
    steps: tuple[tuple[float, bool, Tier], ...]
    top: Tier
    names: Mapping[Tier, str]
    ranges: Mapping[Tier, str]

    def classify(self, value: float) -> Tier:
        if value == 0:
            return Tier.NONE
        for bound, inclusive, tier in self.steps:
            if value < bound or (inclusive and value == bound):
                return tier
        return self.top


def _table(
    metric: str,
    steps: tuple[tuple[float, bool, Tier], ...],
    top: Tier,
    names: dict[Tier, str],
    ranges: dict[Tier, str],
) -> ThresholdTable:
    return ThresholdTable(
        metric=metric,
        steps=steps,
        top=top,
        names=MappingProxyType(names),
        ranges=MappingProxyType(ranges),
    )


_VOLUME_NAMES = {
    Tier.NONE: "None",
    Tier.MINIMAL: "Low",
    Tier.MILD: "Moderate",
    Tier.MODERATE: "High",
    Tier.SEVERE: "Very High",
}

THRESHOLD_TABLES: Mapping[str, ThresholdTable] = MappingProxyType({
    STENOSIS: _table(
        STENOSIS,
        ((25.0, False, Tier.MINIMAL), (50.0, False, Tier.MILD),
         (70.0, False, Tier.MODERATE)),
        Tier.SEVERE,
        {Tier.NONE: "None", Tier.MINIMAL: "Minimal", Tier.MILD: "Mild",
         Tier.MODERATE: "Moderate", Tier.SEVERE: "Severe"},
        {Tier.NONE: "0%", Tier.MINIMAL: "1-24%", Tier.MILD: "25-49%",
         Tier.MODERATE: "50-69%", Tier.SEVERE: "≥70%"},
    ),
    PAV: _table(
        PAV,
        ((5.0, True, Tier.MILD), (15.0, True, Tier.MODERATE)),
        Tier.SEVERE,
        {Tier.NONE: "None", Tier.MILD: "Mild", Tier.MODERATE: "Moderate",
         Tier.SEVERE: "Severe"},
        {Tier.NONE: "0%", Tier.MILD: ">0-5%", Tier.MODERATE: ">5-15%",
         Tier.SEVERE: ">15%"},
    ),
    HRP: _table(
        HRP,
        ((2.0, False, Tier.MODERATE),),
        Tier.SEVERE,
        {Tier.NONE: "0 features", Tier.MODERATE: "1 feature",
         Tier.SEVERE: "≥2 features"},
        {Tier.NONE: "0", Tier.MODERATE: "1", Tier.SEVERE: "≥2"},
    ),
    LRNC_VOLUME: _table(
        LRNC_VOLUME,
        ((5.0, False, Tier.MINIMAL), (15.0, False, Tier.MILD),
         (30.0, False, Tier.MODERATE)),
        Tier.SEVERE,
        _VOLUME_NAMES,
        {Tier.NONE: "0 mm³", Tier.MINIMAL: "<5 mm³", Tier.MILD: "5-14 mm³",
         Tier.MODERATE: "15-29 mm³", Tier.SEVERE: "≥30 mm³"},
    ),
    NCP_VOLUME: _table(
        NCP_VOLUME,
        ((20.0, False, Tier.MINIMAL), (50.0, False, Tier.MILD),
         (100.0, False, Tier.MODERATE)),
        Tier.SEVERE,
        _VOLUME_NAMES,
        {Tier.NONE: "0 mm³", Tier.MINIMAL: "<20 mm³", Tier.MILD: "20-49 mm³",
         Tier.MODERATE: "50-99 mm³", Tier.SEVERE: "≥100 mm³"},
    ),
    CP_VOLUME: _table(
        CP_VOLUME,
        ((50.0, False, Tier.MINIMAL), (150.0, False, Tier.MILD),
         (300.0, False, Tier.MODERATE)),
        Tier.SEVERE,
        _VOLUME_NAMES,
        {Tier.NONE: "0 mm³", Tier.MINIMAL: "<50 mm³", Tier.MILD: "50-149 mm³",
         Tier.MODERATE: "150-299 mm³", Tier.SEVERE: "≥300 mm³"},
    ),
    TPV: _table(
        TPV,
        ((30.0, False, Tier.MINIMAL), (75.0, False, Tier.MILD),
         (150.0, False, Tier.MODERATE)),
        Tier.SEVERE,
        _VOLUME_NAMES,
        {Tier.NONE: "0 mm³", Tier.MINIMAL: "<30 mm³", Tier.MILD: "30-74 mm³",
         Tier.MODERATE: "75-149 mm³", Tier.SEVERE: "≥150 mm³"},
    ),
    TPV_WHOLE_HEART: _table(
        TPV_WHOLE_HEART,
        ((250.0, True, Tier.MILD), (750.0, True, Tier.MODERATE)),
        Tier.SEVERE,
        {Tier.NONE: "None", Tier.MILD: "Mild", Tier.MODERATE: "Moderate",
         Tier.SEVERE: "Severe"},
        {Tier.NONE: "0 mm³", Tier.MILD: ">0-250 mm³",
         Tier.MODERATE: ">250-750 mm³", Tier.SEVERE: ">750 mm³"},
    ),
})

# FFRct lower bounds (exclusive), best tier first.
FFRCT_THRESHOLDS: tuple[tuple[float, Tier], ...] = (
    (0.85, Tier.NONE),
    (0.80, Tier.MINIMAL),
    (0.75, Tier.MILD),
    (0.70, Tier.MODERATE),
)

_FFRCT_NAMES: Mapping[Tier, str] = MappingProxyType({
    Tier.NOT_ASSESSED: "Not assessed",
    Tier.NONE: "Normal",
    Tier.MINIMAL: "Borderline",
    Tier.MILD: "Intermediate",
    Tier.MODERATE: "Abnormal",
    Tier.SEVERE: "Severely abnormal",
})

_FFRCT_RANGES: Mapping[Tier, str] = MappingProxyType({
    Tier.NONE: ">0.85",
    Tier.MINIMAL: "0.81-0.85",
    Tier.MILD: "0.76-0.80",
    Tier.MODERATE: "0.71-0.75",
    Tier.SEVERE: "≤0.70",
})


# ---------------------------------------------------------------------------
# Per-metric entry points
# ---------------------------------------------------------------------------

def _is_missing(value: float | None) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def ffrct_tier(value: float | None) -> Tier:
    """Classify an FFRct value; low values are worse.

    ``None`` means FFRct was not computed and maps to ``NOT_ASSESSED``.
    """
    if _is_missing(value):
        return Tier.NOT_ASSESSED
    for lower, tier in FFRCT_THRESHOLDS:
        if value > lower:
            return tier
    return Tier.SEVERE


def stenosis_tier(pct: float) -> Tier:
    return classify(STENOSIS, pct)


def pav_tier(pct: float) -> Tier:
    return classify(PAV, pct)


def hrp_tier(count: int) -> Tier:
    return classify(HRP, count)


def lrnc_tier(volume_mm3: float) -> Tier:
    return classify(LRNC_VOLUME, volume_mm3)


def ncp_tier(volume_mm3: float) -> Tier:
    return classify(NCP_VOLUME, volume_mm3)


def cp_tier(volume_mm3: float) -> Tier:
    return classify(CP_VOLUME, volume_mm3)


def tpv_tier(volume_mm3: float) -> Tier:
    """Classify a single segment's total plaque volume."""
    return classify(TPV, volume_mm3)


def global_tpv_tier(volume_mm3: float) -> Tier:
    """Classify a whole-heart total plaque volume."""
    return classify(TPV_WHOLE_HEART, volume_mm3)


_CLASSIFIERS: Mapping[str, Callable[[float], Tier]] = MappingProxyType({
    **{name: table.classify for name, table in THRESHOLD_TABLES.items()},
    FFRCT: ffrct_tier,
})


# ---------------------------------------------------------------------------
# Generic entry points
# ---------------------------------------------------------------------------

def classify(metric: str, value: float | None) -> Tier:
    """Classify *value* for *metric* into a :class:`Tier`.

    Unknown metrics and missing values return ``Tier.NOT_ASSESSED``; this
    function never raises for bad input.

    Parameters
    ----------
    metric:
        Metric key (``"Stenosis"``, ``"PAV"``/``"Burden"``, ``"HRP"``,
        ``"LRNC_Volume"``, ``"NCP_Volume"``, ``"CP_Volume"``, ``"TPV"``,
        ``"TPV_Whole_Heart"`` or ``"FFRct"``).
    value:
        Raw metric value.

    Returns
    -------
    Tier
        The risk tier.
    """
    key = normalize_metric(metric)
    if key is None:
        logger.debug("No thresholds for metric %r; not assessed.", metric)
        return Tier.NOT_ASSESSED
    if key == FFRCT:
        return ffrct_tier(value)
    if _is_missing(value):
        logger.debug("Missing %s value; not assessed.", key)
        return Tier.NOT_ASSESSED
    return _CLASSIFIERS[key](value)


def tier_color(tier: Tier) -> RiskColor:
    """Return the colour variable that paints *tier*."""
    return TIER_COLORS.get(tier, RiskColor.NEUTRAL_GRAY)


def risk_color(metric: str, value: float | None) -> RiskColor:
    """Shortcut for ``tier_color(classify(metric, value))``."""
    return tier_color(classify(metric, value))


def tier_name(metric: str, tier: Tier) -> str:
    """Display name of *tier* for *metric* (e.g. ``"Very High"``)."""
    key = normalize_metric(metric)
    if key == FFRCT:
        return _FFRCT_NAMES.get(tier, "")
    if tier == Tier.NOT_ASSESSED or key is None:
        return "Not assessed"
    return THRESHOLD_TABLES[key].names.get(tier, tier.name.title())


def classify_value(
    metric: str,
    value: float | None,
    decimals: int | None = None,
) -> ClassifiedValue:
    """Return the ``(value, tier, colour, label)`` triple for presentation."""
    tier = classify(metric, value)
    places = metric_decimals(metric) if decimals is None else decimals
    return ClassifiedValue(
        value=value,
        tier=tier,
        color=tier_color(tier).value,
        label=format_number(value, places),
    )


def legend_entries(metric: str) -> list[tuple[str, str]]:
    """Legend rows ``(colour variable, text)`` for *metric*, worst tier first.

    Returns an empty list for unknown metrics.
    """
    key = normalize_metric(metric)
    if key is None:
        return []
    if key == FFRCT:
        names, ranges = _FFRCT_NAMES, _FFRCT_RANGES
    else:
        table = THRESHOLD_TABLES[key]
        names, ranges = table.names, table.ranges
    rows: list[tuple[str, str]] = []
    for tier in sorted(ranges, reverse=True):
        rows.append((tier_color(tier).value, f"{names[tier]} ({ranges[tier]})"))
    return rows


# ---------------------------------------------------------------------------
# Dominant composition
# ---------------------------------------------------------------------------

def dominant_composition(ncp_mm3: float, cp_mm3: float) -> str:
    """Classify the dominant plaque type; a tie favours non-calcified."""
    if ncp_mm3 == 0 and cp_mm3 == 0:
        return NO_PLAQUE
    return NON_CALCIFIED_DOMINANT if ncp_mm3 >= cp_mm3 else CALCIFIED_DOMINANT


def composition_color(ncp_mm3: float, cp_mm3: float) -> CompositionColor:
    """Colour variable for the dominant plaque type."""
    return {
        NO_PLAQUE: CompositionColor.NONE,
        NON_CALCIFIED_DOMINANT: CompositionColor.NCP,
        CALCIFIED_DOMINANT: CompositionColor.CP,
    }[dominant_composition(ncp_mm3, cp_mm3)]
