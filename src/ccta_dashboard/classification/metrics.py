"""Metric identifiers shared by the classifier, formatter and serial engine."""

from __future__ import annotations

from types import MappingProxyType

STENOSIS = "Stenosis"
PAV = "PAV"
HRP = "HRP"
LRNC_VOLUME = "LRNC_Volume"
NCP_VOLUME = "NCP_Volume"
CP_VOLUME = "CP_Volume"
TPV = "TPV"
TPV_WHOLE_HEART = "TPV_Whole_Heart"
FFRCT = "FFRct"

METRICS: tuple[str, ...] = (
    STENOSIS, PAV, HRP, LRNC_VOLUME, NCP_VOLUME, CP_VOLUME, TPV,
    TPV_WHOLE_HEART, FFRCT,
)

# Dashboard controls call plaque burden "Burden".
_ALIASES = MappingProxyType({"Burden": PAV})

# Metrics where an increase is the favourable direction.
INCREASE_IS_FAVORABLE: frozenset[str] = frozenset({FFRCT, CP_VOLUME})

_DECIMALS = MappingProxyType({
    STENOSIS: 0,
    PAV: 0,
    HRP: 0,
    TPV_WHOLE_HEART: 0,
    FFRCT: 2,
})


def normalize_metric(metric: str | None) -> str | None:
    """Return the canonical metric key, or ``None`` if it is not known."""
    if metric is None:
        return None
    metric = _ALIASES.get(metric, metric)
    return metric if metric in METRICS else None


def metric_decimals(metric: str) -> int:
    """Decimal places used when displaying a change of *metric*."""
    return _DECIMALS.get(normalize_metric(metric) or "", 1)
