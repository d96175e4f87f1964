"""Serial comparison engine: current-vs-prior change per segment, vessel or system.

For a selected metric the engine builds the union of keys present in either
study, reads a ``(prior, current)`` pair per key, and classifies the change:

* FFRct and CP volume favour increases; every other metric favours
  decreases.
* ``|delta| < 1e-6`` is always neutral.
* An unfavourable change is high-risk when the current value already sits in
  a moderate or severe tier.

Changes are formatted in one of three display modes: ``absolute``,
``percentage`` or ``annualized``.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Sequence

from ccta_dashboard.classification.ffrct import lowest_ffrct
from ccta_dashboard.classification.metrics import (
    CP_VOLUME,
    FFRCT,
    HRP,
    INCREASE_IS_FAVORABLE,
    LRNC_VOLUME,
    NCP_VOLUME,
    PAV,
    STENOSIS,
    TPV,
    TPV_WHOLE_HEART,
    metric_decimals,
    normalize_metric,
)
from ccta_dashboard.classification.thresholds import Tier, classify
from ccta_dashboard.domain.anatomy import VESSEL_SEGMENTS, segment_label
from ccta_dashboard.domain.models import (
    VESSEL_IDS,
    WHOLE_HEART,
    CctaReport,
    Segment,
    SerialDelta,
)
from ccta_dashboard.measurement.derived import segment_tpv, years_between_studies
from ccta_dashboard.reporting.formatting import (
    CHANGE_EPSILON,
    format_percentage_change,
    format_signed,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SEGMENT_SCOPE = "segment"
VESSEL_SCOPE = "vessel"
SYSTEM_SCOPE = "system"
SCOPES: tuple[str, ...] = (SEGMENT_SCOPE, VESSEL_SCOPE, SYSTEM_SCOPE)

ABSOLUTE = "absolute"
PERCENTAGE = "percentage"
ANNUALIZED = "annualized"
DISPLAY_MODES: tuple[str, ...] = (ABSOLUTE, PERCENTAGE, ANNUALIZED)

FAVORABLE = "favorable"
UNFAVORABLE = "unfavorable"
NEUTRAL = "neutral"

_HIGH_RISK_TIER = Tier.MODERATE

_SEGMENT_ACCESSORS: dict[str, Callable[[Segment], float | None]] = {
    STENOSIS: lambda s: s.stenosis_pct,
    PAV: lambda s: s.pav_pct,
    HRP: lambda s: float(len(s.hrp)),
    LRNC_VOLUME: lambda s: s.lrnc_mm3,
    NCP_VOLUME: lambda s: s.ncp_mm3,
    CP_VOLUME: lambda s: s.cp_mm3,
    TPV: segment_tpv,
    FFRCT: lambda s: s.ffrct,
}


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def comparison_metric(metric: str | None) -> str | None:
    """Canonical metric for comparison; whole-heart TPV compares as ``TPV``."""
    key = normalize_metric(metric)
    return TPV if key == TPV_WHOLE_HEART else key


def threshold_metric(metric: str, scope: str) -> str:
    """Threshold table used to classify *metric* at *scope*.

    TPV uses the per-segment table at segment scope and the whole-heart table
    for vessel and system aggregates.
    """
    if metric == TPV and scope != SEGMENT_SCOPE:
        return TPV_WHOLE_HEART
    return metric


def _is_missing(value: float | None) -> bool:
    return value is None or math.isnan(value)


def classify_change(metric: str, delta: float | None) -> str:
    """Return ``favorable``, ``unfavorable`` or ``neutral`` for a change.

    A missing or NaN delta is neutral.
    """
    if _is_missing(delta) or abs(delta) < CHANGE_EPSILON:
        return NEUTRAL
    increased = delta > 0
    if comparison_metric(metric) in INCREASE_IS_FAVORABLE:
        return FAVORABLE if increased else UNFAVORABLE
    return UNFAVORABLE if increased else FAVORABLE


def format_delta(
    metric: str,
    delta: float,
    prior: float,
    current: float,
    mode: str = ABSOLUTE,
    years: float = 1.0,
    decimals: int | None = None,
) -> str | None:
    """Format a change under *mode*; ``None`` means nothing to display.

    Parameters
    ----------
    metric:
        Metric key; decides the number of decimals.
    delta:
        ``current - prior``.
    prior, current:
        The two values, used by percentage mode.
    mode:
        ``absolute``, ``percentage`` or ``annualized``.
    years:
        Study interval used by annualized mode.
    decimals:
        Override for the metric's decimal places.
    """
    if abs(delta) < CHANGE_EPSILON:
        return None
    places = metric_decimals(metric) if decimals is None else decimals
    if mode == ABSOLUTE:
        return format_signed(delta, places)
    if mode == PERCENTAGE:
        # A percentage of a feature count is not meaningful.
        if comparison_metric(metric) == HRP:
            return format_signed(delta, places)
        return format_percentage_change(delta, prior, current)
    if mode == ANNUALIZED:
        return f"{format_signed(delta / years, places)}/yr"
    logger.warning("Unknown display mode %r; nothing to display.", mode)
    return None


def compare_values(
    metric: str,
    prior: float | None,
    current: float | None,
    *,
    scope: str = SEGMENT_SCOPE,
    mode: str = ABSOLUTE,
    years: float = 1.0,
    key: int | str = 0,
    label: str = "",
) -> SerialDelta:
    """Classify and format the change from *prior* to *current*.

    A ``None`` (FFRct not assessed) or NaN (unreadable input) on either side
    yields a neutral result with no delta.
    """
    metric = comparison_metric(metric) or metric
    table_metric = threshold_metric(metric, scope)
    current_tier = classify(table_metric, current)

    if _is_missing(prior) or _is_missing(current):
        return SerialDelta(
            key=key, label=label, metric=metric,
            prior_value=prior, current_value=current, delta=None,
            favorability=NEUTRAL, high_risk=False,
            current_tier=current_tier, formatted_delta=None, mode=mode,
        )

    delta = current - prior
    favorability = classify_change(metric, delta)
    high_risk = favorability == UNFAVORABLE and current_tier >= _HIGH_RISK_TIER
    formatted = format_delta(
        table_metric, delta, prior, current, mode=mode, years=years,
    )
    return SerialDelta(
        key=key, label=label, metric=metric,
        prior_value=prior, current_value=current, delta=delta,
        favorability=favorability, high_risk=high_risk,
        current_tier=current_tier, formatted_delta=formatted, mode=mode,
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class SerialComparisonEngine:
    """Compare a report against its prior study.

    Parameters
    ----------
    report:
        The current report.
    prior:
        The prior report.  Defaults to ``report.prior_study``; without one
        the engine is unavailable and every comparison is empty.
    """

    def __init__(self, report: CctaReport, prior: CctaReport | None = None) -> None:
        self._current = report
        self._prior = prior if prior is not None else report.prior_study
        self._current_segments = report.segment_map()
        self._prior_segments = self._prior.segment_map() if self._prior else {}

    @property
    def available(self) -> bool:
        """Whether a prior study exists to compare against."""
        return self._prior is not None

    @property
    def years(self) -> float:
        """Interval between the studies in years (1.0 when unknown)."""
        if self._prior is None:
            return 1.0
        return years_between_studies(
            self._current.patient.study_date,
            self._prior.patient.study_date,
        )

    # -- keys --------------------------------------------------------------

    def keys(self, scope: str = SEGMENT_SCOPE) -> list[int | str]:
        """Union of keys present in either study for *scope*."""
        if scope == SEGMENT_SCOPE:
            return sorted(set(self._current_segments) | set(self._prior_segments))
        if scope == VESSEL_SCOPE:
            seg_ids = set(self._current_segments) | set(self._prior_segments)
            vessel_ids = {v.vessel_id for v in self._current.vessels}
            if self._prior is not None:
                vessel_ids |= {v.vessel_id for v in self._prior.vessels}
            return [
                vid for vid in VESSEL_IDS
                if vid in vessel_ids or seg_ids & set(VESSEL_SEGMENTS[vid])
            ]
        if scope == SYSTEM_SCOPE:
            return [WHOLE_HEART]
        logger.warning("Unknown comparison scope %r.", scope)
        return []

    # -- values ------------------------------------------------------------

    def _segment_value(
        self, metric: str, segments: dict[int, Segment], seg_id: int,
    ) -> float | None:
        segment = segments.get(seg_id)
        if segment is None:
            # Not imaged on this side: FFRct stays unassessed, the rest is zero.
            return None if metric == FFRCT else 0.0
        return _SEGMENT_ACCESSORS[metric](segment)

    def _group_value(
        self,
        metric: str,
        report: CctaReport | None,
        segments: Sequence[Segment],
        vessel_id: str | None,
    ) -> float | None:
        if metric == STENOSIS:
            return max((s.stenosis_pct for s in segments), default=0.0)
        if metric == FFRCT:
            return lowest_ffrct(segments)
        if metric == PAV:
            if report is None:
                return 0.0
            if vessel_id is None:
                return report.global_metrics.pav_pct
            vessel = report.vessel(vessel_id)
            return vessel.pav_pct if vessel is not None else 0.0
        if metric == TPV and vessel_id is None:
            return report.global_metrics.tpv_mm3 if report is not None else 0.0
        accessor = _SEGMENT_ACCESSORS[metric]
        return float(sum(accessor(s) for s in segments))

    def values(
        self, metric: str, scope: str, key: int | str,
    ) -> tuple[float | None, float | None]:
        """Return ``(prior, current)`` of *metric* at *key*.

        ``(None, None)`` for an unknown metric, scope or key.
        """
        key_metric = comparison_metric(metric)
        if key_metric is None or scope not in SCOPES:
            logger.warning("Unknown metric/scope %r/%r; no values.", metric, scope)
            return None, None
        if scope == VESSEL_SCOPE and key not in VESSEL_SEGMENTS:
            logger.warning("Unknown vessel group %r; no values.", key)
            return None, None
        if scope == SEGMENT_SCOPE:
            return (
                self._segment_value(key_metric, self._prior_segments, key),
                self._segment_value(key_metric, self._current_segments, key),
            )
        vessel_id = None if scope == SYSTEM_SCOPE else key
        result = []
        for report, segments in (
            (self._prior, self._prior_segments),
            (self._current, self._current_segments),
        ):
            if vessel_id is None:
                group = list(segments.values())
            else:
                group = [
                    segments[i] for i in VESSEL_SEGMENTS[vessel_id] if i in segments
                ]
            result.append(self._group_value(key_metric, report, group, vessel_id))
        return result[0], result[1]

    # -- comparison --------------------------------------------------------

    def compare(
        self,
        metric: str,
        scope: str = SEGMENT_SCOPE,
        mode: str = ABSOLUTE,
    ) -> list[SerialDelta]:
        """Compare *metric* at every key of *scope*.

        Returns an empty list when there is no prior study, or when the
        metric, scope or mode is not recognized.
        """
        if not self.available:
            return []
        key_metric = comparison_metric(metric)
        if key_metric is None:
            logger.warning("Unknown comparison metric %r; nothing to display.", metric)
            return []
        if scope not in SCOPES or mode not in DISPLAY_MODES:
            logger.warning("Unknown scope/mode %r/%r; nothing to display.", scope, mode)
            return []

        years = self.years
        results = []
        for key in self.keys(scope):
            prior, current = self.values(key_metric, scope, key)
            label = segment_label(key) if scope == SEGMENT_SCOPE else str(key)
            results.append(compare_values(
                key_metric, prior, current,
                scope=scope, mode=mode, years=years, key=key, label=label,
            ))
        logger.debug(
            "Compared %s at %s scope (%s): %d keys.",
            key_metric, scope, mode, len(results),
        )
        return results

    def compare_key(
        self,
        metric: str,
        key: int | str,
        scope: str = SEGMENT_SCOPE,
        mode: str = ABSOLUTE,
    ) -> SerialDelta | None:
        """Comparison for a single key, or ``None`` if it is not present."""
        for delta in self.compare(metric, scope=scope, mode=mode):
            if delta.key == key:
                return delta
        return None
