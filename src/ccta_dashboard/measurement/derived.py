"""Derived metrics: values computed from a report rather than read from it.

Covers segment total plaque volume, atherosclerosis staging, the synthesized
whole-heart vessel, the stenosis histogram, and the study interval used to
annualize serial changes.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from ccta_dashboard.classification.thresholds import Tier, stenosis_tier
from ccta_dashboard.domain.models import (
    LEFT_MAIN_SEGMENT_ID,
    WHOLE_HEART,
    AtherosclerosisScore,
    CctaReport,
    Composition,
    GlobalMetrics,
    Segment,
    StenosisSummary,
    Vessel,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DAYS_PER_YEAR: float = 365.25

# Stage upper bounds (inclusive) for stages 1 and 2; above the last is 3.
_TPV_STAGE_BOUNDS: tuple[float, float] = (250.0, 750.0)
_PAV_STAGE_BOUNDS: tuple[float, float] = (5.0, 15.0)

# Left main stenosis counts as severe from this value.
_LM_SEVERE_PCT: float = 50.0

STAGE_TIERS: tuple[Tier, ...] = (Tier.NONE, Tier.MILD, Tier.MODERATE, Tier.SEVERE)


# ---------------------------------------------------------------------------
# Plaque volume
# ---------------------------------------------------------------------------

def segment_tpv(segment: Segment) -> float:
    """Total plaque volume of a segment: ``lrnc + ncp + cp`` (mm^3, unrounded)."""
    return segment.lrnc_mm3 + segment.ncp_mm3 + segment.cp_mm3


# ---------------------------------------------------------------------------
# Staging
# ---------------------------------------------------------------------------

def _stage(value: float, bounds: tuple[float, float]) -> int:
    if value == 0:
        return 0
    if value <= bounds[0]:
        return 1
    if value <= bounds[1]:
        return 2
    return 3


def tpv_stage(tpv_mm3: float) -> int:
    """Stage 0-3 from whole-heart TPV: 0; >0-250; >250-750; >750."""
    return _stage(tpv_mm3, _TPV_STAGE_BOUNDS)


def pav_stage(pav_pct: float) -> int:
    """Stage 0-3 from PAV: 0; >0-5%; >5-15%; >15%."""
    return _stage(pav_pct, _PAV_STAGE_BOUNDS)


def atherosclerosis_stage(tpv_mm3: float, pav_pct: float) -> int:
    """Stage by whichever of volume or burden indicates more disease."""
    return max(tpv_stage(tpv_mm3), pav_stage(pav_pct))


def atherosclerosis_score(global_metrics: GlobalMetrics) -> AtherosclerosisScore:
    """Build the scoreboard for a report's global metrics."""
    t_stage = tpv_stage(global_metrics.tpv_mm3)
    p_stage = pav_stage(global_metrics.pav_pct)
    return AtherosclerosisScore(
        stage=max(t_stage, p_stage),
        tpv_stage=t_stage,
        pav_stage=p_stage,
    )


def stage_tier(stage: int) -> Tier:
    """Tier used to colour an atherosclerosis stage."""
    if 0 <= stage < len(STAGE_TIERS):
        return STAGE_TIERS[stage]
    return Tier.NOT_ASSESSED


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def whole_heart_aggregate(report: CctaReport) -> Vessel:
    """Synthesize the ``WHOLE_HEART`` vessel from the report's vessels.

    Length and composition are summed across vessels.  PAV, TPV and LAP come
    from the report's global metrics rather than being re-derived, and
    ``ri_max`` is the maximum across vessels.
    """
    vessels = [v for v in report.vessels if v.vessel_id != WHOLE_HEART]
    composition = Composition(
        lrnc_mm3=sum(v.composition.lrnc_mm3 for v in vessels),
        ncp_mm3=sum(v.composition.ncp_mm3 for v in vessels),
        cp_mm3=sum(v.composition.cp_mm3 for v in vessels),
    )
    return Vessel(
        vessel_id=WHOLE_HEART,
        length_mm=sum(v.length_mm for v in vessels),
        pav_pct=report.global_metrics.pav_pct,
        lap_pct=report.global_metrics.lap_pct,
        ri_max=max((v.ri_max for v in vessels), default=0.0),
        composition=composition,
        segments=tuple(s for v in vessels for s in v.segments),
        reported_tpv_mm3=report.global_metrics.tpv_mm3,
    )


def stenosis_summary(segments: Sequence[Segment]) -> StenosisSummary:
    """Count segments per stenosis bucket.

    Buckets follow the stenosis tiers (Minimal 1-24%, Mild 25-49%, Moderate
    50-69%, Severe >=70%).  The left main (segment 5) is severe from 50%.
    A segment at 0% is not counted.
    """
    counts = {Tier.MINIMAL: 0, Tier.MILD: 0, Tier.MODERATE: 0, Tier.SEVERE: 0}
    for segment in segments:
        pct = segment.stenosis_pct
        tier = stenosis_tier(pct)
        if segment.seg_id == LEFT_MAIN_SEGMENT_ID and pct >= _LM_SEVERE_PCT:
            tier = Tier.SEVERE
        if tier in counts:
            counts[tier] += 1
    return StenosisSummary(
        minimal=counts[Tier.MINIMAL],
        mild=counts[Tier.MILD],
        moderate=counts[Tier.MODERATE],
        severe=counts[Tier.SEVERE],
    )


# ---------------------------------------------------------------------------
# Study interval
# ---------------------------------------------------------------------------

def _as_date(value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError:
        logger.debug("Unparseable study date %r", value)
        return None


def years_between_studies(
    current_date: date | str | None,
    prior_date: date | str | None,
) -> float:
    """Years between two studies (calendar days / 365.25).

    Returns ``1.0`` when the interval is zero or negative, or when either date
    is missing, so that annualized changes never divide by zero.
    """
    current = _as_date(current_date)
    prior = _as_date(prior_date)
    if current is None or prior is None:
        return 1.0
    years = (current - prior).days / _DAYS_PER_YEAR
    if years <= 0:
        logger.debug("Non-positive study interval (%s -> %s); using 1 year.", prior, current)
        return 1.0
    return years
