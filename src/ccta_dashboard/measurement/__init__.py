"""Measurement sub-package.

Derives staging, aggregates and composition breakdowns from report values.
"""

from __future__ import annotations

from ccta_dashboard.measurement.composition import (
    composition_breakdown,
    patient_age,
)
from ccta_dashboard.measurement.derived import (
    atherosclerosis_score,
    atherosclerosis_stage,
    stenosis_summary,
    whole_heart_aggregate,
    years_between_studies,
)

__all__ = [
    "atherosclerosis_score",
    "atherosclerosis_stage",
    "composition_breakdown",
    "patient_age",
    "stenosis_summary",
    "whole_heart_aggregate",
    "years_between_studies",
]
