"""Plaque composition breakdown and simple per-patient derived values."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ccta_dashboard.domain.models import Patient, Vessel
from ccta_dashboard.reporting.formatting import format_number


@dataclass(frozen=True)
class CompositionBreakdown:
    """Fractions of total plaque volume per sub-type (0-1)."""

    total_mm3: float
    lrnc_fraction: float
    ncp_fraction: float
    cp_fraction: float

    def labels(self) -> dict[str, str]:
        """Whole-percent labels keyed ``"Calcified"``, ``"Non-Calcified"``, ``"LRNC"``."""
        return {
            "Calcified": f"{format_number(self.cp_fraction * 100, 0)}%",
            "Non-Calcified": f"{format_number(self.ncp_fraction * 100, 0)}%",
            "LRNC": f"{format_number(self.lrnc_fraction * 100, 0)}%",
        }


def composition_breakdown(
    lrnc_mm3: float,
    ncp_mm3: float,
    cp_mm3: float,
) -> CompositionBreakdown | None:
    """Split total plaque into sub-type fractions.

    Returns ``None`` when there is no plaque at all.
    """
    total = lrnc_mm3 + ncp_mm3 + cp_mm3
    if total == 0:
        return None
    return CompositionBreakdown(
        total_mm3=total,
        lrnc_fraction=lrnc_mm3 / total,
        ncp_fraction=ncp_mm3 / total,
        cp_fraction=cp_mm3 / total,
    )


def vessel_total_volume(vessel: Vessel) -> float:
    """Total plaque volume of a vessel, recomputed from its composition."""
    c = vessel.composition
    return c.lrnc_mm3 + c.ncp_mm3 + c.cp_mm3


def patient_age(patient: Patient, reference: date | None = None) -> int | None:
    """Age in whole years as the difference of calendar years.

    *reference* defaults to today.  Returns ``None`` without a birth date.
    """
    if patient.dob is None:
        return None
    ref = reference or date.today()
    return ref.year - patient.dob.year
