"""Domain layer -- report models and coronary anatomy.

Re-exports the public domain types for convenient access::

    from ccta_dashboard.domain import CctaReport, Segment, SEGMENT_ORDER
"""

from __future__ import annotations

from ccta_dashboard.domain.anatomy import (
    SEGMENT_NAMES,
    SEGMENT_ORDER,
    VESSEL_FILTERS,
    VESSEL_SEGMENTS,
    segment_label,
    vessel_of,
)
from ccta_dashboard.domain.models import (
    LCX,
    LM_LAD,
    RCA,
    VESSEL_IDS,
    WHOLE_HEART,
    AppConfig,
    AtherosclerosisScore,
    CctaReport,
    ClassifiedValue,
    Composition,
    GlobalMetrics,
    Patient,
    Segment,
    SerialDelta,
    StenosisSummary,
    Study,
    Vessel,
)

__all__ = [
    "LCX",
    "LM_LAD",
    "RCA",
    "SEGMENT_NAMES",
    "SEGMENT_ORDER",
    "VESSEL_FILTERS",
    "VESSEL_IDS",
    "VESSEL_SEGMENTS",
    "WHOLE_HEART",
    "AppConfig",
    "AtherosclerosisScore",
    "CctaReport",
    "ClassifiedValue",
    "Composition",
    "GlobalMetrics",
    "Patient",
    "Segment",
    "SerialDelta",
    "StenosisSummary",
    "Study",
    "Vessel",
    "segment_label",
    "vessel_of",
]
