"""SCCT 18-segment coronary anatomy: display order, short names, vessel groups."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from ccta_dashboard.domain.models import LCX, LM_LAD, RCA

# Left-to-right order of segments on charts and the change matrix.
SEGMENT_ORDER: tuple[int, ...] = (
    5, 11, 13, 15, 18, 12, 14, 6, 7, 9, 10, 8, 1, 2, 3, 4, 16, 17,
)

SEGMENT_NAMES: Mapping[int, str] = MappingProxyType({
    1: "pRCA", 2: "mRCA", 3: "dRCA", 4: "R-PDA", 5: "LM", 6: "pLAD",
    7: "mLAD", 8: "dLAD", 9: "D1", 10: "D2", 11: "pLCx", 12: "OM1",
    13: "dLCx", 14: "OM2", 15: "L-PDA", 16: "R-PLB", 17: "L-PLB",
    18: "Ramus",
})

VESSEL_SEGMENTS: Mapping[str, tuple[int, ...]] = MappingProxyType({
    RCA: (1, 2, 3, 4, 16),
    LM_LAD: (5, 6, 7, 8, 9, 10),
    LCX: (11, 12, 13, 14, 15, 17, 18),
})

# Vessel filter buttons on the serial chart -> vessel group (None = all).
VESSEL_FILTERS: Mapping[str, str | None] = MappingProxyType({
    "Whole Heart": None,
    "RCA": RCA,
    "LM+LAD": LM_LAD,
    "LCx": LCX,
})


def segment_label(seg_id: int) -> str:
    """Short display name of a segment, falling back to its number."""
    return SEGMENT_NAMES.get(seg_id, str(seg_id))


def vessel_of(seg_id: int) -> str | None:
    """Vessel group a segment belongs to, or ``None``."""
    for vessel_id, seg_ids in VESSEL_SEGMENTS.items():
        if seg_id in seg_ids:
            return vessel_id
    return None
