"""Segment-by-metric change matrix for a current/prior report pair."""

from __future__ import annotations

import logging

import pandas as pd

from ccta_dashboard.classification.metrics import (
    CP_VOLUME,
    HRP,
    LRNC_VOLUME,
    NCP_VOLUME,
    STENOSIS,
)
from ccta_dashboard.classification.thresholds import Tier, tier_name
from ccta_dashboard.domain.anatomy import SEGMENT_ORDER, segment_label
from ccta_dashboard.domain.models import CctaReport, SerialDelta
from ccta_dashboard.serial.comparison import (
    ABSOLUTE,
    PERCENTAGE,
    SerialComparisonEngine,
)

logger = logging.getLogger(__name__)

MATRIX_METRICS: tuple[str, ...] = (
    STENOSIS, "Burden", HRP, LRNC_VOLUME, NCP_VOLUME, CP_VOLUME,
)
MATRIX_MODES: tuple[str, ...] = (ABSOLUTE, PERCENTAGE)

INCREASED_ICON = "▲"
DECREASED_ICON = "▼"
STABLE_ICON = "–"


def _cell(delta: SerialDelta) -> str:
    if delta.delta is None or delta.formatted_delta is None:
        return STABLE_ICON
    icon = INCREASED_ICON if delta.delta > 0 else DECREASED_ICON
    return f"{icon} {delta.formatted_delta}"


class ChangeMatrix:
    """Change of six plaque metrics across the 18 segments.

    Rows are metrics, columns are segment short names in chart order.  Cells
    show the direction icon and the change; unchanged cells show ``"–"``.
    """

    def __init__(self, report: CctaReport, prior: CctaReport | None = None) -> None:
        self._engine = SerialComparisonEngine(report, prior)

    @property
    def available(self) -> bool:
        return self._engine.available

    @property
    def columns(self) -> list[str]:
        return [segment_label(seg_id) for seg_id in SEGMENT_ORDER]

    def _deltas(self, metric: str, mode: str) -> dict[int, SerialDelta]:
        by_key = {d.key: d for d in self._engine.compare(metric, mode=mode)}
        result = {}
        for seg_id in SEGMENT_ORDER:
            if seg_id in by_key:
                result[seg_id] = by_key[seg_id]
            else:
                # Absent from both studies.
                result[seg_id] = SerialDelta(key=seg_id, metric=metric, mode=mode)
        return result

    def labels(self, mode: str = ABSOLUTE) -> pd.DataFrame:
        """Cell labels as a DataFrame indexed by metric.

        Returns an empty frame when no prior study is available or *mode* is
        not ``absolute`` or ``percentage``.
        """
        if not self.available or mode not in MATRIX_MODES:
            if mode not in MATRIX_MODES:
                logger.warning("Unsupported matrix mode %r.", mode)
            return pd.DataFrame(columns=self.columns)
        rows = {}
        for metric in MATRIX_METRICS:
            deltas = self._deltas(metric, mode)
            rows[metric] = [_cell(deltas[seg_id]) for seg_id in SEGMENT_ORDER]
        frame = pd.DataFrame.from_dict(rows, orient="index", columns=self.columns)
        frame.index.name = "Metric"
        return frame

    def tiers(self) -> pd.DataFrame:
        """Tier names of the current values, shaped like :meth:`labels`."""
        if not self.available:
            return pd.DataFrame(columns=self.columns)
        rows = {}
        for metric in MATRIX_METRICS:
            deltas = self._deltas(metric, ABSOLUTE)
            rows[metric] = [
                tier_name(metric, Tier(deltas[seg_id].current_tier))
                for seg_id in SEGMENT_ORDER
            ]
        frame = pd.DataFrame.from_dict(rows, orient="index", columns=self.columns)
        frame.index.name = "Metric"
        return frame
