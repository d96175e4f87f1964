"""Domain models for the CCTA dashboard core.

All models are frozen dataclasses to enforce immutability.  Collections are
stored as tuples so that a report snapshot cannot be changed after it is
built; mutable defaults use ``field(default_factory=...)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import yaml


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RCA = "RCA"
LM_LAD = "LM_LAD"
LCX = "LCx"
WHOLE_HEART = "WHOLE_HEART"

VESSEL_IDS: tuple[str, ...] = (RCA, LM_LAD, LCX)

HRP_FEATURES: tuple[str, ...] = ("LAP", "PR", "SC", "NRS")
QUALITY_FLAGS: tuple[str, ...] = (
    "motion", "blooming", "stent", "heavyCa", "limitedCoverage",
)

LEFT_MAIN_SEGMENT_ID = 5


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _empty_dict() -> dict[str, Any]:
    """Return an empty dictionary."""
    return {}


# ---------------------------------------------------------------------------
# Patient / study models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Patient:
    """Patient identity and demographics shown in the report header."""

    name: str = ""
    mrn: str = ""
    dob: date | None = None
    sex: str = "X"
    study_date: date | None = None
    scanner: str = ""
    dominance: str = "Right"
    notes: str = ""


@dataclass(frozen=True)
class Study:
    """Study-level metadata that is not tied to a single segment."""

    study_id: str = ""
    quality_flags: tuple[str, ...] = ()
    ffrct_lowest: float | None = None
    pcat_fai: dict[str, float] = field(default_factory=_empty_dict)
    eat_volume_ml: float | None = None


@dataclass(frozen=True)
class GlobalMetrics:
    """Whole-report aggregates as reported by the analysis software."""

    tpv_mm3: float = 0.0
    pav_pct: float = 0.0
    lap_pct: float = 0.0
    sis: float = 0.0
    cac_agatston: float | None = None


# ---------------------------------------------------------------------------
# Anatomy models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Segment:
    """A single SCCT coronary segment (``seg_id`` 1-18).

    ``ffrct`` is ``None`` when FFRct was not computed for the segment, which
    is distinct from a measured value of zero.
    """

    seg_id: int = 0
    name: str = ""
    length_mm: float = 0.0
    plaque_length_mm: float = 0.0
    stenosis_pct: float = 0.0
    ri: float = 0.0
    ffrct: float | None = None
    ffrct_pullback: tuple[float, ...] | None = None
    lrnc_mm3: float = 0.0
    ncp_mm3: float = 0.0
    cp_mm3: float = 0.0
    pav_pct: float = 0.0
    lap_pct: float = 0.0
    hrp: tuple[str, ...] = ()

    @property
    def tpv_mm3(self) -> float:
        """Total plaque volume, always recomputed from the sub-volumes."""
        return self.lrnc_mm3 + self.ncp_mm3 + self.cp_mm3

    @property
    def hrp_count(self) -> int:
        """Number of high-risk plaque features."""
        return len(self.hrp)


@dataclass(frozen=True)
class Composition:
    """Plaque sub-volumes of a vessel (mm^3)."""

    lrnc_mm3: float = 0.0
    ncp_mm3: float = 0.0
    cp_mm3: float = 0.0

    @property
    def total_mm3(self) -> float:
        return self.lrnc_mm3 + self.ncp_mm3 + self.cp_mm3


@dataclass(frozen=True)
class Vessel:
    """A named group of segments with its own aggregate composition.

    ``reported_tpv_mm3`` is only set on the synthesized whole-heart vessel,
    which takes its TPV from the report's global metrics.
    """

    vessel_id: str = RCA
    length_mm: float = 0.0
    pav_pct: float = 0.0
    lap_pct: float = 0.0
    ri_max: float = 0.0
    composition: Composition = field(default_factory=Composition)
    segments: tuple[Segment, ...] = ()
    reported_tpv_mm3: float | None = None

    @property
    def tpv_mm3(self) -> float:
        if self.reported_tpv_mm3 is not None:
            return self.reported_tpv_mm3
        return self.composition.total_mm3


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CctaReport:
    """A complete CCTA report, optionally carrying one prior study.

    The prior study has the same shape; its own ``prior_study`` is always
    ``None`` so that exactly one level of serial comparison exists.
    """

    patient: Patient = field(default_factory=Patient)
    study: Study = field(default_factory=Study)
    global_metrics: GlobalMetrics = field(default_factory=GlobalMetrics)
    vessels: tuple[Vessel, ...] = ()
    prior_study: CctaReport | None = None

    @property
    def has_prior(self) -> bool:
        return self.prior_study is not None

    def all_segments(self) -> list[Segment]:
        """Return all segments in vessel order."""
        return [seg for vessel in self.vessels for seg in vessel.segments]

    def segment_map(self) -> dict[int, Segment]:
        """Map ``seg_id`` to segment (first occurrence wins)."""
        result: dict[int, Segment] = {}
        for seg in self.all_segments():
            result.setdefault(seg.seg_id, seg)
        return result

    def vessel(self, vessel_id: str) -> Vessel | None:
        """Return the vessel with *vessel_id*, or ``None``."""
        for vessel in self.vessels:
            if vessel.vessel_id == vessel_id:
                return vessel
        return None


# ---------------------------------------------------------------------------
# Computation results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClassifiedValue:
    """A value with its risk tier, colour variable and display label."""

    value: float | None = None
    tier: int = -1
    color: str = "--risk-neutral-gray"
    label: str = ""


@dataclass(frozen=True)
class StenosisSummary:
    """Histogram of segments per stenosis bucket."""

    minimal: int = 0
    mild: int = 0
    moderate: int = 0
    severe: int = 0

    @property
    def total(self) -> int:
        return self.minimal + self.mild + self.moderate + self.severe


@dataclass(frozen=True)
class AtherosclerosisScore:
    """Atherosclerosis stage and the two sub-stages it is derived from."""

    stage: int = 0
    tpv_stage: int = 0
    pav_stage: int = 0
    tpv_labels: tuple[str, ...] = ("0", ">0-250", ">250-750", ">750")
    pav_labels: tuple[str, ...] = ("0%", ">0-5%", ">5-15%", ">15%")


@dataclass(frozen=True)
class SerialDelta:
    """Current-vs-prior change of one metric at one key.

    ``key`` is a segment id, a vessel-group name or ``WHOLE_HEART``.
    ``delta`` and ``formatted_delta`` are ``None`` when the metric was not
    assessed on one side, or when there is nothing to display.
    """

    key: int | str = 0
    label: str = ""
    metric: str = ""
    prior_value: float | None = 0.0
    current_value: float | None = 0.0
    delta: float | None = 0.0
    favorability: str = "neutral"
    high_risk: bool = False
    current_tier: int = 0
    formatted_delta: str | None = None
    mode: str = "absolute"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AppConfig:
    """Presentation settings merged from YAML files and ``CCTA_`` variables.

    Sources, later ones winning:
      1. ``config/default.yaml``
      2. an optional overlay file (``config/local.yaml``)
      3. environment variables such as ``CCTA_CHARTS__STENOSIS__MAX=80``

    Only chart axes, the colour palette and similar display constants live
    here; classification cut points are fixed in code.
    """

    data: dict[str, Any] = field(default_factory=_empty_dict)

    @staticmethod
    def load(
        default_path: str | Path = "config/default.yaml",
        overlay_path: str | Path | None = None,
        env_prefix: str = "CCTA_",
    ) -> AppConfig:
        """Build a configuration from the YAML files and the environment.

        Parameters
        ----------
        default_path:
            Base YAML file.  A missing file contributes nothing.
        overlay_path:
            Optional YAML file merged over the base.
        env_prefix:
            Prefix of environment overrides.  Double underscores separate
            nesting levels and keys are lower-cased.

        Returns
        -------
        AppConfig
            Frozen configuration; the merged tree is in ``data``.
        """
        merged = _read_yaml(Path(default_path))
        if overlay_path is not None:
            merged = _deep_merge(merged, _read_yaml(Path(overlay_path)))
        for parts, value in _env_overrides(env_prefix):
            _set_nested(merged, parts, value)
        return AppConfig(data=merged)

    # -- generic lookups ---------------------------------------------------

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Look up a dot-separated path such as ``charts.hrp.max``."""
        node: Any = self.data
        for part in dotted_key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def section(self, name: str) -> dict[str, Any]:
        """Return a copy of a top-level section (empty when absent)."""
        val = self.data.get(name)
        return dict(val) if isinstance(val, dict) else {}

    # -- dashboard settings ------------------------------------------------

    def chart(self, name: str) -> dict[str, Any]:
        """Axis overrides of one chart, keyed by the lower-cased metric."""
        val = self.section("charts").get(name.lower())
        return dict(val) if isinstance(val, dict) else {}

    def palette_hex(self, color_var: str) -> str | None:
        """Hex value behind a CSS variable like ``--risk-red``, if configured."""
        val = self.section("palette").get(color_var.lstrip("-"))
        return str(val) if val is not None else None

    @property
    def stroke_darken_pct(self) -> float:
        return float(self.get("segment_map.stroke_darken_pct", 25))

    @property
    def pav_triangle(self) -> tuple[int, float]:
        """``(bars, max_pav)`` of the PAV triangle gauge."""
        return (
            int(self.get("pav_triangle.bars", 12)),
            float(self.get("pav_triangle.max_pav", 25.0)),
        )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    return raw if isinstance(raw, dict) else {}


def _env_overrides(prefix: str) -> list[tuple[list[str], Any]]:
    """``(key path, coerced value)`` pairs from ``<prefix>A__B=...`` variables."""
    import os

    return [
        (key[len(prefix):].lower().split("__"), _coerce(value))
        for key, value in sorted(os.environ.items())
        if key.startswith(prefix) and len(key) > len(prefix)
    ]


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge *overlay* into a copy of *base*, recursing into nested dicts."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _set_nested(tree: dict[str, Any], parts: list[str], value: Any) -> None:
    for part in parts[:-1]:
        node = tree.get(part)
        if not isinstance(node, dict):
            node = tree[part] = {}
        tree = node
    tree[parts[-1]] = value


def _coerce(value: str) -> Any:
    """Environment strings to bool, int, float or str.

    ``"1"`` and ``"0"`` stay integers so numeric chart settings survive.
    """
    lowered = value.strip().lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value
