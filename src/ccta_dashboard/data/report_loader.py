"""Build :class:`CctaReport` objects from the dashboard's JSON documents.

The JSON shape is the one the dashboard front end consumes::

    {
      "patient": {"name": ..., "studyDate": "2024-05-01", ...},
      "study": {"id": ..., "qualityFlags": [...], "ffrctLowest": 0.78, ...},
      "global": {"tpv_mm3": ..., "pav_pct": ..., ...},
      "vessels": [{"id": "RCA", "composition": {...}, "segments": [...]}],
      "priorStudy": { ...same shape, without its own priorStudy... }
    }

Both camelCase and snake_case keys are accepted.  Loading is lenient: a
missing number defaults to zero, a missing ``ffrct`` stays ``None``, and a
value that is not a number becomes NaN with a warning.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import date
from pathlib import Path
from typing import Any, Mapping

from ccta_dashboard.domain.models import (
    QUALITY_FLAGS,
    RCA,
    CctaReport,
    Composition,
    GlobalMetrics,
    Patient,
    Segment,
    Study,
    Vessel,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key of *keys* present in *data*."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        logger.warning("Non-numeric %s %r; using NaN.", field_name, value)
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Non-numeric %s %r; using NaN.", field_name, value)
        return math.nan


def _num(data: Mapping[str, Any], *keys: str, default: float = 0.0) -> float:
    value = _pick(data, *keys)
    if value is None:
        return default
    return _number(value, keys[0])


def _optional_num(data: Mapping[str, Any], *keys: str) -> float | None:
    value = _pick(data, *keys)
    if value is None:
        return None
    return _number(value, keys[0])


def _seg_id(data: Mapping[str, Any]) -> int:
    value = _num(data, "segId", "seg_id")
    if not math.isfinite(value):
        logger.warning("Invalid segId %r; using 0.", value)
        return 0
    return int(value)


def _date(data: Mapping[str, Any], *keys: str) -> date | None:
    value = _pick(data, *keys)
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning("Unparseable %s %r; ignoring.", keys[0], value)
        return None


def _str_tuple(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def _quality_flags(value: Any) -> tuple[str, ...]:
    """Known quality flags; unknown ones are dropped with a warning."""
    flags = _str_tuple(value)
    unknown = [f for f in flags if f not in QUALITY_FLAGS]
    if unknown:
        logger.warning("Ignoring unknown quality flags %s.", unknown)
    return tuple(f for f in flags if f in QUALITY_FLAGS)


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------

def _patient(data: Mapping[str, Any]) -> Patient:
    return Patient(
        name=str(data.get("name", "")),
        mrn=str(data.get("mrn", "")),
        dob=_date(data, "dob"),
        sex=str(data.get("sex", "X")),
        study_date=_date(data, "studyDate", "study_date"),
        scanner=str(data.get("scanner", "")),
        dominance=str(data.get("dominance", "Right")),
        notes=str(data.get("notes") or ""),
    )


def _study(data: Mapping[str, Any]) -> Study:
    fai = _pick(data, "pcat_fai", "pcatFai", default={}) or {}
    if not isinstance(fai, Mapping):
        logger.warning("Expected an object for pcat_fai, got %r; ignoring.", fai)
        fai = {}
    return Study(
        study_id=str(_pick(data, "id", "study_id", default="")),
        quality_flags=_quality_flags(_pick(data, "qualityFlags", "quality_flags")),
        ffrct_lowest=_optional_num(data, "ffrctLowest", "ffrct_lowest"),
        pcat_fai={str(k): _number(v, "pcat_fai") for k, v in fai.items()},
        eat_volume_ml=_optional_num(data, "eAT_volume_ml", "eat_volume_ml"),
    )


def _global(data: Mapping[str, Any]) -> GlobalMetrics:
    return GlobalMetrics(
        tpv_mm3=_num(data, "tpv_mm3"),
        pav_pct=_num(data, "pav_pct"),
        lap_pct=_num(data, "lap_pct"),
        sis=_num(data, "sis"),
        cac_agatston=_optional_num(data, "cac_agatston", "cacAgatston"),
    )


def _segment(data: Mapping[str, Any]) -> Segment:
    pullback = _pick(data, "ffrct_pullback", "ffrctPullback")
    return Segment(
        seg_id=_seg_id(data),
        name=str(data.get("name", "")),
        length_mm=_num(data, "length_mm"),
        plaque_length_mm=_num(data, "plaque_length_mm"),
        stenosis_pct=_num(data, "stenosis_pct"),
        ri=_num(data, "ri"),
        ffrct=_optional_num(data, "ffrct"),
        ffrct_pullback=(
            tuple(_number(v, "ffrct_pullback") for v in pullback)
            if pullback else None
        ),
        lrnc_mm3=_num(data, "lrnc_mm3"),
        ncp_mm3=_num(data, "ncp_mm3"),
        cp_mm3=_num(data, "cp_mm3"),
        pav_pct=_num(data, "pav_pct"),
        lap_pct=_num(data, "lap_pct"),
        hrp=_str_tuple(data.get("hrp")),
    )


def _vessel(data: Mapping[str, Any]) -> Vessel:
    comp = data.get("composition") or {}
    return Vessel(
        vessel_id=str(_pick(data, "id", "vessel_id", default=RCA)),
        length_mm=_num(data, "length_mm"),
        pav_pct=_num(data, "pav_pct"),
        lap_pct=_num(data, "lap_pct"),
        ri_max=_num(data, "ri_max"),
        composition=Composition(
            lrnc_mm3=_num(comp, "lrnc_mm3"),
            ncp_mm3=_num(comp, "ncp_mm3"),
            cp_mm3=_num(comp, "cp_mm3"),
        ),
        segments=tuple(_segment(s) for s in data.get("segments") or ()),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def report_from_dict(payload: Mapping[str, Any], *, _nested: bool = False) -> CctaReport:
    """Build a report (and its prior study, if any) from a JSON mapping.

    Parameters
    ----------
    payload:
        Decoded JSON document.

    Returns
    -------
    CctaReport
        The report.  A prior study's own ``priorStudy`` is ignored.
    """
    prior_payload = None if _nested else _pick(payload, "priorStudy", "prior_study")
    prior = (
        report_from_dict(prior_payload, _nested=True)
        if isinstance(prior_payload, Mapping) else None
    )
    return CctaReport(
        patient=_patient(payload.get("patient") or {}),
        study=_study(payload.get("study") or {}),
        global_metrics=_global(_pick(payload, "global", "global_metrics", default={}) or {}),
        vessels=tuple(_vessel(v) for v in payload.get("vessels") or ()),
        prior_study=prior,
    )


def load_report(path: str | Path) -> CctaReport:
    """Read a report JSON file.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the file is not valid JSON or its top level is not an object.
    """
    report_path = Path(path)
    if not report_path.is_file():
        raise FileNotFoundError(f"Report file not found: {report_path}")
    with open(report_path, "r", encoding="utf-8") as fh:
        try:
            payload = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {report_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(
            f"Expected a JSON object in {report_path}, got {type(payload).__name__}."
        )
    report = report_from_dict(payload)
    logger.info(
        "Loaded report %s: %d vessels, %d segments, prior=%s",
        report_path.name,
        len(report.vessels),
        len(report.all_segments()),
        report.has_prior,
    )
    return report
