"""Shared pytest fixtures for the CCTA dashboard test suite."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any

import pytest

from ccta_dashboard.config.settings import get_config
from ccta_dashboard.domain.models import (
    LCX,
    LM_LAD,
    RCA,
    CctaReport,
    Composition,
    GlobalMetrics,
    Patient,
    Segment,
    Study,
    Vessel,
)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_vessel(vessel_id: str, segments: list[Segment], pav_pct: float = 0.0) -> Vessel:
    """A vessel whose composition is the sum of its segments."""
    return Vessel(
        vessel_id=vessel_id,
        length_mm=sum(s.length_mm for s in segments),
        pav_pct=pav_pct,
        ri_max=max((s.ri for s in segments), default=0.0),
        composition=Composition(
            lrnc_mm3=sum(s.lrnc_mm3 for s in segments),
            ncp_mm3=sum(s.ncp_mm3 for s in segments),
            cp_mm3=sum(s.cp_mm3 for s in segments),
        ),
        segments=tuple(segments),
    )


def make_report(
    segments: list[Segment],
    *,
    study_date: date | None = date(2024, 3, 1),
    tpv_mm3: float = 0.0,
    pav_pct: float = 0.0,
    vessel_pav: dict[str, float] | None = None,
    prior: CctaReport | None = None,
) -> CctaReport:
    """Group *segments* into the three vessels by SCCT id."""
    from ccta_dashboard.domain.anatomy import vessel_of

    vessel_pav = vessel_pav or {}
    grouped: dict[str, list[Segment]] = {RCA: [], LM_LAD: [], LCX: []}
    for seg in segments:
        grouped[vessel_of(seg.seg_id) or RCA].append(seg)
    vessels = tuple(
        make_vessel(vid, segs, vessel_pav.get(vid, 0.0))
        for vid, segs in grouped.items() if segs
    )
    return CctaReport(
        patient=Patient(name="Test Patient", mrn="T-001", study_date=study_date),
        study=Study(study_id="S-1"),
        global_metrics=GlobalMetrics(tpv_mm3=tpv_mm3, pav_pct=pav_pct),
        vessels=vessels,
        prior_study=prior,
    )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _fresh_config():
    """Reload configuration around every test so env overrides stay local."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


# ---------------------------------------------------------------------------
# Segment / report fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def plaque_segment() -> Segment:
    """A proximal LAD segment with mixed plaque and two HRP features."""
    return Segment(
        seg_id=6,
        name="pLAD",
        length_mm=18.0,
        plaque_length_mm=9.0,
        stenosis_pct=55.0,
        ri=1.2,
        ffrct=0.78,
        ffrct_pullback=(1.0, 0.92, 0.85, 0.78),
        lrnc_mm3=6.0,
        ncp_mm3=30.0,
        cp_mm3=20.0,
        pav_pct=12.0,
        lap_pct=4.0,
        hrp=("LAP", "PR"),
    )


@pytest.fixture()
def serial_report() -> CctaReport:
    """A current report (2024-03-01) with a prior study exactly two years earlier."""
    prior = make_report(
        [
            Segment(seg_id=1, stenosis_pct=20.0, cp_mm3=50.0, ncp_mm3=10.0, ffrct=0.90),
            Segment(seg_id=6, stenosis_pct=40.0, ncp_mm3=20.0, cp_mm3=10.0,
                    lrnc_mm3=2.0, pav_pct=8.0, ffrct=0.86),
            Segment(seg_id=11, stenosis_pct=10.0, cp_mm3=5.0),
        ],
        study_date=date(2022, 3, 1),
        tpv_mm3=97.0,
        pav_pct=4.0,
        vessel_pav={RCA: 3.0, LM_LAD: 6.0, LCX: 1.0},
    )
    return make_report(
        [
            Segment(seg_id=1, stenosis_pct=20.0, cp_mm3=55.0, ncp_mm3=10.0, ffrct=0.90),
            Segment(seg_id=6, stenosis_pct=60.0, ncp_mm3=35.0, cp_mm3=10.0,
                    lrnc_mm3=6.0, pav_pct=14.0, ffrct=0.74, hrp=("LAP",)),
            Segment(seg_id=7, stenosis_pct=15.0, ncp_mm3=4.0),
        ],
        study_date=date(2024, 3, 1),
        tpv_mm3=120.0,
        pav_pct=6.0,
        vessel_pav={RCA: 3.0, LM_LAD: 9.0},
        prior=prior,
    )


@pytest.fixture()
def report_payload() -> dict[str, Any]:
    """A minimal JSON-shaped report with camelCase keys and a prior study."""
    segment = {
        "segId": 6, "name": "pLAD", "length_mm": 18, "plaque_length_mm": 8,
        "stenosis_pct": 45, "ri": 1.1, "ffrct": 0.82,
        "lrnc_mm3": 3.5, "ncp_mm3": 22.0, "cp_mm3": 14.0,
        "pav_pct": 9.5, "lap_pct": 2.0, "hrp": ["PR"],
    }
    current = {
        "patient": {
            "name": "Jane Doe", "mrn": "MRN-1", "dob": "1960-05-04", "sex": "F",
            "studyDate": "2024-06-01", "scanner": "CT-1", "dominance": "Right",
        },
        "study": {"id": "ST-2", "qualityFlags": ["motion"], "ffrctLowest": 0.82},
        "global": {"tpv_mm3": 39.5, "pav_pct": 9.5, "lap_pct": 2.0, "sis": 1},
        "vessels": [{
            "id": "LM_LAD", "length_mm": 18, "tpv_mm3": 39.5, "pav_pct": 9.5,
            "lap_pct": 2.0, "ri_max": 1.1,
            "composition": {"lrnc_mm3": 3.5, "ncp_mm3": 22.0, "cp_mm3": 14.0},
            "segments": [segment],
        }],
    }
    prior = json.loads(json.dumps(current))
    prior["patient"]["studyDate"] = "2022-06-01"
    prior["study"]["id"] = "ST-1"
    prior["vessels"][0]["segments"][0]["stenosis_pct"] = 30
    prior["priorStudy"] = {"patient": {"studyDate": "2020-01-01"}}
    current["priorStudy"] = prior
    return current


@pytest.fixture()
def report_file(tmp_path: Path, report_payload: dict[str, Any]) -> Path:
    """The ``report_payload`` fixture written to a JSON file."""
    path = tmp_path / "report.json"
    path.write_text(json.dumps(report_payload), encoding="utf-8")
    return path
