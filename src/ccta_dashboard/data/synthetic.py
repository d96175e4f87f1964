"""Synthetic serial CCTA report generator.

Produces a reproducible current/prior report pair in the dashboard's JSON
shape: all 18 SCCT segments across the three vessel groups, with plaque that
progresses (mostly non-calcified growth, some calcification) between the two
studies.  All data is reproducible via a fixed numpy RNG seed.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

import numpy as np

from ccta_dashboard.domain.anatomy import SEGMENT_NAMES, VESSEL_SEGMENTS
from ccta_dashboard.domain.models import HRP_FEATURES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_PRIOR_STUDY_DATE = date(2022, 3, 14)
_DOB = date(1961, 7, 2)

# Typical segment lengths (mm) by SCCT id.
_SEGMENT_LENGTH_MM: dict[int, float] = {
    1: 22.0, 2: 30.0, 3: 25.0, 4: 20.0, 5: 10.0, 6: 18.0, 7: 32.0, 8: 28.0,
    9: 20.0, 10: 16.0, 11: 18.0, 12: 22.0, 13: 20.0, 14: 18.0, 15: 15.0,
    16: 16.0, 17: 14.0, 18: 20.0,
}

# Proximal segments carry more plaque.
_PROXIMAL = frozenset({1, 2, 5, 6, 7, 11})

_PULLBACK_SAMPLES = 5


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _r(value: float, decimals: int = 1) -> float:
    return float(round(value, decimals))


def _prior_segment(seg_id: int, rng: np.random.Generator) -> dict[str, Any]:
    """Baseline plaque for one segment; about a third are plaque-free."""
    length = _SEGMENT_LENGTH_MM[seg_id]
    scale = 2.0 if seg_id in _PROXIMAL else 1.0
    has_plaque = rng.random() < (0.85 if seg_id in _PROXIMAL else 0.55)
    if not has_plaque:
        return {
            "segId": seg_id, "name": SEGMENT_NAMES[seg_id], "length_mm": length,
            "plaque_length_mm": 0.0, "stenosis_pct": 0.0, "ri": 1.0,
            "lrnc_mm3": 0.0, "ncp_mm3": 0.0, "cp_mm3": 0.0,
            "pav_pct": 0.0, "lap_pct": 0.0, "hrp": [],
        }
    lrnc = rng.gamma(1.5, 2.0) * scale
    ncp = rng.gamma(2.0, 8.0) * scale
    cp = rng.gamma(2.0, 15.0) * scale
    return {
        "segId": seg_id,
        "name": SEGMENT_NAMES[seg_id],
        "length_mm": length,
        "plaque_length_mm": _r(length * rng.uniform(0.2, 0.7)),
        "stenosis_pct": _r(rng.uniform(5.0, 45.0) * (1.2 if scale > 1 else 0.8), 0),
        "ri": _r(rng.uniform(0.9, 1.4), 2),
        "lrnc_mm3": _r(lrnc),
        "ncp_mm3": _r(ncp),
        "cp_mm3": _r(cp),
        "pav_pct": _r(rng.uniform(2.0, 20.0) * scale / 1.5),
        "lap_pct": _r(lrnc / max(lrnc + ncp + cp, 1e-6) * 100.0),
        "hrp": [],
    }


def _progress(prior: dict[str, Any], rng: np.random.Generator, years: float) -> dict[str, Any]:
    """Advance a segment by *years* of plaque progression."""
    seg = dict(prior)
    if prior["cp_mm3"] + prior["ncp_mm3"] == 0 and rng.random() > 0.25:
        return seg
    growth = max(years, 0.5)
    ncp = prior["ncp_mm3"] * (1 + rng.normal(0.12, 0.10) * growth)
    cp = prior["cp_mm3"] * (1 + rng.normal(0.08, 0.05) * growth)
    seg["ncp_mm3"] = _r(max(0.0, ncp) + rng.gamma(1.0, 2.0))
    seg["cp_mm3"] = _r(max(0.0, cp) + rng.gamma(1.0, 1.5))
    seg["lrnc_mm3"] = _r(max(0.0, prior["lrnc_mm3"] * (1 + rng.normal(0.05, 0.15) * growth)))
    seg["stenosis_pct"] = _r(min(95.0, prior["stenosis_pct"] + rng.normal(4.0, 4.0) * growth), 0)
    seg["stenosis_pct"] = max(seg["stenosis_pct"], 0.0)
    seg["pav_pct"] = _r(max(0.0, prior["pav_pct"] + rng.normal(0.8, 0.6) * growth))
    if not prior["plaque_length_mm"]:
        seg["plaque_length_mm"] = _r(prior["length_mm"] * rng.uniform(0.1, 0.3))
    total = seg["lrnc_mm3"] + seg["ncp_mm3"] + seg["cp_mm3"]
    seg["lap_pct"] = _r(seg["lrnc_mm3"] / total * 100.0) if total else 0.0
    return seg


def _assign_hrp(seg: dict[str, Any], rng: np.random.Generator) -> None:
    """High-risk features appear with large necrotic cores."""
    if seg["lrnc_mm3"] >= 5.0:
        n = 1 if seg["lrnc_mm3"] < 12.0 else int(rng.integers(2, 4))
        idx = rng.choice(len(HRP_FEATURES), size=n, replace=False)
        seg["hrp"] = [HRP_FEATURES[i] for i in sorted(idx)]
    else:
        seg["hrp"] = []


def _assign_ffrct(seg: dict[str, Any], rng: np.random.Generator) -> None:
    """FFRct falls with stenosis; the pullback runs from 1.0 down to it."""
    value = 0.98 - seg["stenosis_pct"] / 100.0 * rng.uniform(0.35, 0.55)
    value = float(np.clip(value, 0.55, 0.99))
    seg["ffrct"] = _r(value, 2)
    seg["ffrct_pullback"] = [
        _r(v, 2) for v in np.linspace(1.0, value, _PULLBACK_SAMPLES)
    ]


def _build_study(
    segments: dict[int, dict[str, Any]],
    study_date: date,
    study_id: str,
) -> dict[str, Any]:
    """Aggregate segments into vessels and global metrics."""
    vessels = []
    total_length = 0.0
    for vessel_id, seg_ids in VESSEL_SEGMENTS.items():
        segs = [segments[i] for i in seg_ids]
        lrnc = sum(s["lrnc_mm3"] for s in segs)
        ncp = sum(s["ncp_mm3"] for s in segs)
        cp = sum(s["cp_mm3"] for s in segs)
        length = sum(s["length_mm"] for s in segs)
        total_length += length
        weights = np.array([s["length_mm"] for s in segs])
        pav = float(np.average([s["pav_pct"] for s in segs], weights=weights))
        tpv = lrnc + ncp + cp
        vessels.append({
            "id": vessel_id,
            "length_mm": _r(length),
            "tpv_mm3": _r(tpv),
            "pav_pct": _r(pav),
            "lap_pct": _r(lrnc / tpv * 100.0) if tpv else 0.0,
            "ri_max": max(s["ri"] for s in segs),
            "composition": {"lrnc_mm3": _r(lrnc), "ncp_mm3": _r(ncp), "cp_mm3": _r(cp)},
            "segments": segs,
        })

    all_segs = list(segments.values())
    tpv = sum(s["lrnc_mm3"] + s["ncp_mm3"] + s["cp_mm3"] for s in all_segs)
    lrnc = sum(s["lrnc_mm3"] for s in all_segs)
    pav = sum(v["pav_pct"] * v["length_mm"] for v in vessels) / total_length
    ffrct_values = [s["ffrct"] for s in all_segs if s.get("ffrct")]

    return {
        "patient": {
            "name": "Synthetic Patient",
            "mrn": "SYN-0001",
            "dob": _DOB.isoformat(),
            "sex": "M",
            "studyDate": study_date.isoformat(),
            "scanner": "Synthetic 256-slice CT",
            "dominance": "Right",
        },
        "study": {
            "id": study_id,
            "qualityFlags": [],
            "ffrctLowest": min(ffrct_values) if ffrct_values else None,
            "pcat_fai": {"RCA": -78.0, "LM_LAD": -74.0, "LCx": -81.0},
            "eAT_volume_ml": 112.0,
        },
        "global": {
            "tpv_mm3": _r(tpv),
            "pav_pct": _r(pav),
            "lap_pct": _r(lrnc / tpv * 100.0) if tpv else 0.0,
            "sis": float(sum(1 for s in all_segs if s["stenosis_pct"] > 0)),
            "cac_agatston": _r(sum(s["cp_mm3"] for s in all_segs) * 1.9, 0),
        },
        "vessels": vessels,
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate_serial_report(seed: int = 42, interval_days: int = 730) -> dict[str, Any]:
    """Generate a current report with an embedded prior study.

    Parameters
    ----------
    seed:
        Seed for ``numpy.random.default_rng``; the same seed always yields
        the same document.
    interval_days:
        Days between the prior and current study.

    Returns
    -------
    dict[str, Any]
        JSON-serialisable report with ``priorStudy`` set.
    """
    rng = np.random.default_rng(seed)
    years = interval_days / 365.25
    current_date = _PRIOR_STUDY_DATE + timedelta(days=interval_days)

    prior_segments: dict[int, dict[str, Any]] = {}
    current_segments: dict[int, dict[str, Any]] = {}
    for seg_id in sorted(SEGMENT_NAMES):
        before = _prior_segment(seg_id, rng)
        after = _progress(before, rng, years)
        for seg in (before, after):
            _assign_hrp(seg, rng)
            _assign_ffrct(seg, rng)
        prior_segments[seg_id] = before
        current_segments[seg_id] = after

    report = _build_study(current_segments, current_date, f"SYN-{seed}-B")
    report["priorStudy"] = _build_study(prior_segments, _PRIOR_STUDY_DATE, f"SYN-{seed}-A")
    logger.info(
        "Generated synthetic serial report (seed=%d, interval=%d days)",
        seed, interval_days,
    )
    return report
