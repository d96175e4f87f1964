"""Entry point for the CCTA dashboard computation core.

Summarise a report JSON file on the terminal::

    python -m ccta_dashboard report.json
    python -m ccta_dashboard report.json --metric CP_Volume --scope vessel --mode annualized
    python -m ccta_dashboard report.json --matrix --debug
"""

from __future__ import annotations

import argparse
import logging
import sys

import pandas as pd

from ccta_dashboard.classification.metrics import METRICS
from ccta_dashboard.classification.thresholds import Tier, tier_name
from ccta_dashboard.domain.models import CctaReport
from ccta_dashboard.reporting.formatting import format_number
from ccta_dashboard.serial.comparison import (
    ABSOLUTE,
    DISPLAY_MODES,
    SCOPES,
    SEGMENT_SCOPE,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="ccta_dashboard",
        description="CCTA plaque report summary and serial comparison.",
    )
    parser.add_argument(
        "report",
        help="Path to a report JSON file (optionally with a priorStudy).",
    )
    parser.add_argument(
        "--metric",
        default="Stenosis",
        choices=list(METRICS) + ["Burden"],
        help="Metric for the serial comparison (default: Stenosis).",
    )
    parser.add_argument(
        "--scope",
        default=SEGMENT_SCOPE,
        choices=SCOPES,
        help="Comparison scope (default: segment).",
    )
    parser.add_argument(
        "--mode",
        default=ABSOLUTE,
        choices=DISPLAY_MODES,
        help="Change display mode (default: absolute).",
    )
    parser.add_argument(
        "--matrix",
        action="store_true",
        default=False,
        help="Also print the segment change matrix.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug mode with verbose logging.",
    )
    return parser


def _configure_logging(debug: bool) -> None:
    """Set up root logger from the ``logging`` config section.

    Parameters
    ----------
    debug:
        If True, force DEBUG; otherwise use the configured level (INFO).
    """
    from ccta_dashboard.config.settings import get_typed_config

    section = get_typed_config().section("logging")
    level = "DEBUG" if debug else str(section.get("level", "INFO")).upper()
    logging.basicConfig(
        level=level,
        format=section.get("format", "%(asctime)s [%(levelname)s] %(name)s: %(message)s"),
        datefmt=section.get("datefmt", "%Y-%m-%d %H:%M:%S"),
    )


def format_summary(report: CctaReport) -> str:
    """Render the stage, stenosis histogram and vessel composition as text."""
    from ccta_dashboard.measurement.composition import composition_breakdown
    from ccta_dashboard.measurement.derived import (
        atherosclerosis_score,
        stenosis_summary,
        whole_heart_aggregate,
    )

    score = atherosclerosis_score(report.global_metrics)
    summary = stenosis_summary(report.all_segments())
    lines = [
        f"Patient: {report.patient.name or '-'} ({report.patient.mrn or '-'})",
        f"Study date: {report.patient.study_date or '-'}",
        f"Atherosclerosis stage: {score.stage} "
        f"(TPV {score.tpv_labels[score.tpv_stage]} mm³, "
        f"PAV {score.pav_labels[score.pav_stage]})",
        f"Stenosis: minimal {summary.minimal}, mild {summary.mild}, "
        f"moderate {summary.moderate}, severe {summary.severe}",
        "",
    ]

    rows = []
    for vessel in (*report.vessels, whole_heart_aggregate(report)):
        c = vessel.composition
        breakdown = composition_breakdown(c.lrnc_mm3, c.ncp_mm3, c.cp_mm3)
        labels = breakdown.labels() if breakdown else {}
        rows.append({
            "Vessel": vessel.vessel_id,
            "TPV (mm³)": format_number(vessel.tpv_mm3, 1),
            "PAV (%)": format_number(vessel.pav_pct, 1),
            "Calcified": labels.get("Calcified", "No Plaque"),
            "Non-Calcified": labels.get("Non-Calcified", ""),
            "LRNC": labels.get("LRNC", ""),
        })
    lines.append(pd.DataFrame(rows).to_string(index=False))
    return "\n".join(lines)


def format_comparison(report: CctaReport, metric: str, scope: str, mode: str) -> str:
    """Render the serial comparison of *metric* as a table."""
    from ccta_dashboard.serial.comparison import SerialComparisonEngine, threshold_metric

    engine = SerialComparisonEngine(report)
    if not engine.available:
        return "No prior study available."
    rows = [
        {
            "Key": d.label,
            "Prior": format_number(d.prior_value, 2),
            "Current": format_number(d.current_value, 2),
            "Change": d.formatted_delta or "",
            "Direction": d.favorability,
            "High risk": "yes" if d.high_risk else "",
            "Tier": tier_name(threshold_metric(d.metric, scope), Tier(d.current_tier)),
        }
        for d in engine.compare(metric, scope=scope, mode=mode)
    ]
    if not rows:
        return "Nothing to compare."
    header = f"{metric} change ({scope}, {mode}, {engine.years:.2f} years)"
    return header + "\n" + pd.DataFrame(rows).to_string(index=False)


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load the report and print the summary.

    Returns
    -------
    int
        Process exit code: 0 on success, 1 when the report cannot be loaded.
    """
    from ccta_dashboard.data.report_loader import load_report

    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.debug)

    try:
        report = load_report(args.report)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Cannot load report: %s", exc)
        return 1

    print(format_summary(report))
    print()
    print(format_comparison(report, args.metric, args.scope, args.mode))

    if args.matrix and report.has_prior:
        from ccta_dashboard.serial.matrix import MATRIX_MODES, ChangeMatrix

        matrix_mode = args.mode if args.mode in MATRIX_MODES else ABSOLUTE
        print()
        print(ChangeMatrix(report).labels(matrix_mode).to_string())
    return 0


if __name__ == "__main__":
    sys.exit(main())
