#!/usr/bin/env python3
"""Generate a synthetic serial CCTA report for the dashboard.

Usage:
    PYTHONPATH=src python3 scripts/generate_sample_report.py [--output PATH] [--seed N]

Writes a current report with an embedded prior study to a JSON file that
``python -m ccta_dashboard`` (and the dashboard front end) can read.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic serial CCTA report.",
    )
    parser.add_argument(
        "--output",
        default="data/sample-serial.json",
        help="Output JSON path (default: data/sample-serial.json)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducible generation (default: 42)",
    )
    parser.add_argument(
        "--interval-days",
        type=int,
        default=730,
        help="Days between the prior and current study (default: 730)",
    )
    args = parser.parse_args()

    from ccta_dashboard.data.report_loader import report_from_dict
    from ccta_dashboard.data.synthetic import generate_serial_report

    payload = generate_serial_report(seed=args.seed, interval_days=args.interval_days)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)

    # Quick verification: parse the document back
    report = report_from_dict(payload)
    print(f"Report written to: {output}")
    print(f"  vessels : {len(report.vessels)}")
    print(f"  segments: {len(report.all_segments())}")
    print(f"  prior   : {report.patient.study_date} <- "
          f"{report.prior_study.patient.study_date if report.prior_study else '-'}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
