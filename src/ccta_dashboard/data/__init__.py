"""Data sub-package: JSON report loading and synthetic report generation."""

from __future__ import annotations

from ccta_dashboard.data.report_loader import load_report, report_from_dict
from ccta_dashboard.data.synthetic import generate_serial_report

__all__ = [
    "generate_serial_report",
    "load_report",
    "report_from_dict",
]
