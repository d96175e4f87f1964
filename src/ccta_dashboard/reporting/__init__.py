"""Reporting sub-package: number formatting and chart adapters.

Import :mod:`ccta_dashboard.reporting.charts` directly; it depends on the
classification layer, which itself uses the formatters here.
"""
