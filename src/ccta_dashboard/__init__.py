"""CCTA dashboard computation core.

Risk classification, derived metrics and serial (current-vs-prior)
comparison for coronary CT angiography plaque reports, plus the adapters
that turn those results into chart-ready values.
"""

from __future__ import annotations

__version__ = "0.1.0"
