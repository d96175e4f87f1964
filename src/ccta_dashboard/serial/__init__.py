"""Serial comparison sub-package: current-vs-prior change and the change matrix."""

from __future__ import annotations

from ccta_dashboard.serial.comparison import SerialComparisonEngine
from ccta_dashboard.serial.matrix import ChangeMatrix

__all__ = [
    "ChangeMatrix",
    "SerialComparisonEngine",
]
