"""Classification sub-package.

Maps raw metric values to ordinal risk tiers and colour variables, and
paints FFRct on its continuous ramp.
"""

from __future__ import annotations

from ccta_dashboard.classification.ffrct import (
    FFRCT_RAMP,
    ffrct_ramp_color,
    ffrct_ramp_index,
    lowest_ffrct,
)
from ccta_dashboard.classification.thresholds import (
    RiskColor,
    Tier,
    classify,
    classify_value,
    legend_entries,
    risk_color,
    tier_color,
    tier_name,
)

__all__ = [
    "FFRCT_RAMP",
    "RiskColor",
    "Tier",
    "classify",
    "classify_value",
    "ffrct_ramp_color",
    "ffrct_ramp_index",
    "legend_entries",
    "lowest_ffrct",
    "risk_color",
    "tier_color",
    "tier_name",
]
