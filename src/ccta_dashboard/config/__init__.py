"""Configuration sub-package.

Quick usage::

    from ccta_dashboard.config import get_config

    cfg = get_config()
    print(cfg["charts"]["stenosis"]["max"])
"""

from __future__ import annotations

from ccta_dashboard.config.settings import get_config, get_typed_config

__all__ = [
    "get_config",
    "get_typed_config",
]
