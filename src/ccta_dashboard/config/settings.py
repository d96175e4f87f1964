"""Settings module -- single entry point for application configuration.

:func:`get_config` returns the merged configuration dictionary.  It loads
``config/default.yaml``, overlays ``config/local.yaml`` when that file
exists, and finally applies any ``CCTA_`` prefixed environment variable
overrides.
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Any

from ccta_dashboard.domain.models import AppConfig

# Project root is two levels up from ``src/ccta_dashboard/config/``.
_PROJECT_ROOT = Path(__file__).resolve().parents[3]

_CONFIG_DIR = _PROJECT_ROOT / "config"
_DEFAULT_FILE = "default.yaml"
_OVERLAY_FILE = "local.yaml"
ENV_PREFIX = "CCTA_"


def _load() -> AppConfig:
    overlay_path = _CONFIG_DIR / _OVERLAY_FILE
    return AppConfig.load(
        default_path=_CONFIG_DIR / _DEFAULT_FILE,
        overlay_path=overlay_path if overlay_path.exists() else None,
        env_prefix=ENV_PREFIX,
    )


@functools.lru_cache(maxsize=1)
def get_config() -> dict[str, Any]:
    """Return the fully merged configuration dictionary.

    The result is cached so that repeated calls within the same process are
    essentially free.  Call ``get_config.cache_clear()`` after changing the
    environment.

    Resolution order:

    1. ``config/default.yaml``
    2. ``config/local.yaml`` if the file exists
    3. Environment variables with ``CCTA_`` prefix

    Returns
    -------
    dict[str, Any]
        The merged configuration tree.
    """
    return _load().data


def get_typed_config() -> AppConfig:
    """Return the cached configuration wrapped in :class:`AppConfig`.

    Use this for the dashboard accessors (``chart``, ``palette_hex``, ...)
    instead of walking the raw dictionary.
    """
    return AppConfig(data=get_config())
