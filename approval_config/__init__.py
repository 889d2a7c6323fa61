"""
approval_config -- single public entrypoint for approval thresholds.

Responsibility:
    Provides the runtime ``ThresholdRegistry`` through
    ``get_threshold_registry()``.  YAML loading is internal tooling and is
    not called directly by services.

Architecture position:
    Configuration -- sits above ``approval_kernel.domain`` (whose value
    types it produces) and below ``approval_services``.  The kernel's
    workflow service receives a compiled registry; it never reads files.

Failure modes:
    - ``FileNotFoundError`` -- the requested YAML file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``KeyError`` / ``ValueError`` -- structural or value errors.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from approval_config.loader import load_yaml_file, parse_threshold_set
from approval_config.registry import ThresholdRegistry

__all__ = [
    "DEFAULT_THRESHOLDS_PATH",
    "THRESHOLDS_PATH_ENV",
    "ThresholdRegistry",
    "get_threshold_registry",
    "load_threshold_registry",
]

_logger = logging.getLogger("approval_kernel.config")

THRESHOLDS_PATH_ENV = "APPROVAL_THRESHOLDS_PATH"
DEFAULT_THRESHOLDS_PATH = Path(__file__).parent / "thresholds" / "default.yaml"


def load_threshold_registry(path: Path) -> ThresholdRegistry:
    """Load and compile one threshold file (uncached)."""
    threshold_set = parse_threshold_set(load_yaml_file(path))
    registry = ThresholdRegistry.from_set(threshold_set)
    _logger.info(
        "threshold_registry_loaded",
        extra={
            "path": str(path),
            "threshold_set": registry.name,
            "threshold_set_version": registry.version,
            "checksum": registry.checksum,
            "type_count": len(registry),
        },
    )
    return registry


@lru_cache(maxsize=8)
def _cached_registry(path: Path) -> ThresholdRegistry:
    return load_threshold_registry(path)


def get_threshold_registry(path: str | Path | None = None) -> ThresholdRegistry:
    """Return the active threshold registry.

    Resolution order: ``path`` argument, then the ``APPROVAL_THRESHOLDS_PATH``
    environment variable, then the packaged default set.  Each resolved
    file is loaded once per process.
    """
    if path is None:
        path = os.environ.get(THRESHOLDS_PATH_ENV) or DEFAULT_THRESHOLDS_PATH
    return _cached_registry(Path(path).resolve())
