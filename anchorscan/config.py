"""
anchorscan/config.py
════════════════════

JSON configuration for the detector registry.

File format (``anchorscan.json`` at the scan root, or ``--config``)::

    {
      "detectors": {
        "UNSAFE_ARITHMETIC": {"enabled": false},
        "MISSING_SIGNER":    {"severity": "error"},
        "MISSING_INITSPACE": {"patterns": ["#[account]"]}
      }
    }

Every key of a detector entry is optional.  Unknown detector ids are
ignored with a warning so that one config file can serve several
versions of the tool.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .diagnostics import Severity
from .errors import ConfigError
from .registry import DetectorConfig, DetectorRegistry
from .walker import PathLike

_log = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "anchorscan.json"

_KNOWN_KEYS = frozenset({"enabled", "severity", "patterns"})


def parse_severity(value: Any, where: str = "severity") -> Severity:
    if not isinstance(value, str):
        raise ConfigError(f"{where}: expected a severity name, got {value!r}")
    severity = Severity.from_string(value)
    if severity is None:
        raise ConfigError(
            f"{where}: unknown severity {value!r} "
            f"(expected one of {', '.join(s.label for s in Severity)})"
        )
    return severity


def _detector_config(detector_id: str, entry: Any) -> DetectorConfig:
    if not isinstance(entry, Mapping):
        raise ConfigError(f"detectors.{detector_id}: expected an object")
    unknown = set(entry) - _KNOWN_KEYS
    if unknown:
        _log.warning("detectors.%s: ignoring unknown keys %s", detector_id, sorted(unknown))

    enabled = entry.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError(f"detectors.{detector_id}.enabled: expected true or false")

    severity = None
    if entry.get("severity") is not None:
        severity = parse_severity(entry["severity"], f"detectors.{detector_id}.severity")

    patterns = entry.get("patterns", [])
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise ConfigError(f"detectors.{detector_id}.patterns: expected a list of strings")

    return DetectorConfig(enabled=enabled, severity_override=severity, custom_patterns=tuple(patterns))


def parse_config(data: Any) -> Dict[str, DetectorConfig]:
    """Validate decoded JSON and build one :class:`DetectorConfig` per id."""
    if not isinstance(data, Mapping):
        raise ConfigError("configuration must be a JSON object")
    detectors = data.get("detectors", {})
    if not isinstance(detectors, Mapping):
        raise ConfigError("'detectors' must be an object keyed by detector id")
    return {
        detector_id: _detector_config(detector_id, entry)
        for detector_id, entry in detectors.items()
    }


def load_config(path: PathLike) -> Dict[str, DetectorConfig]:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}:{exc.lineno}: invalid JSON: {exc.msg}") from exc
    _log.info("Loaded configuration from %s", path)
    return parse_config(data)


def find_default_config(root: PathLike) -> Optional[Path]:
    candidate = Path(root) / DEFAULT_CONFIG_NAME
    return candidate if candidate.is_file() else None


def apply_config(registry: DetectorRegistry, configs: Mapping[str, DetectorConfig]) -> None:
    for detector_id, config in configs.items():
        if detector_id not in registry:
            _log.warning("configuration names unknown detector %s", detector_id)
            continue
        registry.configure(detector_id, config)


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "parse_severity",
    "parse_config",
    "load_config",
    "find_default_config",
    "apply_config",
]
