"""
anchorscan/registry.py
══════════════════════

Ordered collection of detectors with per-detector configuration.

Usage
-----
>>> registry = build_default_registry()
>>> registry.disable("UNSAFE_ARITHMETIC")
>>> registry.set_severity_override("MISSING_SIGNER", Severity.ERROR)
>>> diagnostics = registry.analyze(text, "programs/vault/src/lib.rs")

Detectors run in registration order.  Their diagnostics are concatenated
without deduplication; a configured severity override replaces the
severity of every diagnostic the detector returns.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from .detectors import ALL_DETECTORS, Detector
from .diagnostics import Diagnostic, Severity

_log = logging.getLogger(__name__)


@dataclass
class DetectorConfig:
    """
    Runtime configuration of one detector.

    Attributes
    ----------
    enabled           : disabled detectors are never run
    severity_override : replaces the detector's severity when set
    custom_patterns   : when non-empty, the detector only runs on text
                        containing at least one of these substrings
    """
    enabled: bool = True
    severity_override: Optional[Severity] = None
    custom_patterns: Sequence[str] = ()

    @classmethod
    def disabled(cls) -> DetectorConfig:
        return cls(enabled=False)

    def with_severity(self, severity: Severity) -> DetectorConfig:
        return DetectorConfig(self.enabled, severity, tuple(self.custom_patterns))

    def admits(self, text: str) -> bool:
        if not self.custom_patterns:
            return True
        return any(pattern in text for pattern in self.custom_patterns)


@dataclass(frozen=True)
class DetectorInfo:
    id: str
    name: str
    description: str
    enabled: bool
    default_severity: Severity

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "defaultSeverity": self.default_severity.label,
        }


@dataclass
class DetectorStats:
    total_detectors: int = 0
    enabled_detectors: int = 0
    runs: Dict[str, int] = field(default_factory=dict)
    elapsed_ms: Dict[str, float] = field(default_factory=dict)


class DetectorRegistry:
    """Detectors plus their :class:`DetectorConfig`, keyed by detector id."""

    def __init__(self) -> None:
        self._detectors: List[Detector] = []
        self._configs: Dict[str, DetectorConfig] = {}
        self._stats = DetectorStats()

    # ── registration ─────────────────────────────────────────────────

    def register(self, detector: Detector, config: Optional[DetectorConfig] = None) -> None:
        if detector.id in self._configs:
            _log.debug("replacing detector %s", detector.id)
            self._detectors = [d for d in self._detectors if d.id != detector.id]
        self._detectors.append(detector)
        self._configs[detector.id] = replace(config) if config is not None else DetectorConfig()

    def get(self, detector_id: str) -> Optional[Detector]:
        for detector in self._detectors:
            if detector.id == detector_id:
                return detector
        return None

    def __contains__(self, detector_id: str) -> bool:
        return detector_id in self._configs

    # ── configuration ────────────────────────────────────────────────

    def config(self, detector_id: str) -> Optional[DetectorConfig]:
        return self._configs.get(detector_id)

    def configure(self, detector_id: str, config: DetectorConfig) -> None:
        if detector_id not in self._configs:
            _log.debug("configure: unknown detector %s", detector_id)
            return
        self._configs[detector_id] = replace(config)

    def set_enabled(self, detector_id: str, enabled: bool) -> None:
        config = self._configs.get(detector_id)
        if config is None:
            _log.debug("set_enabled: unknown detector %s", detector_id)
            return
        config.enabled = enabled

    def enable(self, detector_id: str) -> None:
        self.set_enabled(detector_id, True)

    def disable(self, detector_id: str) -> None:
        self.set_enabled(detector_id, False)

    def set_severity_override(self, detector_id: str, severity: Optional[Severity]) -> None:
        config = self._configs.get(detector_id)
        if config is None:
            _log.debug("set_severity_override: unknown detector %s", detector_id)
            return
        config.severity_override = severity

    # ── analysis ─────────────────────────────────────────────────────

    def analyze(self, text: str, file_path: Optional[str] = None) -> List[Diagnostic]:
        """
        Run every applicable detector over *text*.

        A detector that raises is logged and skipped; the others still run.
        """
        results: List[Diagnostic] = []
        for detector in self._detectors:
            config = self._configs[detector.id]
            if not config.enabled:
                continue
            if not detector.should_run(text) or not config.admits(text):
                continue

            t0 = time.monotonic()
            try:
                diagnostics = detector.analyze(text, file_path)
            except Exception:
                _log.exception("detector %s failed on %s", detector.id, file_path or "<text>")
                continue
            elapsed_ms = (time.monotonic() - t0) * 1000.0
            self._stats.runs[detector.id] = self._stats.runs.get(detector.id, 0) + 1
            self._stats.elapsed_ms[detector.id] = (
                self._stats.elapsed_ms.get(detector.id, 0.0) + elapsed_ms
            )
            _log.debug("%s: %d findings (%.1fms)", detector.id, len(diagnostics), elapsed_ms)

            if config.severity_override is not None:
                diagnostics = [d.with_severity(config.severity_override) for d in diagnostics]
            if file_path:
                diagnostics = [d.with_file(file_path) for d in diagnostics]
            results.extend(diagnostics)
        return results

    analyze_file = analyze

    # ── introspection ────────────────────────────────────────────────

    def list_detectors(self) -> List[DetectorInfo]:
        infos = []
        for detector in self._detectors:
            identity = detector.identity()
            infos.append(DetectorInfo(
                id=identity.id,
                name=identity.name,
                description=identity.description,
                enabled=self._configs[detector.id].enabled,
                default_severity=identity.default_severity,
            ))
        return infos

    def count(self) -> int:
        return len(self._detectors)

    def enabled_count(self) -> int:
        return sum(1 for d in self._detectors if self._configs[d.id].enabled)

    def stats(self) -> DetectorStats:
        self._stats.total_detectors = self.count()
        self._stats.enabled_detectors = self.enabled_count()
        return self._stats

    def __repr__(self) -> str:
        return f"<DetectorRegistry {self.enabled_count()}/{self.count()} enabled>"


class DetectorRegistryBuilder:
    """
    Fluent construction of a registry.

    >>> registry = (DetectorRegistryBuilder()
    ...             .with_detector(UnsafeArithmeticDetector())
    ...             .with_config("UNSAFE_ARITHMETIC", DetectorConfig.disabled())
    ...             .build())
    """

    def __init__(self) -> None:
        self._registry = DetectorRegistry()

    def with_detector(self, detector: Detector) -> DetectorRegistryBuilder:
        self._registry.register(detector)
        return self

    def with_config(self, detector_id: str, config: DetectorConfig) -> DetectorRegistryBuilder:
        self._registry.configure(detector_id, config)
        return self

    def build(self) -> DetectorRegistry:
        return self._registry


def build_default_registry() -> DetectorRegistry:
    builder = DetectorRegistryBuilder()
    for detector_cls in ALL_DETECTORS:
        builder.with_detector(detector_cls())
    return builder.build()


__all__ = [
    "DetectorConfig",
    "DetectorInfo",
    "DetectorStats",
    "DetectorRegistry",
    "DetectorRegistryBuilder",
    "build_default_registry",
]
