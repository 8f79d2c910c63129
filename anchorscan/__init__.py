"""
anchorscan — Static Security Analysis for Anchor Programs
=========================================================

Detectors for common account-permission mistakes in Solana programs
written with the Anchor framework, working directly on Rust source
through the tree-sitter Rust grammar.

Core modules
------------
diagnostics
    Severity, ranges and the Diagnostic record.
syntax
    tree-sitter wrapper: parsing, node text and character-based ranges.
anchor
    Accounts contexts, account fields and instruction handlers.
detectors
    The detector contract and the concrete detectors.
registry
    Ordered detector collection with per-detector configuration.
workspace
    Whole-workspace scanning and summaries.

Quick start
-----------
>>> from anchorscan import build_default_registry
>>> registry = build_default_registry()
>>> for diag in registry.analyze(source_text, "programs/vault/src/lib.rs"):
...     print(diag.to_gcc_format())
"""

from __future__ import annotations

__version__ = "0.3.0"

from .diagnostics import (
    Diagnostic,
    DiagnosticBuilder,
    Position,
    Range,
    RelatedInformation,
    Severity,
)
from .errors import AnchorScanError, ConfigError, SourceParseError
from .registry import (
    DetectorConfig,
    DetectorInfo,
    DetectorRegistry,
    DetectorRegistryBuilder,
    build_default_registry,
)
from .workspace import ScanResult, ScanSummary, WorkspaceScanner

__all__ = [
    "__version__",
    "Diagnostic",
    "DiagnosticBuilder",
    "Position",
    "Range",
    "RelatedInformation",
    "Severity",
    "AnchorScanError",
    "ConfigError",
    "SourceParseError",
    "DetectorConfig",
    "DetectorInfo",
    "DetectorRegistry",
    "DetectorRegistryBuilder",
    "build_default_registry",
    "ScanResult",
    "ScanSummary",
    "WorkspaceScanner",
]
