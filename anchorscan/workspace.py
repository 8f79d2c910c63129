"""
anchorscan/workspace.py
═══════════════════════

Whole-workspace scan: every Rust source file under a root (build output,
editor folders and test files excluded) is fed through a
:class:`~anchorscan.registry.DetectorRegistry`, and ``Anchor.toml`` /
``Cargo.toml`` files are collected alongside.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .diagnostics import Diagnostic, Severity
from .registry import DetectorRegistry
from .walker import PathLike, is_test_path, iter_files, iter_rust_files, read_text

_log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, Path], None]

_ANCHOR_PROGRAM_MARKERS = ("anchor_lang", "anchor_spl", "#[program]", "#[derive(Accounts)]")


def is_anchor_program(content: str) -> bool:
    return any(marker in content for marker in _ANCHOR_PROGRAM_MARKERS)


@dataclass
class RustFileInfo:
    path: Path
    diagnostics: List[Diagnostic] = field(default_factory=list)
    is_anchor_program: bool = False
    is_test_file: bool = False


@dataclass
class AnchorConfigInfo:
    path: Path
    content: str


@dataclass
class CargoFileInfo:
    path: Path
    content: str
    is_workspace: bool = False


@dataclass
class ScanSummary:
    """
    Aggregate counts of a scan.

    Attributes
    ----------
    files_scanned   : number of Rust files analyzed
    flagged_files   : number of files with at least one diagnostic
    total_issues    : number of diagnostics over all files
    per_file_issues : ``(path, count)`` for every flagged file
    """
    files_scanned: int = 0
    flagged_files: int = 0
    total_issues: int = 0
    per_file_issues: List[Tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filesScanned": self.files_scanned,
            "flaggedFiles": self.flagged_files,
            "totalIssueCount": self.total_issues,
            "perFileIssues": [
                {"path": path, "issues": count} for path, count in self.per_file_issues
            ],
        }


@dataclass
class ScanResult:
    rust_files: List[RustFileInfo] = field(default_factory=list)
    anchor_configs: List[AnchorConfigInfo] = field(default_factory=list)
    cargo_files: List[CargoFileInfo] = field(default_factory=list)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [d for info in self.rust_files for d in info.diagnostics]

    def total_issues(self) -> int:
        return sum(len(info.diagnostics) for info in self.rust_files)

    def files_with_issues(self) -> List[RustFileInfo]:
        return [info for info in self.rust_files if info.diagnostics]

    def anchor_program_files(self) -> List[RustFileInfo]:
        return [info for info in self.rust_files if info.is_anchor_program]

    def count(self, severity: Severity) -> int:
        return sum(1 for d in self.diagnostics if d.severity is severity)

    def summary(self) -> ScanSummary:
        flagged = self.files_with_issues()
        return ScanSummary(
            files_scanned=len(self.rust_files),
            flagged_files=len(flagged),
            total_issues=self.total_issues(),
            per_file_issues=[(str(info.path), len(info.diagnostics)) for info in flagged],
        )


class WorkspaceScanner:
    """
    Scans a workspace root with a detector registry.

    Usage
    -----
    >>> scanner = WorkspaceScanner("path/to/anchor-project")
    >>> result = scanner.scan(build_default_registry())
    >>> result.summary().total_issues
    """

    def __init__(self, root: PathLike, progress: Optional[ProgressCallback] = None) -> None:
        self.root = Path(root)
        self.progress = progress

    def scan(self, registry: DetectorRegistry) -> ScanResult:
        _log.info("Starting workspace scan from %s", self.root)
        result = ScanResult()
        if not self.root.is_dir():
            _log.warning("Workspace root %s is not a directory, skipping scan", self.root)
            return result

        self._scan_rust_files(registry, result)
        self._scan_anchor_configs(result)
        self._scan_cargo_files(result)

        _log.info(
            "Workspace scan completed. Found %d Rust files, %d Anchor configs, %d Cargo files",
            len(result.rust_files), len(result.anchor_configs), len(result.cargo_files),
        )
        return result

    def scan_file(self, path: PathLike, registry: DetectorRegistry) -> Optional[RustFileInfo]:
        """Analyze one file; ``None`` if it cannot be read as UTF-8."""
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            _log.warning("Failed to read file %s: %s", path, exc)
            return None
        _log.debug("Analyzing Rust file: %s", path)
        diagnostics = registry.analyze(content, str(path))
        if diagnostics:
            _log.info("Found %d issues in file: %s", len(diagnostics), path)
        return RustFileInfo(
            path=path,
            diagnostics=diagnostics,
            is_anchor_program=is_anchor_program(content),
            is_test_file=is_test_path(path, self.root),
        )

    def _scan_rust_files(self, registry: DetectorRegistry, result: ScanResult) -> None:
        paths = list(iter_rust_files(self.root, skip_tests=True))
        for i, path in enumerate(paths, 1):
            if self.progress is not None:
                self.progress(i, len(paths), path)
            info = self.scan_file(path, registry)
            if info is not None:
                result.rust_files.append(info)

    def _scan_anchor_configs(self, result: ScanResult) -> None:
        for path in iter_files(self.root, name="Anchor.toml"):
            content = read_text(path)
            if content is not None:
                _log.debug("Found Anchor config: %s", path)
                result.anchor_configs.append(AnchorConfigInfo(path, content))

    def _scan_cargo_files(self, result: ScanResult) -> None:
        for path in iter_files(self.root, name="Cargo.toml"):
            content = read_text(path)
            if content is not None:
                _log.debug("Found Cargo config: %s", path)
                result.cargo_files.append(CargoFileInfo(path, content, "[workspace]" in content))


__all__ = [
    "RustFileInfo",
    "AnchorConfigInfo",
    "CargoFileInfo",
    "ScanSummary",
    "ScanResult",
    "WorkspaceScanner",
    "is_anchor_program",
]
