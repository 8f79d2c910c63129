"""
anchorscan/diagnostics.py
═════════════════════════

Diagnostic model shared by every detector, the registry and the reporters.

Positions are zero-based (line, character), the convention editors use
when publishing diagnostics.  Tree-sitter reports zero-based rows and
byte columns; :mod:`anchorscan.syntax` converts byte columns into
character columns before a :class:`Range` is built, so every range
resolves to a valid offset in the owning file's text.

A diagnostic may carry *related information*: secondary
``(location, message)`` pairs pointing at a causally connected place in
the source.  :meth:`DiagnosticBuilder.linked_pair` creates two diagnostics
that reference each other, used for "mutated here" / "declared here"
findings.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

DEFAULT_SOURCE = "anchorscan"


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — SEVERITY
# ═════════════════════════════════════════════════════════════════════════

class Severity(enum.Enum):
    """
    Diagnostic severity levels.

    Each carries:
      • label       — lower-case name used in text and JSON output
      • lsp_code    — numeric ``DiagnosticSeverity`` of the editor protocol
      • color       — termcolor colour name
      • sarif_level — SARIF 2.1.0 ``level`` string
    """

    ERROR = ("error", 1, "red", "error")
    WARNING = ("warning", 2, "yellow", "warning")
    INFORMATION = ("information", 3, "cyan", "note")
    HINT = ("hint", 4, "white", "note")

    def __init__(self, label: str, lsp_code: int, color: str, sarif_level: str) -> None:
        self.label = label
        self.lsp_code = lsp_code
        self.color = color
        self.sarif_level = sarif_level

    @classmethod
    def from_string(cls, s: str) -> Optional[Severity]:
        """Parse a severity name (case-insensitive); ``None`` if unknown."""
        s_low = s.strip().lower()
        aliases = {"info": "information", "warn": "warning", "err": "error"}
        s_low = aliases.get(s_low, s_low)
        for member in cls:
            if member.label == s_low:
                return member
        return None


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — LOCATIONS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, order=True)
class Position:
    """A zero-based (line, character) point."""
    line: int = 0
    character: int = 0


@dataclass(frozen=True, order=True)
class Range:
    """A half-open span between two positions."""
    start: Position = Position()
    end: Position = Position()

    @classmethod
    def of(cls, start_line: int, start_col: int, end_line: int, end_col: int) -> Range:
        return cls(Position(start_line, start_col), Position(end_line, end_col))

    def contains(self, other: Range) -> bool:
        return self.start <= other.start and other.end <= self.end

    def to_dict(self) -> Dict[str, int]:
        return {
            "startLine": self.start.line,
            "startCol": self.start.character,
            "endLine": self.end.line,
            "endCol": self.end.character,
        }

    def __str__(self) -> str:
        return f"{self.start.line + 1}:{self.start.character + 1}"


@dataclass(frozen=True)
class RelatedInformation:
    """A secondary location attached to a diagnostic."""
    range: Range
    file_path: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range": self.range.to_dict(),
            "filePath": self.file_path,
            "message": self.message,
        }


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — DIAGNOSTIC
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Diagnostic:
    """
    A single finding.

    Attributes
    ----------
    range               : where the finding applies
    severity            : Severity
    code                : stable detector id (e.g. ``"MISSING_SIGNER"``)
    message             : human-readable description
    source              : producer name shown by editors
    related_information : secondary locations, possibly empty
    file_path           : file the range belongs to (filled by hosts)
    """
    range: Range
    severity: Severity
    code: str
    message: str
    source: str = DEFAULT_SOURCE
    related_information: Tuple[RelatedInformation, ...] = ()
    file_path: str = ""

    def with_severity(self, severity: Severity) -> Diagnostic:
        return replace(self, severity=severity)

    def with_file(self, file_path: str) -> Diagnostic:
        return replace(self, file_path=file_path)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the host-facing JSON shape."""
        result: Dict[str, Any] = {
            "range": self.range.to_dict(),
            "severity": self.severity.label,
            "code": self.code,
            "message": self.message,
            "source": self.source,
        }
        if self.file_path:
            result["filePath"] = self.file_path
        if self.related_information:
            result["relatedInformation"] = [
                info.to_dict() for info in self.related_information
            ]
        return result

    def to_json_str(self) -> str:
        return json.dumps(self.to_dict())

    def to_gcc_format(self) -> str:
        """GCC-style one-liner: ``file:line:col: severity: message [code]``."""
        where = f"{self.file_path or '<text>'}:{self.range}"
        return f"{where}: {self.severity.label}: {self.message} [{self.code}]"


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — BUILDER HELPERS
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticBuilder:
    """Factory helpers used by detectors."""

    @staticmethod
    def create(
        range: Range,
        message: str,
        severity: Severity,
        code: str,
        source: Optional[str] = None,
    ) -> Diagnostic:
        return Diagnostic(
            range=range,
            severity=severity,
            code=code,
            message=message,
            source=source or DEFAULT_SOURCE,
        )

    @staticmethod
    def linked_pair(
        primary_range: Range,
        primary_message: str,
        related_range: Range,
        related_message: str,
        primary_to_related: str,
        related_to_primary: str,
        severity: Severity,
        code: str,
        file_path: str = "",
    ) -> Tuple[Diagnostic, Diagnostic]:
        """
        Create two diagnostics that reference each other.

        The first points at *related_range* through its related
        information and the second points back at *primary_range*.
        """
        primary = Diagnostic(
            range=primary_range,
            severity=severity,
            code=code,
            message=primary_message,
            related_information=(
                RelatedInformation(related_range, file_path, primary_to_related),
            ),
        )
        related = Diagnostic(
            range=related_range,
            severity=severity,
            code=code,
            message=related_message,
            related_information=(
                RelatedInformation(primary_range, file_path, related_to_primary),
            ),
        )
        return primary, related


__all__ = [
    "Severity",
    "Position",
    "Range",
    "RelatedInformation",
    "Diagnostic",
    "DiagnosticBuilder",
    "DEFAULT_SOURCE",
]
