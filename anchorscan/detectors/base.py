"""
anchorscan/detectors/base.py
════════════════════════════

Abstract base class for all detectors.

Lifecycle
─────────
Every call to :meth:`Detector.analyze` goes through the same steps:

  1. ``reset()``     — drop any state left by a previous call
  2. parse the text  — a parse failure ends the call with ``[]``
  3. ``collect(tree)`` — walk the tree and ``_emit`` findings
  4. return the emitted diagnostics

Subclass Contract
─────────────────
  - Override ``id``, ``name``, ``description``, ``message`` and
    ``default_severity``
  - Implement ``collect()``
  - Optionally override ``should_run()`` for a sharper pre-filter and
    ``reset()`` for per-call state (call ``super().reset()``)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, List, Optional

from ..diagnostics import Diagnostic, DiagnosticBuilder, Range, Severity
from ..errors import SourceParseError
from ..syntax import SourceTree, parse_source

_log = logging.getLogger(__name__)

ANCHOR_MARKERS = ("anchor_lang", "anchor_spl")


def mentions_anchor(text: str) -> bool:
    return any(marker in text for marker in ANCHOR_MARKERS)


@dataclass(frozen=True)
class DetectorIdentity:
    """Static metadata describing a detector."""
    id: str
    name: str
    description: str
    default_severity: Severity
    message: str


class Detector(ABC):
    """
    A single-purpose analysis over one source file.

    Detectors hold state only for the duration of one ``analyze`` call.
    """

    # ── Metadata (override in subclasses) ────────────────────────────

    id: ClassVar[str] = "BASE_DETECTOR"
    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    message: ClassVar[str] = ""
    default_severity: ClassVar[Severity] = Severity.WARNING

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []
        self._tree: Optional[SourceTree] = None
        self.file_path: Optional[str] = None

    def identity(self) -> DetectorIdentity:
        return DetectorIdentity(
            id=self.id,
            name=self.name,
            description=self.description,
            default_severity=self.default_severity,
            message=self.message,
        )

    def should_run(self, text: str) -> bool:
        """Cheap pre-filter; the default accepts any Anchor source."""
        return mentions_anchor(text)

    def reset(self) -> None:
        self._diagnostics = []
        self._tree = None
        self.file_path = None

    def analyze(self, text: str, file_path: Optional[str] = None) -> List[Diagnostic]:
        """
        Analyze *text* and return the findings.

        Text that does not parse yields an empty list.
        """
        self.reset()
        self.file_path = file_path
        try:
            self._tree = parse_source(text, file_path)
        except SourceParseError as exc:
            _log.debug("%s skipped: %s", self.id, exc)
            return []
        try:
            self.collect(self._tree)
        except RecursionError:
            _log.warning("%s gave up on %s: nesting too deep", self.id, file_path or "<text>")
            return []
        diagnostics = list(self._diagnostics)
        self.reset()
        return diagnostics

    @abstractmethod
    def collect(self, tree: SourceTree) -> None:
        """Walk *tree* and call ``_emit`` for every finding."""
        ...

    def _emit(
        self,
        range: Range,
        message: Optional[str] = None,
        severity: Optional[Severity] = None,
    ) -> None:
        _log.debug("%s: %s at %s", self.id, self.file_path or "<text>", range)
        self._diagnostics.append(DiagnosticBuilder.create(
            range,
            message or self.message,
            severity or self.default_severity,
            self.id,
        ))

    def _emit_all(self, diagnostics) -> None:
        for diag in diagnostics:
            _log.debug("%s: %s at %s", self.id, self.file_path or "<text>", diag.range)
            self._diagnostics.append(diag)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.id}'>"
