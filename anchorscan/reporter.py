"""
anchorscan/reporter.py
══════════════════════

Output of diagnostics for the command line.

Three formats:

  text   — Rust-style colourful blocks on a terminal (termcolor), one
           GCC-style line per diagnostic otherwise
  json   — one JSON document with every diagnostic and the scan summary
  sarif  — a SARIF 2.1.0 log for code-scanning integrations

Usage::

    with Reporter(sys.stdout, fmt="text") as rep:
        for diag in diagnostics:
            rep.report(diag)
    # finish() is called automatically
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union

from termcolor import colored

from . import __version__
from .diagnostics import Diagnostic, Severity

TOOL_NAME = "anchorscan"
FORMATS = ("text", "json", "sarif")


@dataclass
class ReporterStats:
    """Aggregate counts per severity."""
    error: int = 0
    warning: int = 0
    information: int = 0
    hint: int = 0

    def record(self, severity: Severity) -> None:
        setattr(self, severity.label, getattr(self, severity.label) + 1)

    @property
    def total(self) -> int:
        return self.error + self.warning + self.information + self.hint

    def summary_line(self) -> str:
        parts: List[str] = []
        if self.error:
            parts.append(f"{self.error} error{'s' if self.error != 1 else ''}")
        if self.warning:
            parts.append(f"{self.warning} warning{'s' if self.warning != 1 else ''}")
        if self.information:
            parts.append(f"{self.information} info")
        if self.hint:
            parts.append(f"{self.hint} hint{'s' if self.hint != 1 else ''}")
        if not parts:
            return "no diagnostics emitted"
        return "; ".join(parts) + f" ({self.total} total)"


# ═════════════════════════════════════════════════════════════════════════
#  TERMINAL RENDERER  (Rust-style colourful output)
# ═════════════════════════════════════════════════════════════════════════

class _TerminalRenderer:
    """Render diagnostics to a terminal with colours."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._sources: Dict[str, List[str]] = {}

    def render(self, diag: Diagnostic) -> None:
        lines: List[str] = []

        sev_str = colored(f"{diag.severity.label}[{diag.code}]", diag.severity.color, attrs=["bold"])
        first, *rest = diag.message.splitlines() or [""]
        lines.append(f"{sev_str}: {colored(first, 'white', attrs=['bold'])}")

        arrow = colored("-->", "blue", attrs=["bold"])
        lines.append(f"  {arrow} {diag.file_path or '<text>'}:{diag.range}")
        lines.extend(self._render_excerpt(diag))

        for extra in rest:
            prefix = colored("help", "green", attrs=["bold"])
            lines.append(f"  = {prefix}: {extra}")

        for info in diag.related_information:
            prefix = colored("note", "cyan", attrs=["bold"])
            lines.append(f"  = {prefix}: {info.message}")
            lines.append(f"    {arrow} {info.file_path or diag.file_path or '<text>'}:{info.range}")

        lines.append("")
        self._stream.write("\n".join(lines) + "\n")
        self._stream.flush()

    def _render_excerpt(self, diag: Diagnostic) -> List[str]:
        source = self._source_lines(diag.file_path)
        row = diag.range.start.line
        if row >= len(source):
            return []
        line_num = str(row + 1)
        gutter = " " * len(line_num)
        pipe = colored("|", "blue", attrs=["bold"])
        text = source[row]

        start = diag.range.start.character
        if diag.range.end.line == row:
            end = diag.range.end.character
        else:
            end = len(text)
        marker = colored("^" * max(end - start, 1), diag.severity.color, attrs=["bold"])
        return [
            f" {gutter} {pipe}",
            f" {colored(line_num, 'blue', attrs=['bold'])} {pipe} {text}",
            f" {gutter} {pipe} {' ' * start}{marker}",
        ]

    def _source_lines(self, file_path: str) -> List[str]:
        if not file_path:
            return []
        if file_path not in self._sources:
            try:
                text = Path(file_path).read_text(encoding="utf-8", errors="replace")
                self._sources[file_path] = text.splitlines()
            except OSError:
                self._sources[file_path] = []
        return self._sources[file_path]


# ═════════════════════════════════════════════════════════════════════════
#  PLAIN RENDERER  (for log files / non-TTY)
# ═════════════════════════════════════════════════════════════════════════

class _PlainRenderer:
    """Non-coloured renderer — one GCC-style line per diagnostic."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        self._stream.write(diag.to_gcc_format().replace("\n", " ") + "\n")
        for info in diag.related_information:
            where = f"{info.file_path or diag.file_path or '<text>'}:{info.range}"
            self._stream.write(f"  note [{where}]: {info.message}\n")
        self._stream.flush()


# ═════════════════════════════════════════════════════════════════════════
#  SARIF 2.1.0 BUILDER
# ═════════════════════════════════════════════════════════════════════════

def _region(diag_range) -> Dict[str, int]:
    return {
        "startLine": diag_range.start.line + 1,
        "startColumn": diag_range.start.character + 1,
        "endLine": diag_range.end.line + 1,
        "endColumn": diag_range.end.character + 1,
    }


class _SarifBuilder:
    """Accumulates diagnostics into a SARIF 2.1.0 log."""

    SARIF_VERSION = "2.1.0"
    SARIF_SCHEMA = (
        "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
        "Schemata/sarif-schema-2.1.0.json"
    )

    def __init__(self) -> None:
        self._results: List[Dict[str, Any]] = []
        self._rules: Dict[str, Dict[str, Any]] = {}

    def add_rule(self, rule_id: str, name: str, description: str) -> None:
        self._rules[rule_id] = {
            "id": rule_id,
            "name": name,
            "shortDescription": {"text": description},
        }

    def add(self, diag: Diagnostic) -> None:
        if diag.code not in self._rules:
            self._rules[diag.code] = {
                "id": diag.code,
                "shortDescription": {"text": diag.message.splitlines()[0]},
            }

        result: Dict[str, Any] = {
            "ruleId": diag.code,
            "level": diag.severity.sarif_level,
            "message": {"text": diag.message},
            "locations": [{
                "physicalLocation": {
                    "artifactLocation": {"uri": diag.file_path or "<text>"},
                    "region": _region(diag.range),
                }
            }],
        }

        related: List[Dict[str, Any]] = []
        for idx, info in enumerate(diag.related_information):
            related.append({
                "id": idx,
                "message": {"text": info.message},
                "physicalLocation": {
                    "artifactLocation": {"uri": info.file_path or diag.file_path or "<text>"},
                    "region": _region(info.range),
                },
            })
        if related:
            result["relatedLocations"] = related

        self._results.append(result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "$schema": self.SARIF_SCHEMA,
            "version": self.SARIF_VERSION,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": TOOL_NAME,
                            "version": __version__,
                            "rules": list(self._rules.values()),
                        }
                    },
                    "results": self._results,
                }
            ],
        }


# ═════════════════════════════════════════════════════════════════════════
#  REPORTER
# ═════════════════════════════════════════════════════════════════════════

class Reporter:
    """
    Central diagnostic dispatcher.

    Parameters
    ----------
    stream : where output goes
    fmt    : ``"text"``, ``"json"`` or ``"sarif"``
    colour : force colour on or off; default is "if *stream* is a TTY"
    """

    def __init__(
        self,
        stream: TextIO = sys.stdout,
        fmt: str = "text",
        colour: Optional[bool] = None,
    ) -> None:
        if fmt not in FORMATS:
            raise ValueError(f"unknown output format {fmt!r}")
        self.fmt = fmt
        self.stats = ReporterStats()
        self._stream = stream
        self._diagnostics: List[Diagnostic] = []
        self._summary: Optional[Dict[str, Any]] = None
        self._sarif = _SarifBuilder() if fmt == "sarif" else None

        self._renderer: Optional[Union[_TerminalRenderer, _PlainRenderer]] = None
        if fmt == "text":
            use_colour = colour if colour is not None else hasattr(stream, "isatty") and stream.isatty()
            self._renderer = _TerminalRenderer(stream) if use_colour else _PlainRenderer(stream)

    def __enter__(self) -> Reporter:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None:
            self.finish()

    def describe_rule(self, rule_id: str, name: str, description: str) -> None:
        """Register rule metadata for SARIF output; ignored by other formats."""
        if self._sarif is not None:
            self._sarif.add_rule(rule_id, name, description)

    def set_summary(self, summary: Dict[str, Any]) -> None:
        self._summary = summary

    def report(self, diag: Diagnostic) -> None:
        self.stats.record(diag.severity)
        self._diagnostics.append(diag)
        if self._renderer is not None:
            self._renderer.render(diag)
        if self._sarif is not None:
            self._sarif.add(diag)

    def finish(self) -> ReporterStats:
        """Write the summary (text) or the whole document (json, sarif)."""
        if self.fmt == "text":
            summary = self.stats.summary_line()
            if isinstance(self._renderer, _TerminalRenderer):
                color = "red" if self.stats.error else "yellow" if self.stats.total else "green"
                self._stream.write(colored(f"  ╰─ {summary}", color, attrs=["bold"]) + "\n")
            else:
                self._stream.write(f"  {summary}\n")
        elif self.fmt == "json":
            document: Dict[str, Any] = {
                "diagnostics": [d.to_dict() for d in self._diagnostics],
            }
            if self._summary is not None:
                document["summary"] = self._summary
            self._stream.write(json.dumps(document, indent=2) + "\n")
        else:
            self._stream.write(json.dumps(self._sarif.to_dict(), indent=2) + "\n")
        self._stream.flush()
        return self.stats


__all__ = ["Reporter", "ReporterStats", "FORMATS", "TOOL_NAME"]
