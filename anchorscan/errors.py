"""
anchorscan/errors.py
════════════════════

Exception hierarchy shared by the analyzer.

::

    AnchorScanError (base)
    ├── SourceParseError   - source text the Rust grammar could not parse
    └── ConfigError        - malformed configuration file or value

Detectors never let ``SourceParseError`` escape ``analyze()``; it is the
signal for "skip this file".  ``ConfigError`` is surfaced to the CLI,
which maps it to the infrastructure exit code.
"""

from __future__ import annotations

from typing import Optional


class AnchorScanError(Exception):
    """Base class for all analyzer errors."""


class SourceParseError(AnchorScanError):
    """
    Raised when source text does not parse cleanly.

    Attributes
    ----------
    file_path : path of the offending file, if known
    line      : zero-based line of the first syntax error, if known
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        line: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.file_path = file_path
        self.line = line

    def __str__(self) -> str:
        where = self.file_path or "<text>"
        if self.line is not None:
            where = f"{where}:{self.line + 1}"
        return f"{where}: {self.args[0]}"


class ConfigError(AnchorScanError):
    """Raised for unreadable or invalid configuration."""


__all__ = ["AnchorScanError", "SourceParseError", "ConfigError"]
