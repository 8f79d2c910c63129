"""anchorscan/cli.py — command-line entry point.

Usage examples
--------------
    # Scan the current workspace
    anchorscan

    # Scan a program directory and a single file, JSON output
    anchorscan programs/vault programs/escrow/src/lib.rs --format json

    # SARIF for code-scanning upload
    anchorscan . --format sarif > anchorscan.sarif

    # Silence a detector and promote another one
    anchorscan . --disable UNSAFE_ARITHMETIC --severity MISSING_SIGNER=error

    # Show the detectors and whether they are enabled
    anchorscan --list-detectors

Exit codes
----------
    0   Success (no error-severity diagnostics).
    1   One or more diagnostics with severity ERROR were emitted.
    2   Infrastructure failure (missing path, bad configuration, etc.).

The module doubles as ``python -m anchorscan`` via the companion
``anchorscan/__main__.py``.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence, TextIO, Tuple

from . import __version__
from .config import apply_config, find_default_config, load_config, parse_severity
from .diagnostics import Diagnostic, Severity
from .errors import AnchorScanError
from .registry import DetectorRegistry, build_default_registry
from .reporter import FORMATS, Reporter
from .workspace import ScanResult, WorkspaceScanner

_log = logging.getLogger("anchorscan")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``anchorscan`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("anchorscan")
    for old in list(root.handlers):
        root.removeHandler(old)
    root.setLevel(level)
    root.addHandler(handler)


def _parse_severity_option(raw: str) -> Tuple[str, Severity]:
    """``ID=LEVEL`` → ``(ID, Severity)``."""
    detector_id, sep, level = raw.partition("=")
    if not sep or not detector_id:
        raise AnchorScanError(f"--severity expects ID=LEVEL, got {raw!r}")
    return detector_id.strip(), parse_severity(level, f"--severity {detector_id}")


def _build_registry(args: argparse.Namespace) -> DetectorRegistry:
    registry = build_default_registry()

    config_path: Optional[Path] = None
    if args.config:
        config_path = Path(args.config)
    else:
        for raw in args.paths:
            base = Path(raw)
            config_path = find_default_config(base if base.is_dir() else base.parent)
            if config_path is not None:
                break
    if config_path is not None:
        apply_config(registry, load_config(config_path))

    for detector_id in args.disable:
        if detector_id not in registry:
            _log.warning("--disable: unknown detector %s", detector_id)
        registry.disable(detector_id)
    for raw in args.severity:
        detector_id, severity = _parse_severity_option(raw)
        if detector_id not in registry:
            _log.warning("--severity: unknown detector %s", detector_id)
        registry.set_severity_override(detector_id, severity)
    return registry


def _scan(paths: Sequence[str], registry: DetectorRegistry) -> ScanResult:
    combined = ScanResult()
    for raw in paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            partial = WorkspaceScanner(path).scan(registry)
            combined.rust_files.extend(partial.rust_files)
            combined.anchor_configs.extend(partial.anchor_configs)
            combined.cargo_files.extend(partial.cargo_files)
        elif path.is_file():
            info = WorkspaceScanner(path.parent).scan_file(path, registry)
            if info is None:
                raise AnchorScanError(f"cannot read {path}")
            combined.rust_files.append(info)
        else:
            raise AnchorScanError(f"path not found: {path}")
    return combined


def _emit_diagnostics(
    diagnostics: List[Diagnostic],
    registry: DetectorRegistry,
    result: ScanResult,
    fmt: str,
    stream: TextIO,
    colour: Optional[bool],
) -> int:
    """Write *diagnostics* to *stream* in the chosen format.

    Returns the count of ERROR-severity diagnostics.
    """
    reporter = Reporter(stream, fmt=fmt, colour=colour)
    for info in registry.list_detectors():
        reporter.describe_rule(info.id, info.name, info.description)
    reporter.set_summary(result.summary().to_dict())
    for diag in diagnostics:
        reporter.report(diag)
    return reporter.finish().error


def _list_detectors(registry: DetectorRegistry, stream: TextIO) -> None:
    width = max(len(info.id) for info in registry.list_detectors())
    for info in registry.list_detectors():
        state = "enabled " if info.enabled else "disabled"
        stream.write(
            f"{info.id.ljust(width)}  {state}  {info.default_severity.label:<11}  {info.name}\n"
        )


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anchorscan",
        description=(
            "anchorscan — static security analysis for Anchor programs.\n\n"
            "Scans Rust sources for missing signers, writes to immutable\n"
            "accounts, unchecked arithmetic and other account-safety issues."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              anchorscan programs/vault
              anchorscan . --format sarif > anchorscan.sarif
              anchorscan . --disable UNSAFE_ARITHMETIC --severity MISSING_SIGNER=error
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        default=["."],
        help="Files or workspace directories to scan (default: current directory).",
    )
    parser.add_argument(
        "-f", "--format",
        choices=FORMATS,
        default="text",
        help="Output format (default: text).",
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Write the report to this file instead of stdout.",
    )
    parser.add_argument(
        "--color",
        choices=("auto", "always", "never"),
        default="auto",
        help="Colour text output (default: when writing to a terminal).",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="JSON configuration file (default: anchorscan.json in the scanned directory).",
    )
    parser.add_argument(
        "--disable",
        action="append",
        default=[],
        metavar="ID",
        help="Disable a detector (repeatable).",
    )
    parser.add_argument(
        "--severity",
        action="append",
        default=[],
        metavar="ID=LEVEL",
        help="Override a detector's severity: error, warning, info or hint (repeatable).",
    )
    parser.add_argument(
        "--list-detectors",
        action="store_true",
        help="List the available detectors and exit.",
    )
    return parser


# ===========================================================================
# Main
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the anchorscan CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    try:
        registry = _build_registry(args)
        if args.list_detectors:
            _list_detectors(registry, sys.stdout)
            return EXIT_OK

        result = _scan(args.paths, registry)
        colour = {"always": True, "never": False}.get(args.color)
        if args.output:
            with open(args.output, "w", encoding="utf-8") as stream:
                error_count = _emit_diagnostics(
                    result.diagnostics, registry, result, args.format, stream, False,
                )
        else:
            error_count = _emit_diagnostics(
                result.diagnostics, registry, result, args.format, sys.stdout, colour,
            )
    except AnchorScanError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except OSError as exc:
        _log.error("I/O error: %s", exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130

    summary = result.summary()
    _log.info(
        "Scanned %d files, %d flagged, %d issues",
        summary.files_scanned, summary.flagged_files, summary.total_issues,
    )
    return EXIT_ERROR if error_count > 0 else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
