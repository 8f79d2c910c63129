"""
anchorscan/walker.py
════════════════════

Directory walking shared by the workspace scanner and the signer
detector's cross-file lookup.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Optional, Union

_log = logging.getLogger(__name__)

EXCLUDED_DIRS = frozenset({
    "target", "node_modules", ".git", ".vscode", ".idea", "out", ".anchor", ".cargo",
})

PathLike = Union[str, Path]


def is_test_path(path: PathLike, root: Optional[PathLike] = None) -> bool:
    """True if any component of *path* below *root* mentions ``test``."""
    p = Path(path)
    if root is not None:
        try:
            p = p.relative_to(root)
        except ValueError:
            pass
    return any("test" in part.lower() for part in p.parts)


def _log_walk_error(err: OSError) -> None:
    _log.debug("cannot read %s: %s", err.filename, err.strerror)


def iter_files(root: PathLike, suffix: str = "", name: str = "") -> Iterator[Path]:
    """
    Yield files under *root* in sorted order, pruning :data:`EXCLUDED_DIRS`.

    Filter on *suffix* (``".rs"``) or exact file *name*
    (``"Cargo.toml"``).  Unreadable directories are skipped.
    """
    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS)
        for filename in sorted(filenames):
            if suffix and not filename.endswith(suffix):
                continue
            if name and filename != name:
                continue
            yield Path(dirpath) / filename


def iter_rust_files(root: PathLike, skip_tests: bool = False) -> Iterator[Path]:
    for path in iter_files(root, suffix=".rs"):
        if skip_tests and is_test_path(path, root):
            continue
        yield path


def find_workspace_root(file_path: PathLike) -> Path:
    """
    Nearest ancestor holding ``Anchor.toml``, else the nearest holding
    ``Cargo.toml``, else the file's own directory.
    """
    path = Path(file_path).resolve()
    parents = list(path.parents)
    for marker in ("Anchor.toml", "Cargo.toml"):
        for parent in parents:
            if (parent / marker).is_file():
                return parent
    return path.parent


def read_text(path: PathLike) -> Optional[str]:
    """UTF-8 file contents, or ``None`` when unreadable."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _log.debug("skipping %s: %s", path, exc)
        return None
