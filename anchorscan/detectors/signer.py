"""
anchorscan/detectors/signer.py
══════════════════════════════

MISSING_SIGNER — instructions whose accounts context has no signer.

A context counts as signed when one of its fields is a ``Signer``
(or carries ``#[account(signer)]``), or when any nested accounts group it
embeds is signed.  Nested groups are frequently declared in other files
of the same program, so every ``.rs`` file of the workspace (test files
excluded) is read to build the context graph.

Graph resolution
────────────────
Each context resolves to ``Resolved(bool)``.  While a context is being
resolved it is marked ``IN_PROGRESS``; a cycle back to it contributes
``False`` without recursing.  A result that depended on an in-progress
context may still flip once that context finishes, so it is only
memoised when it is ``True`` (a signer found through finished nodes
stays found).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Tuple, Union

from ..anchor import AccountsContext, extract_contexts, extract_handlers
from ..diagnostics import Severity
from ..errors import SourceParseError
from ..syntax import SourceTree, parse_source
from ..walker import find_workspace_root, iter_rust_files, read_text
from .base import Detector, mentions_anchor

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolved:
    value: bool


class _InProgress:
    def __repr__(self) -> str:
        return "IN_PROGRESS"


IN_PROGRESS = _InProgress()

ResolutionState = Union[Resolved, _InProgress]


@dataclass
class ContextNode:
    name: str
    has_direct_signer: bool
    composite_refs: Tuple[str, ...]
    declarations: List[str] = field(default_factory=list)


class SignerGraph:
    """Context name → :class:`ContextNode`, with memoised resolution."""

    def __init__(self) -> None:
        self._nodes: Dict[str, ContextNode] = {}
        self._states: Dict[str, ResolutionState] = {}

    def add(self, ctx: AccountsContext, declared_in: str) -> None:
        """Add a declaration; a later declaration of the same name wins."""
        previous = self._nodes.get(ctx.name)
        declarations = previous.declarations if previous is not None else []
        if declared_in not in declarations:
            declarations.append(declared_in)
        self._nodes[ctx.name] = ContextNode(
            ctx.name, ctx.has_direct_signer, ctx.composite_refs, declarations,
        )
        self._states.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._nodes

    def node(self, name: str) -> ContextNode:
        return self._nodes[name]

    def resolve(self, name: str) -> bool:
        return self._resolve(name)[0]

    def _resolve(self, name: str) -> Tuple[bool, bool]:
        """Return ``(has_signer, complete)``."""
        state = self._states.get(name)
        if isinstance(state, Resolved):
            return state.value, True
        if state is IN_PROGRESS:
            return False, False

        node = self._nodes.get(name)
        if node is None:
            self._states[name] = Resolved(False)
            return False, True
        if node.has_direct_signer:
            self._states[name] = Resolved(True)
            return True, True

        self._states[name] = IN_PROGRESS
        complete = True
        for ref in node.composite_refs:
            found, ref_complete = self._resolve(ref)
            if found:
                self._states[name] = Resolved(True)
                return True, True
            complete = complete and ref_complete
        if complete:
            self._states[name] = Resolved(False)
        else:
            del self._states[name]
        return False, complete


class MissingSignerDetector(Detector):
    """
    Flags every public instruction whose ``Context<T>`` has no signer,
    directly or through nested account groups.
    """

    id = "MISSING_SIGNER"
    name = "Missing Signer Check"
    description = (
        "Detects instructions whose accounts context has no signer, including "
        "nested account groups, which could allow unauthorized access"
    )
    message = (
        "Accounts struct has no signer. Consider adding a Signer<'info> field "
        "to ensure proper authorization."
    )
    default_severity = Severity.WARNING

    def should_run(self, text: str) -> bool:
        return mentions_anchor(text) and "Context<" in text

    def _workspace_sources(self, tree: SourceTree) -> Iterator[Tuple[str, str]]:
        """``(path, text)`` of every Rust file in the workspace."""
        if not self.file_path or not Path(self.file_path).is_file():
            yield self.file_path or "<text>", tree.text
            return

        current = Path(self.file_path).resolve()
        root = find_workspace_root(current)
        seen_current = False
        try:
            for path in iter_rust_files(root, skip_tests=True):
                if path.resolve() == current:
                    seen_current = True
                    yield str(path), tree.text
                    continue
                text = read_text(path)
                if text is not None:
                    yield str(path), text
        except OSError as exc:
            _log.debug("workspace walk under %s failed: %s", root, exc)
        if not seen_current:
            yield self.file_path, tree.text

    def _build_graph(self, tree: SourceTree) -> SignerGraph:
        graph = SignerGraph()
        for path, text in self._workspace_sources(tree):
            if text is tree.text:
                parsed = tree
            elif "Accounts" not in text:
                continue
            else:
                try:
                    parsed = parse_source(text, path)
                except SourceParseError as exc:
                    _log.debug("signer graph: skipping %s", exc)
                    continue
            for ctx in extract_contexts(parsed).values():
                graph.add(ctx, path)
        return graph

    def collect(self, tree: SourceTree) -> None:
        handlers = [h for h in extract_handlers(tree) if h.is_public]
        if not handlers:
            return
        graph = self._build_graph(tree)

        for handler in handlers:
            ctx_name = handler.context_name
            if ctx_name not in graph:
                self._emit(
                    handler.context_range,
                    f"Accounts struct '{ctx_name}' used by instruction "
                    f"'{handler.name}' is not declared in this workspace; "
                    f"signer presence cannot be verified.",
                    Severity.INFORMATION,
                )
                continue

            node = graph.node(ctx_name)
            if not graph.resolve(ctx_name):
                message = f"Accounts struct '{ctx_name}' has no signer"
                if node.composite_refs:
                    message += f" (nested account groups checked: {', '.join(node.composite_refs)})"
                self._emit(
                    handler.context_range,
                    message + ". Consider adding a Signer<'info> field to ensure proper authorization.",
                )

            if len(node.declarations) > 1:
                self._emit(
                    handler.context_range,
                    f"Accounts struct '{ctx_name}' is declared in several files "
                    f"({', '.join(node.declarations)}); the last one was used.",
                    Severity.HINT,
                )
