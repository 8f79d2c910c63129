"""
anchorscan/detectors/instruction_attrs.py
═════════════════════════════════════════

Validators for ``#[instruction(...)]`` on accounts contexts.

``#[instruction(a: T, ...)]`` makes handler arguments visible to the
account constraints.  Anchor deserialises them positionally, so the list
must be a prefix of the handler's own parameters (after the context),
with the same names and types.

  INSTRUCTION_ATTRIBUTE_UNUSED   — a declared parameter that no
                                   ``#[account(...)]`` constraint mentions
  INSTRUCTION_ATTRIBUTE_INVALID  — a declared parameter missing from the
                                   handler, out of order, or typed
                                   differently
"""

from __future__ import annotations

import logging
import re
from typing import Dict

from ..anchor import InstructionHandler, extract_contexts, extract_handlers
from ..diagnostics import Severity
from ..syntax import SourceTree
from .base import Detector, mentions_anchor

_log = logging.getLogger(__name__)

_STR_ALIASES = re.compile(r"&('[A-Za-z_]+)?str\b")


def normalize_type(type_text: str) -> str:
    """
    Canonical spelling for comparing declared and handler types.

    >>> normalize_type("&'static str")
    'string'
    >>> normalize_type("Vec< u8 >")
    'vec<u8>'
    >>> normalize_type("Vec<&str>")
    'vec<string>'
    """
    compact = re.sub(r"\s+", "", type_text)
    compact = _STR_ALIASES.sub("String", compact)
    return compact.lower()


def mentions_identifier(text: str, name: str) -> bool:
    return re.search(rf"(?<![A-Za-z0-9_]){re.escape(name)}(?![A-Za-z0-9_])", text) is not None


class _InstructionAttributeDetector(Detector):

    def should_run(self, text: str) -> bool:
        return mentions_anchor(text) and "#[instruction" in text


class InstructionAttributeUnusedDetector(_InstructionAttributeDetector):
    """Flags ``#[instruction]`` parameters no account constraint uses."""

    id = "INSTRUCTION_ATTRIBUTE_UNUSED"
    name = "Unused Instruction Attribute Parameter"
    description = (
        "Detects parameters declared in #[instruction(...)] that are not used "
        "in any account constraint"
    )
    message = (
        "Instruction parameter is declared in #[instruction(...)] but not used "
        "in any account constraint."
    )
    default_severity = Severity.WARNING

    def collect(self, tree: SourceTree) -> None:
        for ctx in extract_contexts(tree).values():
            constraints = ctx.constraint_texts
            for param in ctx.instruction_params:
                if any(mentions_identifier(text, param.name) for text in constraints):
                    continue
                self._emit(
                    param.range,
                    f"Unused instruction parameter: '{param.name}'. It is declared in "
                    f"#[instruction(...)] on '{ctx.name}' but no account constraint uses it.",
                )


class InstructionAttributeInvalidDetector(_InstructionAttributeDetector):
    """Checks ``#[instruction]`` parameters against the handler signature."""

    id = "INSTRUCTION_ATTRIBUTE_INVALID"
    name = "Invalid Instruction Attribute"
    description = (
        "Detects #[instruction(...)] parameters that do not match the handler "
        "function's parameters in name, order or type"
    )
    message = "Instruction parameters must match the handler function's parameters."
    default_severity = Severity.ERROR

    def collect(self, tree: SourceTree) -> None:
        handlers: Dict[str, InstructionHandler] = {}
        for handler in extract_handlers(tree):
            handlers[handler.context_name] = handler

        for ctx in extract_contexts(tree).values():
            if not ctx.instruction_params:
                continue
            handler = handlers.get(ctx.name)
            if handler is None:
                _log.debug("no handler for %s in %s", ctx.name, self.file_path or "<text>")
                continue
            self._check(ctx.instruction_params, handler)

    def _check(self, declared, handler: InstructionHandler) -> None:
        expected = handler.params
        for i, param in enumerate(declared):
            if i >= len(expected):
                self._emit(
                    param.range,
                    f"Instruction parameter '{param.name}' not found in handler "
                    f"function '{handler.name}'",
                )
                continue
            other = expected[i]
            if param.name != other.name:
                self._emit(
                    param.range,
                    f"Instruction parameter '{param.name}' does not match handler "
                    f"parameter '{other.name}' at position {i + 1}. Parameters must "
                    f"be in the same order as the handler function.",
                )
                return
            if normalize_type(param.type_text) != normalize_type(other.type_text):
                self._emit(
                    param.range,
                    f"Instruction parameter '{param.name}' has type '{param.type_text}' "
                    f"but handler function expects type '{other.type_text}'",
                )
