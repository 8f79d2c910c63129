"""
anchorscan/detectors/arithmetic.py
══════════════════════════════════

UNSAFE_ARITHMETIC — unchecked ``+ - * /`` that may overflow.

This is a syntactic heuristic: there is no type inference.  An operation
is left alone when

  - both operands are small unsuffixed integer literals (``2 + 3``), or
  - either operand states its type explicitly: an ``as`` cast, a
    suffixed integer literal (``10u64``), a float literal or a turbofish
    call (``parse::<u64>()``).

Everything else is flagged with a suggestion to use the ``checked_*``
counterpart.  Macro arguments are token trees and are never looked at.
"""

from __future__ import annotations

import logging
from typing import Dict, Tuple

from tree_sitter import Node

from ..diagnostics import Severity
from ..syntax import NodeVisitor, SourceTree, split_int_literal
from .base import Detector, mentions_anchor

_log = logging.getLogger(__name__)

LITERAL_SAFE_LIMIT = 2 ** 32

# operator → (operation word, checked method)
OPERATIONS: Dict[str, Tuple[str, str]] = {
    "+": ("addition", "checked_add"),
    "-": ("subtraction", "checked_sub"),
    "*": ("multiplication", "checked_mul"),
    "/": ("division", "checked_div"),
}


class UnsafeArithmeticDetector(Detector, NodeVisitor):
    """Flags arithmetic that can overflow, underflow or divide by zero."""

    id = "UNSAFE_ARITHMETIC"
    name = "Unsafe Math Operations"
    description = (
        "Detects arithmetic operations that may overflow or underflow without "
        "checked math"
    )
    message = (
        "Unchecked arithmetic operation detected. Consider using checked "
        "arithmetic methods to prevent overflow/underflow."
    )
    default_severity = Severity.ERROR

    def should_run(self, text: str) -> bool:
        return mentions_anchor(text) and any(op in text for op in OPERATIONS)

    def collect(self, tree: SourceTree) -> None:
        self.visit(tree.root)

    # ── attributes and macros hold no runtime arithmetic ─────────────

    def visit_attribute_item(self, node: Node) -> None:
        pass

    def visit_inner_attribute_item(self, node: Node) -> None:
        pass

    # ── operations ───────────────────────────────────────────────────

    def visit_binary_expression(self, node: Node) -> None:
        op = self._tree.node_text(node.child_by_field_name("operator"))
        if op in OPERATIONS and not self._exempt(node):
            word, method = OPERATIONS[op]
            self._emit(
                self._tree.node_range(node),
                f"Unchecked {word} operation detected. Consider using "
                f"`{method}()` to prevent overflow/underflow.",
            )
        self.generic_visit(node)

    def visit_compound_assignment_expr(self, node: Node) -> None:
        op = self._tree.node_text(node.child_by_field_name("operator"))
        base = op[:-1] if op.endswith("=") else op
        if base in OPERATIONS and not self._exempt(node):
            word, method = OPERATIONS[base]
            self._emit(
                self._tree.node_range(node),
                f"Unchecked {word} assignment operation detected. Consider using "
                f"`{method}()` and reassigning the result to prevent overflow/underflow.",
            )
        self.generic_visit(node)

    # ── exemptions ───────────────────────────────────────────────────

    def _exempt(self, node: Node) -> bool:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is None or right is None:
            return True
        if self._literal_safe(left) and self._literal_safe(right):
            return True
        return self._annotated(left) or self._annotated(right)

    @staticmethod
    def _unwrap(node: Node) -> Node:
        while True:
            if node.type == "parenthesized_expression" and node.named_child_count:
                node = node.named_children[0]
            elif node.type == "unary_expression" and node.children[0].type == "-":
                node = node.named_children[0]
            else:
                return node

    def _literal_safe(self, node: Node) -> bool:
        node = self._unwrap(node)
        if node.type != "integer_literal":
            return False
        parts = split_int_literal(self._tree.node_text(node))
        return parts is not None and not parts[1] and parts[0] < LITERAL_SAFE_LIMIT

    def _annotated(self, node: Node) -> bool:
        node = self._unwrap(node)
        t = node.type
        if t in ("type_cast_expression", "float_literal"):
            return True
        if t == "integer_literal":
            parts = split_int_literal(self._tree.node_text(node))
            return parts is not None and bool(parts[1])
        if t == "call_expression":
            function = node.child_by_field_name("function")
            return function is not None and function.type == "generic_function"
        return False
