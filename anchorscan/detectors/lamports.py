"""
anchorscan/detectors/lamports.py
════════════════════════════════

MANUAL_LAMPORTS_ZEROING — closing an account by zeroing its lamports by
hand instead of using Anchor's ``close`` constraint.
"""

from __future__ import annotations

import logging

from tree_sitter import Node

from ..diagnostics import Severity
from ..syntax import (
    NodeVisitor,
    SourceTree,
    call_arguments,
    method_call_parts,
    split_int_literal,
)
from .base import Detector, mentions_anchor

_log = logging.getLogger(__name__)


class ManualLamportsZeroingDetector(Detector, NodeVisitor):
    """Flags direct writes of zero to an account's lamports."""

    id = "MANUAL_LAMPORTS_ZEROING"
    name = "Manual Lamports Zeroing"
    description = (
        "Detects manual zeroing of account lamports, which should be done "
        "with Anchor's close constraint instead"
    )
    message = (
        "Manual lamports zeroing detected. Use Anchor's close constraint "
        "(#[account(mut, close = destination)]) to close accounts safely."
    )
    default_severity = Severity.ERROR

    def should_run(self, text: str) -> bool:
        return mentions_anchor(text) and "lamports" in text

    def collect(self, tree: SourceTree) -> None:
        self.visit(tree.root)

    def visit_assignment_expression(self, node: Node) -> None:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is not None and right is not None:
            if self._is_lamports_access(left) and self._is_zero(right):
                self._emit(self._tree.node_range(node))
        self.generic_visit(node)

    def visit_call_expression(self, node: Node) -> None:
        parts = method_call_parts(node)
        if parts is not None and self._tree.node_text(parts[1]) == "set_lamports":
            args = call_arguments(node)
            if args and self._is_zero(args[0]):
                self._emit(self._tree.node_range(node))
        self.generic_visit(node)

    # ── shapes ───────────────────────────────────────────────────────

    def _strip(self, node: Node) -> Node:
        while True:
            t = node.type
            if t in ("parenthesized_expression", "try_expression") and node.named_child_count:
                node = node.named_children[0]
            elif t == "unary_expression" and node.children[0].type == "*":
                node = node.named_children[0]
            elif t == "reference_expression" and node.child_by_field_name("value") is not None:
                node = node.child_by_field_name("value")
            else:
                return node

    def _is_lamports_access(self, node: Node) -> bool:
        node = self._strip(node)
        if node.type == "field_expression":
            return self._tree.node_text(node.child_by_field_name("field")) == "lamports"
        parts = method_call_parts(node)
        if parts is None:
            return False
        receiver, method, _ = parts
        method_name = self._tree.node_text(method)
        if method_name in ("lamports", "try_borrow_mut_lamports"):
            return True
        if method_name == "borrow_mut" and receiver is not None:
            return self._is_lamports_access(receiver)
        return False

    def _is_zero(self, node: Node) -> bool:
        node = self._strip(node)
        if node.type != "integer_literal":
            return False
        parts = split_int_literal(self._tree.node_text(node))
        return parts is not None and parts[0] == 0
