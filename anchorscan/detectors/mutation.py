"""
anchorscan/detectors/mutation.py
════════════════════════════════

IMMUTABLE_ACCOUNT_MUTATED — writes to accounts not marked mutable.

For every accounts context declared in the file, fields of a checked or
raw account type without ``mut`` / ``init`` / ``init_if_needed`` /
``zero`` are tracked.  Handler bodies (functions taking ``Context<T>``
for such a context) are then walked looking for mutation sites:

  - assignment and compound assignment whose target resolves to a
    tracked field, including through field and index accesses
  - method calls on a tracked receiver that are known mutators (including
    collection-style ``push*`` / ``insert*`` / ``clear*`` and friends), or
    that take a ``&mut`` argument or a ``&mut`` receiver
  - ``&mut`` borrows of a tracked field (outside a ``let`` initializer)

Locals bound with ``let x = &mut ctx.accounts.vault`` (or any initializer
normalising to exactly a tracked field) alias that field for the rest
of the function.  Every finding produces two linked diagnostics: one at
the mutation site and one at the field declaration.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from tree_sitter import Node

from ..anchor import AccountField, extract_contexts, handler_for
from ..diagnostics import DiagnosticBuilder, Severity
from ..syntax import (
    NodeVisitor,
    SourceTree,
    call_arguments,
    is_mut_reference,
    method_call_parts,
    strip_parens,
)
from .base import Detector

_log = logging.getLogger(__name__)

MUTATOR_METHODS = frozenset({
    "set_data", "set_lamports", "set_owner", "set_executable",
    "close", "realloc", "assign", "exit",
})

MUTATOR_PREFIXES = (
    "push", "insert", "remove", "clear", "set", "replace", "extend", "append",
    "truncate", "resize", "retain", "swap", "sort", "rotate", "fill",
)

IDENTITY_ACCESSORS = frozenset({
    "to_account_info", "try_borrow_mut_lamports", "borrow_mut", "try_borrow_mut_data",
})


class ImmutableAccountMutatedDetector(Detector, NodeVisitor):
    """Detects mutation of accounts lacking ``#[account(mut)]``."""

    id = "IMMUTABLE_ACCOUNT_MUTATED"
    name = "Immutable Account Mutation"
    description = (
        "Detects attempts to mutate accounts that are not marked as mutable "
        "with #[account(mut)]"
    )
    message = "Attempting to mutate an account that is not marked as mutable"
    default_severity = Severity.ERROR

    def reset(self) -> None:
        super().reset()
        self._immutable: Dict[str, Dict[str, AccountField]] = {}
        self._fields: Dict[str, AccountField] = {}
        self._aliases: Dict[str, str] = {}

    def collect(self, tree: SourceTree) -> None:
        for ctx in extract_contexts(tree).values():
            tracked = {
                f.name: f for f in ctx.fields
                if f.category.is_mutation_relevant and not f.mutable
            }
            if tracked:
                self._immutable[ctx.name] = tracked
        if self._immutable:
            self.visit(tree.root)

    # ── scopes ───────────────────────────────────────────────────────

    def visit_function_item(self, node: Node) -> None:
        handler = handler_for(self._tree, node)
        saved = (self._fields, self._aliases)
        if handler is not None and handler.context_name in self._immutable:
            self._fields = self._immutable[handler.context_name]
        else:
            self._fields = {}
        self._aliases = {}
        try:
            body = node.child_by_field_name("body")
            if body is not None:
                self.visit(body)
        finally:
            self._fields, self._aliases = saved

    def visit_let_declaration(self, node: Node) -> None:
        value = node.child_by_field_name("value")
        pattern = node.child_by_field_name("pattern")
        if value is not None:
            if is_mut_reference(value):
                self.generic_visit(strip_parens(value))
            else:
                self.visit(value)
        alternative = node.child_by_field_name("alternative")
        if alternative is not None:
            self.visit(alternative)

        if pattern is None or pattern.type != "identifier" or not self._fields:
            return
        local = self._tree.node_text(pattern)
        target = self._resolve_exact(value) if value is not None else None
        if target is not None:
            self._aliases[local] = target
        else:
            self._aliases.pop(local, None)

    # ── mutation shapes ──────────────────────────────────────────────

    def _visit_assignment(self, node: Node) -> None:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        target = self._resolve_target(left) if left is not None else None
        if target is None:
            self.generic_visit(node)
            return
        self._report(node, target)
        if right is not None:
            self.visit(right)

    visit_assignment_expression = _visit_assignment
    visit_compound_assignment_expr = _visit_assignment

    def visit_call_expression(self, node: Node) -> None:
        parts = method_call_parts(node)
        if parts is None or not self._fields:
            self.generic_visit(node)
            return
        receiver, method, _ = parts
        target = self._resolve_target(receiver) if receiver is not None else None
        if target is None:
            self.generic_visit(node)
            return
        method_name = self._tree.node_text(method)
        mutating = (
            method_name in MUTATOR_METHODS
            or method_name.startswith(MUTATOR_PREFIXES)
            or is_mut_reference(receiver)
            or any(is_mut_reference(arg) for arg in call_arguments(node))
        )
        if not mutating:
            self.generic_visit(node)
            return
        self._report(node, target)
        for arg in call_arguments(node):
            self.visit(arg)

    def visit_reference_expression(self, node: Node) -> None:
        if self._fields and is_mut_reference(node):
            target = self._resolve_target(node.child_by_field_name("value"))
            if target is not None:
                self._report(node, target)
        self.generic_visit(node)

    # ── resolution ───────────────────────────────────────────────────

    def _peel(self, node: Node) -> Node:
        while True:
            t = node.type
            if t in ("parenthesized_expression", "try_expression") and node.named_child_count:
                node = node.named_children[0]
            elif t in ("reference_expression", "type_cast_expression"):
                inner = node.child_by_field_name("value")
                if inner is None:
                    return node
                node = inner
            elif t == "unary_expression" and node.children[0].type == "*":
                node = node.named_children[0]
            elif t == "call_expression":
                parts = method_call_parts(node)
                if parts is None or parts[0] is None or call_arguments(node):
                    return node
                if self._tree.node_text(parts[1]) not in IDENTITY_ACCESSORS:
                    return node
                node = parts[0]
            else:
                return node

    def _is_accounts_bag(self, node: Node) -> bool:
        node = self._peel(node)
        if node.type != "field_expression":
            return False
        return self._tree.node_text(node.child_by_field_name("field")) == "accounts"

    def _direct_field(self, node: Node) -> Optional[str]:
        """``<expr>.accounts.<field>`` for a tracked field, else ``None``."""
        if node.type != "field_expression":
            return None
        name = self._tree.node_text(node.child_by_field_name("field"))
        if name in self._fields and self._is_accounts_bag(node.child_by_field_name("value")):
            return name
        return None

    def _resolve_exact(self, node: Node) -> Optional[str]:
        node = self._peel(node)
        if node.type == "identifier":
            return self._aliases.get(self._tree.node_text(node))
        return self._direct_field(node)

    def _resolve_target(self, node: Optional[Node]) -> Optional[str]:
        while node is not None:
            node = self._peel(node)
            if node.type == "identifier":
                return self._aliases.get(self._tree.node_text(node))
            if node.type == "field_expression":
                direct = self._direct_field(node)
                if direct is not None:
                    return direct
                node = node.child_by_field_name("value")
            elif node.type == "index_expression" and node.named_child_count:
                node = node.named_children[0]
            else:
                return None
        return None

    # ── reporting ────────────────────────────────────────────────────

    def _report(self, node: Node, field_name: str) -> None:
        declared = self._fields[field_name]
        declared_msg = f"Account '{field_name}' is defined here without #[account(mut)]"
        primary, related = DiagnosticBuilder.linked_pair(
            primary_range=self._tree.node_range(node),
            primary_message=(
                f"Attempting to mutate immutable account '{field_name}'. "
                f"Add #[account(mut)] to allow mutation."
            ),
            related_range=declared.range,
            related_message=declared_msg,
            primary_to_related=declared_msg,
            related_to_primary=f"Account '{field_name}' is mutated here",
            severity=self.default_severity,
            code=self.id,
            file_path=self.file_path or "",
        )
        self._emit_all((primary, related))
