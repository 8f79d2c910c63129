"""
anchorscan/syntax.py
════════════════════

Thin layer over the tree-sitter Rust grammar.

:func:`parse_source` turns raw text into a :class:`SourceTree`, which keeps
the text, its UTF-8 bytes and the root node together so that node text
and ranges can be computed without re-reading anything.  A tree holding
``ERROR`` or ``MISSING`` nodes is rejected with
:class:`~anchorscan.errors.SourceParseError`.

Tree-sitter points are (row, byte column).  Every range handed out by
this module is converted to (line, character) so that multi-byte text
such as ``// café`` before a node does not shift diagnostics.

The rest of the module is a small toolbox used by the pattern extractor
and the detectors: sibling-decoration lookup for attributes and doc
comments, attribute path/argument access, type-name helpers and a
:class:`NodeVisitor` dispatching on node types.
"""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import tree_sitter_rust as tsrust
from tree_sitter import Language, Node, Parser

from .diagnostics import Position, Range
from .errors import SourceParseError

_log = logging.getLogger(__name__)

RUST_LANGUAGE = Language(tsrust.language())

DECORATION_TYPES = frozenset({"attribute_item", "line_comment", "block_comment"})
COMMENT_TYPES = frozenset({"line_comment", "block_comment"})


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — SOURCE TREE
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class SourceTree:
    """
    Parsed source text.

    Attributes
    ----------
    text      : the original text
    data      : ``text`` encoded as UTF-8 (what tree-sitter indexes)
    root      : root ``source_file`` node
    file_path : path the text belongs to, if known
    """
    text: str
    data: bytes
    root: Node
    file_path: Optional[str] = None
    _line_starts: List[int] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not self._line_starts:
            starts = [0]
            idx = self.data.find(b"\n")
            while idx != -1:
                starts.append(idx + 1)
                idx = self.data.find(b"\n", idx + 1)
            self._line_starts = starts

    # ── text ─────────────────────────────────────────────────────────

    def node_text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.data[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    # ── positions ────────────────────────────────────────────────────

    def _char_column(self, row: int, byte_col: int) -> int:
        start = self._line_starts[row]
        return len(self.data[start:start + byte_col].decode("utf-8", errors="replace"))

    def point_position(self, point) -> Position:
        row, byte_col = point
        return Position(row, self._char_column(row, byte_col))

    def byte_position(self, offset: int) -> Position:
        row = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(row, self._char_column(row, offset - self._line_starts[row]))

    def node_range(self, node: Node) -> Range:
        return Range(
            self.point_position(node.start_point),
            self.point_position(node.end_point),
        )

    def byte_range(self, start_byte: int, end_byte: int) -> Range:
        return Range(self.byte_position(start_byte), self.byte_position(end_byte))

    def line_range(self, row: int) -> Range:
        """Range covering the whole of line *row* (without its newline)."""
        start = self._line_starts[row]
        end = self._line_starts[row + 1] - 1 if row + 1 < len(self._line_starts) else len(self.data)
        line = self.data[start:end].decode("utf-8", errors="replace").rstrip("\r")
        return Range(Position(row, 0), Position(row, len(line)))


def _first_error(node: Node) -> Optional[Node]:
    stack = [node]
    while stack:
        n = stack.pop()
        if n.type == "ERROR" or n.is_missing:
            return n
        if n.has_error:
            stack.extend(reversed(n.children))
    return None


def parse_source(text: str, file_path: Optional[str] = None) -> SourceTree:
    """
    Parse *text* with the Rust grammar.

    Raises
    ------
    SourceParseError
        if the resulting tree contains syntax errors.
    """
    data = text.encode("utf-8")
    parser = Parser(RUST_LANGUAGE)
    tree = parser.parse(data)
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root)
        line = bad.start_point[0] if bad is not None else None
        raise SourceParseError("source does not parse as Rust", file_path, line)
    return SourceTree(text=text, data=data, root=root, file_path=file_path)


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — TREE WALKING
# ═════════════════════════════════════════════════════════════════════════

def walk(node: Node) -> Iterator[Node]:
    """Pre-order iteration over *node* and all of its descendants."""
    stack = [node]
    while stack:
        n = stack.pop()
        yield n
        stack.extend(reversed(n.children))


def find_all(node: Node, node_type: str) -> Iterator[Node]:
    return (n for n in walk(node) if n.type == node_type)


class NodeVisitor:
    """
    Dispatch on ``node.type`` the way :class:`ast.NodeVisitor` does.

    ``visit_<type>`` handlers decide whether to descend; the fallback
    visits every named child.
    """

    def visit(self, node: Node) -> None:
        method = getattr(self, "visit_" + node.type, None)
        if method is None:
            self.generic_visit(node)
        else:
            method(node)

    def generic_visit(self, node: Node) -> None:
        for child in node.named_children:
            self.visit(child)


def strip_parens(node: Node) -> Node:
    while node.type == "parenthesized_expression" and node.named_child_count:
        node = node.named_children[0]
    return node


def method_call_parts(node: Node):
    """
    For ``recv.method(args)`` return ``(receiver, method_name_node, args)``.

    Turbofish calls (``recv.method::<T>()``) are unwrapped.  Returns
    ``None`` for anything that is not a method call.
    """
    if node.type != "call_expression":
        return None
    function = node.child_by_field_name("function")
    if function is not None and function.type == "generic_function":
        function = function.child_by_field_name("function")
    if function is None or function.type != "field_expression":
        return None
    return (
        function.child_by_field_name("value"),
        function.child_by_field_name("field"),
        node.child_by_field_name("arguments"),
    )


def call_arguments(node: Node) -> List[Node]:
    args = node.child_by_field_name("arguments")
    if args is None:
        return []
    return [a for a in args.named_children if a.type not in COMMENT_TYPES]


def is_mut_reference(node: Node) -> bool:
    node = strip_parens(node)
    if node.type != "reference_expression":
        return False
    return any(c.type == "mutable_specifier" for c in node.children)


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — ATTRIBUTES AND DOC COMMENTS
# ═════════════════════════════════════════════════════════════════════════

def leading_decorations(node: Node) -> List[Node]:
    """
    Attribute items and comments directly in front of *node*, in source
    order.

    Tree-sitter keeps outer attributes and leading comments as preceding
    siblings; a leading comment may also end up as the first child of
    the node itself, so both places are collected.
    """
    before: List[Node] = []
    sibling = node.prev_sibling
    while sibling is not None and sibling.type in DECORATION_TYPES:
        before.append(sibling)
        sibling = sibling.prev_sibling
    before.reverse()
    for child in node.children:
        if child.type not in DECORATION_TYPES:
            break
        before.append(child)
    return before


def attribute_node(item: Node) -> Optional[Node]:
    for child in item.named_children:
        if child.type == "attribute":
            return child
    return None


def attribute_path(tree: SourceTree, item: Node) -> str:
    """``derive`` for ``#[derive(..)]``, ``account`` for ``#[account(..)]``."""
    attr = attribute_node(item)
    if attr is None or not attr.named_child_count:
        return ""
    path = tree.node_text(attr.named_children[0])
    return path.rsplit("::", 1)[-1]


def attribute_arguments(item: Node) -> Optional[Node]:
    attr = attribute_node(item)
    if attr is None:
        return None
    return attr.child_by_field_name("arguments")


def attribute_value(item: Node) -> Optional[Node]:
    attr = attribute_node(item)
    if attr is None:
        return None
    return attr.child_by_field_name("value")


def attributes_named(tree: SourceTree, node: Node, name: str) -> List[Node]:
    return [
        d for d in leading_decorations(node)
        if d.type == "attribute_item" and attribute_path(tree, d) == name
    ]


def string_literal_value(tree: SourceTree, node: Node) -> str:
    text = tree.node_text(node)
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1]
    return text


def doc_lines(tree: SourceTree, node: Node) -> List[str]:
    """
    Outer doc text attached to *node*: ``///`` lines, ``/** */`` blocks
    and ``#[doc = "..."]`` attributes, each stripped of its marker.
    """
    docs: List[str] = []
    for deco in leading_decorations(node):
        text = tree.node_text(deco)
        if deco.type == "line_comment":
            if text.startswith("///") and not text.startswith("////"):
                docs.append(text[3:].strip())
        elif deco.type == "block_comment":
            if text.startswith("/**") and not text.startswith("/***"):
                body = text[3:-2] if text.endswith("*/") else text[3:]
                docs.extend(line.strip().lstrip("*").strip() for line in body.splitlines())
        elif attribute_path(tree, deco) == "doc":
            value = attribute_value(deco)
            if value is not None:
                docs.append(string_literal_value(tree, value).strip())
    return docs


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — TYPES
# ═════════════════════════════════════════════════════════════════════════

def type_name(tree: SourceTree, node: Optional[Node]) -> str:
    """
    Last path segment of a type: ``Account`` for
    ``anchor_lang::prelude::Account<'info, T>``.  Empty for types that are
    not paths (tuples, arrays, function pointers).
    """
    while node is not None:
        t = node.type
        if t in ("type_identifier", "primitive_type"):
            return tree.node_text(node)
        if t == "scoped_type_identifier":
            node = node.child_by_field_name("name")
        elif t in ("generic_type", "reference_type"):
            node = node.child_by_field_name("type")
        else:
            return ""
    return ""


def type_arguments(node: Optional[Node]) -> List[Node]:
    """Non-lifetime generic arguments of a ``generic_type`` node."""
    if node is None or node.type != "generic_type":
        return []
    args = node.child_by_field_name("type_arguments")
    if args is None:
        return []
    return [
        a for a in args.named_children
        if a.type not in ("lifetime", "line_comment", "block_comment")
    ]


def unwrap_type(tree: SourceTree, node: Node, wrappers=("Box", "Option")) -> Node:
    """Strip ``Box<..>`` / ``Option<..>`` layers."""
    while type_name(tree, node) in wrappers:
        args = type_arguments(node)
        if not args:
            break
        node = args[0]
    return node


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — LITERALS
# ═════════════════════════════════════════════════════════════════════════

_INT_LITERAL_RE = re.compile(
    r"^(0x[0-9a-fA-F]+|0o[0-7]+|0b[01]+|[0-9]+)"
    r"(u8|u16|u32|u64|u128|usize|i8|i16|i32|i64|i128|isize)?$"
)


def split_int_literal(text: str) -> Optional[Tuple[int, str]]:
    """
    ``(value, suffix)`` of a Rust integer literal; suffix is ``""`` when
    absent.  ``None`` if *text* is not an integer literal.

    >>> split_int_literal("1_000u64")
    (1000, 'u64')
    """
    m = _INT_LITERAL_RE.match(text.replace("_", ""))
    if m is None:
        return None
    digits = m.group(1)
    value = int(digits, 0) if digits[:2] in ("0x", "0o", "0b") else int(digits, 10)
    return value, m.group(2) or ""


__all__ = [
    "RUST_LANGUAGE",
    "SourceTree",
    "parse_source",
    "walk",
    "find_all",
    "NodeVisitor",
    "strip_parens",
    "method_call_parts",
    "call_arguments",
    "is_mut_reference",
    "leading_decorations",
    "attribute_path",
    "attribute_arguments",
    "attribute_value",
    "attributes_named",
    "doc_lines",
    "type_name",
    "type_arguments",
    "unwrap_type",
    "split_int_literal",
]
