"""
anchorscan/anchor.py
════════════════════

Extraction of the Anchor account-permission model from a parsed file.

An *accounts context* is a struct carrying ``#[derive(Accounts)]``.  Each
field is categorised by its (wrapper-stripped) type name and its
``#[account(...)]`` attribute is parsed once into an
:class:`AccountAttribute`; detectors only ever look at these typed
records, never at raw tokens.

An *instruction handler* is a function taking a ``Context<T>``
parameter.  ``T`` names the accounts context it operates on.

Layout
------
  PART 1 — Account categories
  PART 2 — ``#[account(...)]`` and ``#[instruction(...)]`` arguments
  PART 3 — Accounts contexts
  PART 4 — Instruction handlers
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from tree_sitter import Node

from .diagnostics import Range
from .syntax import (
    SourceTree,
    attribute_arguments,
    attributes_named,
    doc_lines,
    find_all,
    type_arguments,
    type_name,
    unwrap_type,
)

_log = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — ACCOUNT CATEGORIES
# ═════════════════════════════════════════════════════════════════════════

class AccountCategory(enum.Enum):
    CHECKED_ACCOUNT = "checked-account"
    RAW_ACCOUNT = "raw-account"
    SIGNER = "signer"
    PROGRAM = "program"
    SYSTEM_VARIABLE = "system-variable"
    COMPOSITE = "composite"
    OTHER = "other"

    @property
    def is_mutation_relevant(self) -> bool:
        return self in (AccountCategory.CHECKED_ACCOUNT, AccountCategory.RAW_ACCOUNT)


_CATEGORY_BY_TYPE: Dict[str, AccountCategory] = {
    "Account": AccountCategory.CHECKED_ACCOUNT,
    "AccountLoader": AccountCategory.CHECKED_ACCOUNT,
    "InterfaceAccount": AccountCategory.CHECKED_ACCOUNT,
    "SystemAccount": AccountCategory.CHECKED_ACCOUNT,
    "Interface": AccountCategory.PROGRAM,
    "AccountInfo": AccountCategory.RAW_ACCOUNT,
    "UncheckedAccount": AccountCategory.RAW_ACCOUNT,
    "Signer": AccountCategory.SIGNER,
    "Program": AccountCategory.PROGRAM,
    "Sysvar": AccountCategory.SYSTEM_VARIABLE,
}

_NON_COMPOSITE_TYPES = frozenset({
    "bool", "char", "str", "String", "Vec", "PhantomData", "Pubkey",
    "u8", "u16", "u32", "u64", "u128", "usize",
    "i8", "i16", "i32", "i64", "i128", "isize", "f32", "f64",
})

MUTABLE_MARKERS = frozenset({"mut", "init", "init_if_needed", "zero"})


def categorize(name: str) -> AccountCategory:
    if name in _CATEGORY_BY_TYPE:
        return _CATEGORY_BY_TYPE[name]
    if not name or name in _NON_COMPOSITE_TYPES:
        return AccountCategory.OTHER
    return AccountCategory.COMPOSITE


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — ATTRIBUTE ARGUMENTS
# ═════════════════════════════════════════════════════════════════════════

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_OPENERS.values())


def split_top_level(text: str, track_angles: bool = False) -> List[Tuple[int, int]]:
    """
    Split *text* at commas that sit outside brackets and string literals.

    Returns ``(start, end)`` offsets of each piece, trimmed of whitespace;
    empty pieces are dropped.
    """
    pieces: List[Tuple[int, int]] = []
    depth = 0
    start = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            i += 1
            while i < n and text[i] != '"':
                i += 2 if text[i] == "\\" else 1
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif track_angles and ch == "<":
            depth += 1
        elif track_angles and ch == ">" and not (i and text[i - 1] == "-"):
            depth -= 1
        elif ch == "," and depth == 0:
            pieces.append((start, i))
            start = i + 1
        i += 1
    pieces.append((start, n))

    trimmed = []
    for lo, hi in pieces:
        while lo < hi and text[lo].isspace():
            lo += 1
        while hi > lo and text[hi - 1].isspace():
            hi -= 1
        if lo < hi:
            trimmed.append((lo, hi))
    return trimmed


def _assignment_split(piece: str) -> Optional[Tuple[str, str]]:
    """``key = value`` at top level, ignoring ``==``/``<=``/``>=``/``!=``."""
    depth = 0
    for i, ch in enumerate(piece):
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif ch == "=" and depth == 0:
            prev = piece[i - 1] if i else ""
            nxt = piece[i + 1] if i + 1 < len(piece) else ""
            if prev in "=<>!" or nxt == "=":
                continue
            return piece[:i].strip(), piece[i + 1:].strip()
    return None


@dataclass(frozen=True)
class AccountAttribute:
    """
    Parsed ``#[account(...)]`` arguments.

    Attributes
    ----------
    flags   : bare constraints (``mut``, ``signer``, ``init``, ``zero`` ...)
    options : ``key = value`` constraints, keyed by ``key``
    text    : raw argument text, without the surrounding parentheses
    """
    flags: FrozenSet[str] = frozenset()
    options: Tuple[Tuple[str, str], ...] = ()
    text: str = ""

    @classmethod
    def parse(cls, text: str) -> AccountAttribute:
        inner = text.strip()
        if inner.startswith("(") and inner.endswith(")"):
            inner = inner[1:-1]
        flags = set()
        options = []
        for lo, hi in split_top_level(inner):
            piece = inner[lo:hi]
            kv = _assignment_split(piece)
            if kv is not None:
                options.append(kv)
            else:
                flags.add(re.split(r"[\s@]", piece, maxsplit=1)[0])
        return cls(frozenset(flags), tuple(options), inner)

    @property
    def is_mutable(self) -> bool:
        return bool(self.flags & MUTABLE_MARKERS)

    @property
    def is_signer(self) -> bool:
        return "signer" in self.flags

    def option(self, key: str) -> Optional[str]:
        for k, v in self.options:
            if k == key:
                return v
        return None


@dataclass(frozen=True)
class InstructionParam:
    """One ``name: Type`` entry of ``#[instruction(...)]`` or a handler."""
    name: str
    type_text: str
    range: Range


_PARAM_RE = re.compile(r"^(?:mut\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*:(?!:)\s*(.+)$", re.S)


def parse_instruction_params(tree: SourceTree, token_tree: Node) -> List[InstructionParam]:
    text = tree.node_text(token_tree)
    if not (text.startswith("(") and text.endswith(")")):
        return []
    inner = text[1:-1]
    base = token_tree.start_byte + 1
    params: List[InstructionParam] = []
    for lo, hi in split_top_level(inner, track_angles=True):
        m = _PARAM_RE.match(inner[lo:hi])
        if m is None:
            _log.debug("ignoring instruction argument %r", inner[lo:hi])
            continue
        start = base + len(inner[:lo].encode("utf-8"))
        end = base + len(inner[:hi].encode("utf-8"))
        params.append(InstructionParam(m.group(1), m.group(2).strip(), tree.byte_range(start, end)))
    return params


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — ACCOUNTS CONTEXTS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AccountField:
    """
    A field of an accounts context.

    Attributes
    ----------
    name        : field identifier
    type_name   : wrapper-stripped type name (``Account``, ``Signer`` ...)
    category    : AccountCategory derived from ``type_name``
    mutable     : true when the account attribute carries a mutable marker
    attribute   : parsed ``#[account(...)]``, if present
    range       : span of the field declaration
    type_range  : span of the declared type
    generic_args: type names of the non-lifetime generic arguments
    docs        : outer doc comment lines
    """
    name: str
    type_name: str
    category: AccountCategory
    mutable: bool
    attribute: Optional[AccountAttribute]
    range: Range
    type_range: Range
    generic_args: Tuple[str, ...] = ()
    docs: Tuple[str, ...] = ()

    @property
    def is_signer(self) -> bool:
        if self.category is AccountCategory.SIGNER:
            return True
        return self.attribute is not None and self.attribute.is_signer


@dataclass(frozen=True)
class AccountsContext:
    name: str
    fields: Tuple[AccountField, ...]
    range: Range
    name_range: Range
    instruction_params: Tuple[InstructionParam, ...] = ()
    has_instruction_attribute: bool = False

    def field(self, name: str) -> Optional[AccountField]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def has_direct_signer(self) -> bool:
        return any(f.is_signer for f in self.fields)

    @property
    def composite_refs(self) -> Tuple[str, ...]:
        return tuple(f.type_name for f in self.fields if f.category is AccountCategory.COMPOSITE)

    @property
    def constraint_texts(self) -> List[str]:
        return [f.attribute.text for f in self.fields if f.attribute is not None]


def derived_traits(tree: SourceTree, node: Node) -> FrozenSet[str]:
    """Names listed in every ``#[derive(...)]`` in front of *node*."""
    names = set()
    for item in attributes_named(tree, node, "derive"):
        args = attribute_arguments(item)
        if args is None:
            continue
        for word in re.findall(r"[A-Za-z_][A-Za-z0-9_]*", tree.node_text(args)):
            names.add(word)
    return frozenset(names)


def is_accounts_struct(tree: SourceTree, node: Node) -> bool:
    return node.type == "struct_item" and "Accounts" in derived_traits(tree, node)


def is_account_data_struct(tree: SourceTree, node: Node) -> bool:
    """``#[account]`` / ``#[account(zero_copy)]`` on a struct."""
    return node.type == "struct_item" and bool(attributes_named(tree, node, "account"))


def _extract_field(tree: SourceTree, decl: Node) -> Optional[AccountField]:
    name_node = decl.child_by_field_name("name")
    type_node = decl.child_by_field_name("type")
    if name_node is None or type_node is None:
        return None
    inner = unwrap_type(tree, type_node)
    tname = type_name(tree, inner)

    attribute = None
    for item in attributes_named(tree, decl, "account"):
        args = attribute_arguments(item)
        attribute = AccountAttribute.parse(tree.node_text(args) if args is not None else "")
        break

    return AccountField(
        name=tree.node_text(name_node),
        type_name=tname,
        category=categorize(tname),
        mutable=attribute is not None and attribute.is_mutable,
        attribute=attribute,
        range=tree.node_range(decl),
        type_range=tree.node_range(type_node),
        generic_args=tuple(type_name(tree, a) for a in type_arguments(inner)),
        docs=tuple(doc_lines(tree, decl)),
    )


def extract_context(tree: SourceTree, node: Node) -> AccountsContext:
    name_node = node.child_by_field_name("name")
    fields: List[AccountField] = []
    seen = set()
    body = node.child_by_field_name("body")
    if body is not None and body.type == "field_declaration_list":
        for decl in body.named_children:
            if decl.type != "field_declaration":
                continue
            account_field = _extract_field(tree, decl)
            if account_field is None or account_field.name in seen:
                continue
            seen.add(account_field.name)
            fields.append(account_field)

    params: List[InstructionParam] = []
    instruction_attrs = attributes_named(tree, node, "instruction")
    for item in instruction_attrs:
        args = attribute_arguments(item)
        if args is not None:
            params.extend(parse_instruction_params(tree, args))

    return AccountsContext(
        name=tree.node_text(name_node),
        fields=tuple(fields),
        range=tree.node_range(node),
        name_range=tree.node_range(name_node) if name_node is not None else tree.node_range(node),
        instruction_params=tuple(params),
        has_instruction_attribute=bool(instruction_attrs),
    )


def extract_contexts(tree: SourceTree) -> Dict[str, AccountsContext]:
    """All accounts contexts in the file, keyed by struct name."""
    contexts: Dict[str, AccountsContext] = {}
    for node in find_all(tree.root, "struct_item"):
        if is_accounts_struct(tree, node):
            ctx = extract_context(tree, node)
            contexts[ctx.name] = ctx
    return contexts


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — INSTRUCTION HANDLERS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class InstructionHandler:
    """
    A function taking ``Context<T>``.

    ``params`` holds the remaining parameters in declaration order.
    """
    name: str
    is_public: bool
    context_name: str
    context_range: Range
    params: Tuple[InstructionParam, ...]
    node: Node = field(compare=False, repr=False)

    @property
    def body(self) -> Optional[Node]:
        return self.node.child_by_field_name("body")


def context_type_name(tree: SourceTree, type_node: Node) -> Optional[str]:
    """``T`` for a ``Context<'_, '_, '_, 'info, T>`` type, else ``None``."""
    if type_name(tree, type_node) != "Context" or type_node.type != "generic_type":
        return None
    args = type_arguments(type_node)
    if not args:
        return None
    return type_name(tree, args[0]) or None


def handler_for(tree: SourceTree, fn: Node) -> Optional[InstructionHandler]:
    if fn.type != "function_item":
        return None
    parameters = fn.child_by_field_name("parameters")
    if parameters is None:
        return None

    context = None
    params: List[InstructionParam] = []
    for param in parameters.named_children:
        if param.type != "parameter":
            continue
        pattern = param.child_by_field_name("pattern")
        ptype = param.child_by_field_name("type")
        if ptype is None:
            continue
        ctx_name = context_type_name(tree, ptype) if context is None else None
        if ctx_name is not None:
            context = (ctx_name, tree.node_range(ptype))
            continue
        params.append(InstructionParam(
            tree.node_text(pattern), tree.node_text(ptype), tree.node_range(param),
        ))
    if context is None:
        return None

    name_node = fn.child_by_field_name("name")
    return InstructionHandler(
        name=tree.node_text(name_node),
        is_public=any(c.type == "visibility_modifier" for c in fn.children),
        context_name=context[0],
        context_range=context[1],
        params=tuple(params),
        node=fn,
    )


def extract_handlers(tree: SourceTree) -> List[InstructionHandler]:
    handlers = []
    for fn in find_all(tree.root, "function_item"):
        handler = handler_for(tree, fn)
        if handler is not None:
            handlers.append(handler)
    return handlers


__all__ = [
    "AccountCategory",
    "AccountAttribute",
    "AccountField",
    "AccountsContext",
    "InstructionParam",
    "InstructionHandler",
    "MUTABLE_MARKERS",
    "categorize",
    "split_top_level",
    "parse_instruction_params",
    "derived_traits",
    "is_accounts_struct",
    "is_account_data_struct",
    "extract_context",
    "extract_contexts",
    "context_type_name",
    "handler_for",
    "extract_handlers",
]
