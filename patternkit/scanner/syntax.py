"""Tree-sitter parsing and node helpers.

Every dialect is parsed into a tree-sitter syntax tree.  The helpers below
read the generic tree by node type and field name only, so matchers stay
purely structural and never depend on resolved types.
"""

from __future__ import annotations

import functools
from collections.abc import Iterator
from typing import Any, Optional

import tree_sitter_java
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from patternkit.errors import ParseError

from .models import Dialect, SourceFile


class _Unresolved:
    """Marker for expressions that are not compile-time literals."""

    _instance: Optional["_Unresolved"] = None

    def __new__(cls) -> "_Unresolved":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False


UNRESOLVED: Any = _Unresolved()

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"', "`": "`"}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

@functools.lru_cache(maxsize=None)
def language_for(dialect: Dialect) -> Language:
    """Return the tree-sitter grammar used for *dialect*.

    JavaScript is parsed with the TSX grammar so JSX inside ``.js`` files is
    understood.
    """
    if dialect is Dialect.TYPESCRIPT:
        return Language(tree_sitter_typescript.language_typescript())
    if dialect is Dialect.JAVA:
        return Language(tree_sitter_java.language())
    return Language(tree_sitter_typescript.language_tsx())


def parse_source(source: SourceFile) -> Tree:
    """Parse *source* into a syntax tree.

    Parsers are created per call because tree-sitter parsers must not be
    shared between threads.

    Raises:
        ParseError: If the tree contains syntax errors.
    """
    parser = Parser(language_for(source.dialect))
    tree = parser.parse(source.content.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root) or root
        line, column = bad.start_point
        snippet = node_text(bad).strip().splitlines()
        near = f" near '{snippet[0][:40]}'" if snippet else ""
        kind = "missing token" if bad.is_missing else "syntax error"
        raise ParseError(source.path, f"{kind}{near}", line + 1, column + 1)
    return tree


def _first_error(node: Node) -> Optional[Node]:
    for current in walk(node, named_only=False):
        if current.type == "ERROR" or current.is_missing:
            return current
    return None


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

def walk(node: Node, named_only: bool = True) -> Iterator[Node]:
    """Yield *node* and its descendants in document order (pre-order)."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        children = current.named_children if named_only else current.children
        stack.extend(reversed(children))


def named(node: Node) -> list[Node]:
    """Named children of *node*, without comments."""
    return [child for child in node.named_children if child.type != "comment"]


def node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Literal values
# ---------------------------------------------------------------------------

def _unquote(raw: str) -> str:
    body = raw[1:-1] if len(raw) >= 2 else ""
    if "\\" not in body:
        return body
    out: list[str] = []
    chars = iter(body)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append(_ESCAPES.get(nxt, nxt))
        else:
            out.append(ch)
    return "".join(out)


def _number(raw: str) -> Any:
    cleaned = raw.replace("_", "").rstrip("lLfFdD")
    try:
        return int(cleaned, 0)
    except ValueError:
        pass
    try:
        return float(cleaned)
    except ValueError:
        return UNRESOLVED


def literal_value(node: Optional[Node]) -> Any:
    """Convert a literal expression node to a Python value.

    Returns ``UNRESOLVED`` for anything that is not a literal (identifiers,
    calls, JSX, template strings with substitutions, ...).
    """
    if node is None:
        return UNRESOLVED
    kind = node.type
    if kind in ("string", "string_literal"):
        return _unquote(node_text(node))
    if kind == "template_string":
        if any(child.type == "template_substitution" for child in node.named_children):
            return UNRESOLVED
        return _unquote(node_text(node))
    if kind in ("number", "decimal_integer_literal", "decimal_floating_point_literal",
                "hex_integer_literal"):
        return _number(node_text(node))
    if kind == "true":
        return True
    if kind == "false":
        return False
    if kind in ("null", "undefined", "null_literal"):
        return None
    if kind == "unary_expression":
        operand = named(node)
        op = node.child_by_field_name("operator")
        value = literal_value(operand[-1]) if operand else UNRESOLVED
        if node_text(op) == "-" and isinstance(value, (int, float)) and not isinstance(value, bool):
            return -value
        return UNRESOLVED
    if kind in ("parenthesized_expression", "as_expression", "satisfies_expression"):
        inner = named(node)
        return literal_value(inner[0]) if inner else UNRESOLVED
    if kind == "array":
        values = [literal_value(child) for child in named(node)]
        if any(v is UNRESOLVED for v in values):
            return UNRESOLVED
        return values
    if kind == "object":
        result: dict[str, Any] = {}
        for key, value_node in object_entries(node).items():
            value = literal_value(value_node)
            if value is not UNRESOLVED:
                result[key] = value
        return result
    return UNRESOLVED


def describe_value(node: Optional[Node]) -> Any:
    """Literal value, or a short structural description of *node*.

    JSX elements are reduced to their element name and identifiers/member
    expressions to their source text; other expressions are ``UNRESOLVED``.
    """
    value = literal_value(node)
    if value is not UNRESOLVED or node is None:
        return value
    if node.type in ("jsx_element", "jsx_self_closing_element"):
        return jsx_name(node)
    if node.type in ("identifier", "member_expression", "property_identifier"):
        return node_text(node)
    return UNRESOLVED


# ---------------------------------------------------------------------------
# Objects
# ---------------------------------------------------------------------------

def property_key(node: Optional[Node]) -> Optional[str]:
    if node is None:
        return None
    if node.type in ("property_identifier", "identifier", "private_property_identifier"):
        return node_text(node)
    if node.type == "string":
        return _unquote(node_text(node))
    if node.type == "number":
        return node_text(node)
    return None


def object_entries(node: Node) -> dict[str, Node]:
    """Map of key -> value node for the ``pair`` children of an object literal."""
    entries: dict[str, Node] = {}
    for child in named(node):
        if child.type != "pair":
            continue
        key = property_key(child.child_by_field_name("key"))
        value = child.child_by_field_name("value")
        if key is not None and value is not None:
            entries[key] = value
    return entries


# ---------------------------------------------------------------------------
# Calls
# ---------------------------------------------------------------------------

def callee_name(node: Node) -> str:
    """Last identifier of a call's callee (``a.b.useThing`` -> ``useThing``)."""
    target = node.child_by_field_name("function") or node.child_by_field_name("constructor")
    if target is None:
        return ""
    if target.type == "member_expression":
        return node_text(target.child_by_field_name("property"))
    return node_text(target)


def call_arguments(node: Node) -> list[Node]:
    args = node.child_by_field_name("arguments")
    return named(args) if args is not None else []


# ---------------------------------------------------------------------------
# JSX
# ---------------------------------------------------------------------------

def _jsx_tag(node: Node) -> Node:
    if node.type == "jsx_element":
        return node.child_by_field_name("open_tag") or named(node)[0]
    return node


def jsx_name(node: Node) -> str:
    tag = _jsx_tag(node)
    name = tag.child_by_field_name("name")
    if name is None:
        children = named(tag)
        name = children[0] if children else None
    return node_text(name)


def jsx_attributes(node: Node) -> dict[str, Optional[Node]]:
    """Map of prop name -> value node (``None`` for bare boolean props)."""
    attrs: dict[str, Optional[Node]] = {}
    for child in named(_jsx_tag(node)):
        if child.type != "jsx_attribute":
            continue
        parts = named(child)
        if not parts:
            continue
        value = parts[1] if len(parts) > 1 else None
        if value is not None and value.type == "jsx_expression":
            inner = named(value)
            value = inner[0] if inner else None
        attrs[node_text(parts[0])] = value
    return attrs


def jsx_prop_value(value: Optional[Node]) -> Any:
    """Literal value of a JSX prop; a bare prop (``<X required />``) is ``True``."""
    if value is None:
        return True
    return literal_value(value)


# ---------------------------------------------------------------------------
# Java annotations
# ---------------------------------------------------------------------------

def java_annotations(node: Node) -> list[tuple[str, dict[str, Any]]]:
    """Annotations on a Java declaration as ``(name, {key: literal})`` pairs.

    A single positional argument is stored under ``"value"``.
    """
    result: list[tuple[str, dict[str, Any]]] = []
    for child in named(node):
        if child.type != "modifiers":
            continue
        for mod in named(child):
            if mod.type not in ("marker_annotation", "annotation"):
                continue
            name = node_text(mod.child_by_field_name("name")).split(".")[-1]
            args: dict[str, Any] = {}
            arg_list = mod.child_by_field_name("arguments")
            if arg_list is not None:
                for arg in named(arg_list):
                    if arg.type == "element_value_pair":
                        key = node_text(arg.child_by_field_name("key"))
                        args[key] = literal_value(arg.child_by_field_name("value"))
                    else:
                        args["value"] = literal_value(arg)
            result.append((name, args))
    return result
