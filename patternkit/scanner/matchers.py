"""Structural matchers.

A ``Matcher`` is a (predicate, extractor) pair bound to one ``PatternKind``
and a set of syntax-node types.  The extractor's tree visitor asks the
``MatcherRegistry`` which matchers handle each node, so supporting a new
framework means registering a new matcher; the traversal never changes.

Matching is shape- and name-based only.  No type resolution is attempted.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Optional

from tree_sitter import Node

from patternkit.config import ScanConfig

from .models import Dialect, Pattern, PatternKind, SourceFile, SourceLocation
from .syntax import (
    UNRESOLVED,
    call_arguments,
    callee_name,
    describe_value,
    java_annotations,
    jsx_attributes,
    jsx_name,
    jsx_prop_value,
    literal_value,
    named,
    node_text,
    object_entries,
    property_key,
    walk,
)


ALL_DIALECTS: frozenset[Dialect] = frozenset(Dialect)
SCRIPT_DIALECTS: frozenset[Dialect] = frozenset(
    {Dialect.TSX, Dialect.TYPESCRIPT, Dialect.JAVASCRIPT}
)
JSX_DIALECTS: frozenset[Dialect] = frozenset({Dialect.TSX, Dialect.JAVASCRIPT})


# ---------------------------------------------------------------------------
# Field-type normalisation
# ---------------------------------------------------------------------------

_FIELD_TYPE_SYNONYMS: dict[str, str] = {
    "text": "text",
    "string": "text",
    "str": "text",
    "char": "text",
    "uuid": "text",
    "email": "email",
    "password": "password",
    "textarea": "textarea",
    "richtext": "textarea",
    "number": "number",
    "int": "number",
    "integer": "number",
    "long": "number",
    "short": "number",
    "decimal": "decimal",
    "float": "decimal",
    "double": "decimal",
    "bigdecimal": "decimal",
    "currency": "decimal",
    "money": "decimal",
    "boolean": "boolean",
    "bool": "boolean",
    "checkbox": "boolean",
    "switch": "boolean",
    "date": "date",
    "localdate": "date",
    "datetime": "datetime",
    "localdatetime": "datetime",
    "timestamp": "datetime",
    "instant": "datetime",
    "enum": "enum",
    "select": "enum",
    "radio": "enum",
    "array": "array",
    "list": "array",
    "set": "array",
    "tags": "array",
}

# Editor components that bind a field through ``dataField``.
EDITOR_FIELD_TYPES: dict[str, str] = {
    "ArchbaseEdit": "text",
    "ArchbaseTextArea": "textarea",
    "ArchbaseRichTextEdit": "textarea",
    "ArchbasePasswordEdit": "password",
    "ArchbaseNumberEdit": "number",
    "ArchbaseNumberInput": "number",
    "ArchbaseMaskEdit": "text",
    "ArchbaseCheckbox": "boolean",
    "ArchbaseSwitch": "boolean",
    "ArchbaseSelect": "enum",
    "ArchbaseAsyncSelect": "enum",
    "ArchbaseRadioGroup": "enum",
    "ArchbaseLookupEdit": "enum",
    "ArchbaseDate": "date",
    "ArchbaseDatePicker": "date",
    "ArchbaseDateTimePicker": "datetime",
    "ArchbaseTagInput": "array",
}

_REQUIRED_DECORATORS = {"IsNotEmpty", "IsDefined", "Required", "NotEmpty", "NotNull", "NotBlank"}
_OPTIONAL_DECORATORS = {"IsOptional", "Nullable"}
_TYPE_DECORATORS: dict[str, str] = {
    "IsEmail": "email",
    "Email": "email",
    "IsString": "text",
    "IsNumber": "number",
    "IsInt": "number",
    "IsPositive": "number",
    "IsDecimal": "decimal",
    "Digits": "decimal",
    "IsBoolean": "boolean",
    "IsDate": "date",
    "IsDateString": "date",
    "Past": "date",
    "Future": "date",
    "IsEnum": "enum",
    "IsIn": "enum",
    "IsArray": "array",
}
_LENGTH_DECORATORS = {"MinLength", "MaxLength", "Length", "Size"}
_RANGE_DECORATORS = {"Min", "Max", "DecimalMin", "DecimalMax"}
VALIDATION_DECORATORS: frozenset[str] = frozenset(
    _REQUIRED_DECORATORS
    | _OPTIONAL_DECORATORS
    | set(_TYPE_DECORATORS)
    | _LENGTH_DECORATORS
    | _RANGE_DECORATORS
)

_SCHEMA_ROOTS = {"yup", "z"}
_SCHEMA_TYPES: dict[str, str] = {
    "string": "text",
    "mixed": "text",
    "number": "number",
    "bigint": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "date": "date",
    "array": "array",
    "enum": "enum",
    "nativeEnum": "enum",
}

_JAVA_TYPES: dict[str, str] = {
    "String": "text",
    "UUID": "text",
    "Character": "text",
    "char": "text",
    "Integer": "number",
    "int": "number",
    "Long": "number",
    "long": "number",
    "Short": "number",
    "short": "number",
    "BigInteger": "number",
    "BigDecimal": "decimal",
    "Double": "decimal",
    "double": "decimal",
    "Float": "decimal",
    "float": "decimal",
    "Boolean": "boolean",
    "boolean": "boolean",
    "LocalDate": "date",
    "Date": "date",
    "LocalDateTime": "datetime",
    "Instant": "datetime",
    "OffsetDateTime": "datetime",
    "ZonedDateTime": "datetime",
}

_HERITAGE_PATTERN = re.compile(r"extends\s+([\w.]+)\s*(?:<\s*([\w.]+))?")


def normalize_field_type(raw: str) -> str:
    """Map a field-type spelling onto the closed set of field types.

    Unknown spellings are returned lower-cased so catalog validation can
    reject them with a meaningful message.
    """
    key = raw.strip().replace("_", "").replace("-", "").lower()
    return _FIELD_TYPE_SYNONYMS.get(key, raw.strip().lower())


def ts_annotation_field_type(annotation: str) -> str:
    """Infer a field type from a TypeScript type annotation such as ``: string``."""
    text = annotation.lstrip(":").strip()
    parts = [p.strip() for p in text.split("|") if p.strip() not in ("undefined", "null", "")]
    text = parts[0] if parts else "string"
    if text.endswith("[]") or text.startswith(("Array<", "ReadonlyArray<", "Set<")):
        return "array"
    if text == "Date":
        return "date"
    lowered = text.lower()
    if lowered in ("string", "number", "boolean"):
        return normalize_field_type(lowered)
    if text[:1].isupper():
        return "enum"
    return "text"


def java_field_type(type_text: str) -> str:
    """Infer a field type from a Java declared type."""
    base = type_text.strip()
    if base.endswith("[]") or re.match(r"^(List|Set|Collection|Iterable)\b", base):
        return "array"
    if base in _JAVA_TYPES:
        return _JAVA_TYPES[base]
    if base[:1].isupper():
        return "enum"
    return "text"


# ---------------------------------------------------------------------------
# Matcher plumbing
# ---------------------------------------------------------------------------

@dataclass
class MatchContext:
    """Per-file state shared by all matchers while one tree is visited."""

    source: SourceFile
    settings: ScanConfig
    imports: dict[str, str] = field(default_factory=dict)

    def location(self, node: Node) -> SourceLocation:
        line, column = node.start_point
        return SourceLocation(path=self.source.path, line=line + 1, column=column + 1)

    def pattern(
        self,
        kind: PatternKind,
        name: str,
        attributes: dict[str, Any],
        node: Node,
    ) -> Optional[Pattern]:
        normalized = name.strip()
        if not normalized:
            return None
        return Pattern(
            kind=kind,
            name=normalized,
            attributes=attributes,
            location=self.location(node),
            sources={self.source.path},
        )

    def is_component(self, name: str) -> bool:
        if not name or not name[:1].isupper():
            return False
        if name in self.settings.known_components:
            return True
        if any(name.startswith(prefix) for prefix in self.settings.component_prefixes):
            return True
        root = name.split(".")[0]
        return self.imports.get(root) in self.settings.component_modules


Predicate = Callable[[Node, MatchContext], bool]
Extractor = Callable[[Node, MatchContext], Iterable[Pattern]]


@dataclass(frozen=True)
class Matcher:
    """A predicate-plus-extractor pair for one pattern kind."""

    name: str
    kind: PatternKind
    node_types: frozenset[str]
    predicate: Predicate
    extractor: Extractor
    dialects: frozenset[Dialect] = ALL_DIALECTS

    def match(self, node: Node, ctx: MatchContext) -> list[Pattern]:
        if not self.predicate(node, ctx):
            return []
        return [p for p in self.extractor(node, ctx) if p is not None]


class MatcherRegistry:
    """An ordered, name-keyed set of matchers indexed by node type."""

    def __init__(self, matchers: Iterable[Matcher] = ()) -> None:
        self._matchers: dict[str, Matcher] = {}
        for matcher in matchers:
            self.register(matcher)

    def register(self, matcher: Matcher) -> None:
        """Add *matcher*, replacing any matcher registered under the same name."""
        self._matchers[matcher.name] = matcher

    def unregister(self, name: str) -> None:
        self._matchers.pop(name, None)

    def for_node(self, node_type: str, dialect: Dialect) -> list[Matcher]:
        return [
            m for m in self._matchers.values()
            if node_type in m.node_types and dialect in m.dialects
        ]

    @property
    def node_types(self) -> frozenset[str]:
        types: set[str] = set()
        for matcher in self._matchers.values():
            types |= matcher.node_types
        return frozenset(types)

    def names(self) -> list[str]:
        return list(self._matchers)

    def __iter__(self) -> Iterator[Matcher]:
        return iter(list(self._matchers.values()))

    def __len__(self) -> int:
        return len(self._matchers)

    def __contains__(self, name: object) -> bool:
        return name in self._matchers


def collect_imports(root: Node) -> dict[str, str]:
    """Map local binding name -> module for top-level ES imports."""
    imports: dict[str, str] = {}
    for stmt in named(root):
        if stmt.type != "import_statement":
            continue
        module = literal_value(stmt.child_by_field_name("source"))
        if not isinstance(module, str):
            continue
        for node in walk(stmt):
            if node.type == "import_specifier":
                alias = node.child_by_field_name("alias")
                local = alias or node.child_by_field_name("name")
                imports[node_text(local)] = module
            elif node.type == "import_clause":
                for child in named(node):
                    if child.type == "identifier":
                        imports[node_text(child)] = module
            elif node.type == "namespace_import":
                for child in named(node):
                    if child.type == "identifier":
                        imports[node_text(child)] = module
    return imports


# ---------------------------------------------------------------------------
# form-field: object literal {name, type, ...}
# ---------------------------------------------------------------------------

def _is_field_literal(node: Node, ctx: MatchContext) -> bool:
    entries = object_entries(node)
    if "name" not in entries or "type" not in entries:
        return False
    name = literal_value(entries["name"])
    kind = literal_value(entries["type"])
    return isinstance(name, str) and bool(name.strip()) and isinstance(kind, str)


def _extract_field_literal(node: Node, ctx: MatchContext) -> Iterator[Pattern]:
    entries = object_entries(node)
    attributes: dict[str, Any] = {}
    for key, value_node in entries.items():
        if key == "name":
            continue
        value = literal_value(value_node)
        if value is not UNRESOLVED:
            attributes[key] = value
    attributes["type"] = normalize_field_type(attributes["type"])
    pattern = ctx.pattern(PatternKind.FORM_FIELD, literal_value(entries["name"]), attributes, node)
    if pattern is not None:
        yield pattern


# ---------------------------------------------------------------------------
# form-field: <Editor dataField="x" ... />
# ---------------------------------------------------------------------------

def _is_jsx_field(node: Node, ctx: MatchContext) -> bool:
    attrs = jsx_attributes(node)
    if "dataField" not in attrs:
        return False
    return isinstance(jsx_prop_value(attrs["dataField"]), str)


def _extract_jsx_field(node: Node, ctx: MatchContext) -> Iterator[Pattern]:
    attrs = jsx_attributes(node)
    component = jsx_name(node)
    field_name = jsx_prop_value(attrs["dataField"])
    declared = jsx_prop_value(attrs["type"]) if "type" in attrs else UNRESOLVED
    if isinstance(declared, str):
        field_type = normalize_field_type(declared)
    else:
        field_type = EDITOR_FIELD_TYPES.get(component, "text")
    attributes: dict[str, Any] = {"type": field_type, "component": component}
    for prop, key in (("required", "required"), ("label", "label"), ("placeholder", "placeholder")):
        if prop in attrs:
            value = jsx_prop_value(attrs[prop])
            if value is not UNRESOLVED:
                attributes[key] = value
    pattern = ctx.pattern(PatternKind.FORM_FIELD, field_name, attributes, node)
    if pattern is not None:
        yield pattern


# ---------------------------------------------------------------------------
# form-field: decorated class members (class-validator style)
# ---------------------------------------------------------------------------

def _decorator_calls(node: Node) -> list[tuple[str, list[Any]]]:
    """Decorators attached to a class member, as ``(name, literal args)``."""
    decorators = [child for child in named(node) if child.type == "decorator"]
    if not decorators:
        sibling = node.prev_named_sibling
        while sibling is not None and sibling.type == "decorator":
            decorators.insert(0, sibling)
            sibling = sibling.prev_named_sibling
    result: list[tuple[str, list[Any]]] = []
    for decorator in decorators:
        inner = named(decorator)
        if not inner:
            continue
        expr = inner[0]
        if expr.type == "call_expression":
            args = [literal_value(arg) for arg in call_arguments(expr)]
            result.append((callee_name(expr), args))
        else:
            result.append((node_text(expr).split(".")[-1], []))
    return result


def _apply_validation_rules(
    attributes: dict[str, Any],
    rules: list[tuple[str, dict[str, Any]]],
) -> None:
    """Fold decorator/annotation rules into field attributes.

    Each rule is ``(name, args)`` where positional arguments are keyed
    ``"0"``, ``"1"``, ... and named ones by their name.
    """
    for rule, args in rules:
        first = args.get("0", args.get("value"))
        if rule in _REQUIRED_DECORATORS:
            attributes["required"] = True
        elif rule in _OPTIONAL_DECORATORS:
            attributes.setdefault("required", False)
        if rule in _TYPE_DECORATORS:
            attributes["type"] = _TYPE_DECORATORS[rule]
            if rule == "IsIn" and isinstance(first, list):
                attributes["options"] = first
        if rule == "MinLength" and isinstance(first, int):
            attributes["min_length"] = first
        elif rule == "MaxLength" and isinstance(first, int):
            attributes["max_length"] = first
        elif rule in ("Length", "Size"):
            low = args.get("min", first if rule == "Length" else None)
            high = args.get("max", args.get("1"))
            if isinstance(low, int):
                attributes["min_length"] = low
            if isinstance(high, int):
                attributes["max_length"] = high
        elif rule in ("Min", "DecimalMin") and isinstance(first, (int, float, str)):
            attributes["min"] = _as_number(first)
        elif rule in ("Max", "DecimalMax") and isinstance(first, (int, float, str)):
            attributes["max"] = _as_number(first)


def _as_number(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return float(value) if "." in value else int(value)
        except ValueError:
            return value
    return value


def _is_decorated_member(node: Node, ctx: MatchContext) -> bool:
    return any(name in VALIDATION_DECORATORS for name, _ in _decorator_calls(node))


def _extract_decorated_member(node: Node, ctx: MatchContext) -> Iterator[Pattern]:
    name = property_key(node.child_by_field_name("name"))
    if not name:
        return
    annotation = node.child_by_field_name("type")
    attributes: dict[str, Any] = {
        "type": ts_annotation_field_type(node_text(annotation)) if annotation else "text",
    }
    if any(child.type == "?" for child in node.children):
        attributes["required"] = False
    rules = [
        (rule, {str(i): arg for i, arg in enumerate(args) if arg is not UNRESOLVED})
        for rule, args in _decorator_calls(node)
    ]
    _apply_validation_rules(attributes, rules)
    pattern = ctx.pattern(PatternKind.FORM_FIELD, name, attributes, node)
    if pattern is not None:
        yield pattern


# ---------------------------------------------------------------------------
# form-field: yup / zod schema chains
# ---------------------------------------------------------------------------

def _schema_chain(node: Optional[Node]) -> tuple[str, list[tuple[str, list[Node]]]]:
    """Unwind ``yup.string().email().required()`` into its root and method calls."""
    calls: list[tuple[str, list[Node]]] = []
    current = node
    while current is not None and current.type == "call_expression":
        fn = current.child_by_field_name("function")
        if fn is None or fn.type != "member_expression":
            return "", []
        calls.append((node_text(fn.child_by_field_name("property")), call_arguments(current)))
        current = fn.child_by_field_name("object")
    if current is None or current.type != "identifier":
        return "", []
    calls.reverse()
    return node_text(current), calls


def _is_schema_field(node: Node, ctx: MatchContext) -> bool:
    if property_key(node.child_by_field_name("key")) is None:
        return False
    root, calls = _schema_chain(node.child_by_field_name("value"))
    return root in _SCHEMA_ROOTS and bool(calls) and calls[0][0] in _SCHEMA_TYPES


def _extract_schema_field(node: Node, ctx: MatchContext) -> Iterator[Pattern]:
    name = property_key(node.child_by_field_name("key")) or ""
    root, calls = _schema_chain(node.child_by_field_name("value"))
    base, base_args = calls[0]
    field_type = _SCHEMA_TYPES[base]
    attributes: dict[str, Any] = {"type": field_type, "required": root == "z"}
    if field_type == "enum" and base_args:
        options = literal_value(base_args[0])
        if isinstance(options, list):
            attributes["options"] = options
    numeric = field_type == "number"
    for method, args in calls[1:]:
        first = literal_value(args[0]) if args else UNRESOLVED
        if method == "required" or method == "nonempty":
            attributes["required"] = True
        elif method in ("optional", "nullable", "nullish", "notRequired"):
            attributes["required"] = False
        elif method == "email":
            attributes["type"] = "email"
        elif method in ("integer", "int"):
            attributes["type"] = "number"
        elif method in ("min", "max", "length") and isinstance(first, (int, float)):
            if numeric:
                attributes["min" if method == "min" else "max"] = first
            elif method == "length":
                attributes["min_length"] = first
                attributes["max_length"] = first
            else:
                attributes["min_length" if method == "min" else "max_length"] = first
    pattern = ctx.pattern(PatternKind.FORM_FIELD, name, attributes, node)
    if pattern is not None:
        yield pattern


# ---------------------------------------------------------------------------
# form-field: annotated Java fields
# ---------------------------------------------------------------------------

def _is_java_field(node: Node, ctx: MatchContext) -> bool:
    return any(name in VALIDATION_DECORATORS for name, _ in java_annotations(node))


def _extract_java_field(node: Node, ctx: MatchContext) -> Iterator[Pattern]:
    type_node = node.child_by_field_name("type")
    base_type = java_field_type(node_text(type_node))
    rules = java_annotations(node)
    for declarator in named(node):
        if declarator.type != "variable_declarator":
            continue
        name = node_text(declarator.child_by_field_name("name"))
        attributes: dict[str, Any] = {"type": base_type}
        _apply_validation_rules(attributes, rules)
        pattern = ctx.pattern(PatternKind.FORM_FIELD, name, attributes, node)
        if pattern is not None:
            yield pattern


# ---------------------------------------------------------------------------
# component-usage: JSX elements of known components
# ---------------------------------------------------------------------------

def _is_component(node: Node, ctx: MatchContext) -> bool:
    return ctx.is_component(jsx_name(node))


def _extract_component(node: Node, ctx: MatchContext) -> Iterator[Pattern]:
    name = jsx_name(node)
    attributes: dict[str, Any] = {"props": sorted(jsx_attributes(node))}
    module = ctx.imports.get(name.split(".")[0])
    if module:
        attributes["module"] = module
    pattern = ctx.pattern(PatternKind.COMPONENT_USAGE, name, attributes, node)
    if pattern is not None:
        yield pattern


# ---------------------------------------------------------------------------
# datasource-usage: hook / constructor calls
# ---------------------------------------------------------------------------

def _is_datasource_call(node: Node, ctx: MatchContext) -> bool:
    return callee_name(node) in ctx.settings.datasource_hooks


def _assigned_name(node: Node) -> Optional[str]:
    parent = node.parent
    while parent is not None and parent.type in ("await_expression", "parenthesized_expression",
                                                  "as_expression", "non_null_expression"):
        parent = parent.parent
    if parent is not None and parent.type == "variable_declarator":
        target = parent.child_by_field_name("name")
        if target is not None and target.type == "identifier":
            return node_text(target)
    return None


def _extract_datasource_call(node: Node, ctx: MatchContext) -> Iterator[Pattern]:
    hook = callee_name(node)
    attributes: dict[str, Any] = {
        "hook": hook,
        "version": "v2" if "V2" in hook else "v1",
    }
    name: Optional[str] = None
    args = call_arguments(node)
    if args and args[0].type == "object":
        for key, value_node in object_entries(args[0]).items():
            value = literal_value(value_node)
            if value is UNRESOLVED:
                continue
            if key == "name" and isinstance(value, str):
                name = value
            else:
                attributes[key] = value
    name = name or _assigned_name(node) or hook
    pattern = ctx.pattern(PatternKind.DATASOURCE_USAGE, name, attributes, node)
    if pattern is not None:
        yield pattern


# ---------------------------------------------------------------------------
# datasource-usage: remote service classes
# ---------------------------------------------------------------------------

def _heritage(node: Node) -> tuple[str, str]:
    for child in named(node):
        if child.type == "class_heritage":
            match = _HERITAGE_PATTERN.search(node_text(child))
            if match:
                return match.group(1).split(".")[-1], match.group(2) or ""
    return "", ""


def _is_remote_service(node: Node, ctx: MatchContext) -> bool:
    base, _ = _heritage(node)
    return base in ctx.settings.remote_service_bases


def _service_endpoint(node: Node) -> Any:
    body = node.child_by_field_name("body")
    if body is None:
        return UNRESOLVED
    for member in named(body):
        if member.type != "method_definition":
            continue
        if node_text(member.child_by_field_name("name")) != "getEndpoint":
            continue
        for inner in walk(member):
            if inner.type == "return_statement":
                values = named(inner)
                return literal_value(values[0]) if values else UNRESOLVED
    return UNRESOLVED


def _extract_remote_service(node: Node, ctx: MatchContext) -> Iterator[Pattern]:
    base, entity = _heritage(node)
    attributes: dict[str, Any] = {"base": base, "version": "service"}
    if entity:
        attributes["entity"] = entity
    endpoint = _service_endpoint(node)
    if isinstance(endpoint, str):
        attributes["endpoint"] = endpoint
    name = node_text(node.child_by_field_name("name"))
    pattern = ctx.pattern(PatternKind.DATASOURCE_USAGE, name, attributes, node)
    if pattern is not None:
        yield pattern


# ---------------------------------------------------------------------------
# navigation-item: {label, link, ...}
# ---------------------------------------------------------------------------

def _is_navigation_literal(node: Node, ctx: MatchContext) -> bool:
    entries = object_entries(node)
    if "label" not in entries or "link" not in entries:
        return False
    link = literal_value(entries["link"])
    return isinstance(link, str) and bool(link.strip())


def _extract_navigation_literal(node: Node, ctx: MatchContext) -> Iterator[Pattern]:
    entries = object_entries(node)
    link = literal_value(entries["link"]).strip()
    if len(link) > 1:
        link = link.rstrip("/")
    attributes: dict[str, Any] = {}
    for key, value_node in entries.items():
        if key == "link" or value_node.type == "object":
            continue
        value = describe_value(value_node)
        if value is not UNRESOLVED:
            attributes[key] = value
    pattern = ctx.pattern(PatternKind.NAVIGATION_ITEM, link, attributes, node)
    if pattern is not None:
        yield pattern


# ---------------------------------------------------------------------------
# Built-in registry
# ---------------------------------------------------------------------------

_JSX_ELEMENTS = frozenset({"jsx_element", "jsx_self_closing_element"})


def builtin_matchers() -> list[Matcher]:
    """The matchers shipped with PatternKit, in registration order."""
    return [
        Matcher("field-literal", PatternKind.FORM_FIELD, frozenset({"object"}),
                _is_field_literal, _extract_field_literal, SCRIPT_DIALECTS),
        Matcher("jsx-field", PatternKind.FORM_FIELD, _JSX_ELEMENTS,
                _is_jsx_field, _extract_jsx_field, JSX_DIALECTS),
        Matcher("decorated-member", PatternKind.FORM_FIELD, frozenset({"public_field_definition"}),
                _is_decorated_member, _extract_decorated_member, SCRIPT_DIALECTS),
        Matcher("schema-chain", PatternKind.FORM_FIELD, frozenset({"pair"}),
                _is_schema_field, _extract_schema_field, SCRIPT_DIALECTS),
        Matcher("java-field", PatternKind.FORM_FIELD, frozenset({"field_declaration"}),
                _is_java_field, _extract_java_field, frozenset({Dialect.JAVA})),
        Matcher("component-jsx", PatternKind.COMPONENT_USAGE, _JSX_ELEMENTS,
                _is_component, _extract_component, JSX_DIALECTS),
        Matcher("datasource-hook", PatternKind.DATASOURCE_USAGE,
                frozenset({"call_expression", "new_expression"}),
                _is_datasource_call, _extract_datasource_call, SCRIPT_DIALECTS),
        Matcher("remote-service", PatternKind.DATASOURCE_USAGE, frozenset({"class_declaration"}),
                _is_remote_service, _extract_remote_service, SCRIPT_DIALECTS),
        Matcher("navigation-literal", PatternKind.NAVIGATION_ITEM, frozenset({"object"}),
                _is_navigation_literal, _extract_navigation_literal, SCRIPT_DIALECTS),
    ]


def default_registry() -> MatcherRegistry:
    """A fresh registry holding the built-in matchers."""
    return MatcherRegistry(builtin_matchers())
