"""Pydantic v2 models for the PatternKit scanner.

Defines source files, extracted patterns, the closed set of form-field
variants, and the warning/report records returned by a scan run.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Dialect(str, Enum):
    """Source dialect, chosen from the file extension."""
    TSX = "tsx"
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    JAVA = "java"


class PatternKind(str, Enum):
    """Kinds of structurally recognised usage."""
    COMPONENT_USAGE = "component-usage"
    DATASOURCE_USAGE = "datasource-usage"
    FORM_FIELD = "form-field"
    NAVIGATION_ITEM = "navigation-item"


DIALECT_BY_SUFFIX: dict[str, Dialect] = {
    ".tsx": Dialect.TSX,
    ".jsx": Dialect.TSX,
    ".ts": Dialect.TYPESCRIPT,
    ".mts": Dialect.TYPESCRIPT,
    ".cts": Dialect.TYPESCRIPT,
    ".js": Dialect.JAVASCRIPT,
    ".mjs": Dialect.JAVASCRIPT,
    ".cjs": Dialect.JAVASCRIPT,
    ".java": Dialect.JAVA,
}


# ---------------------------------------------------------------------------
# Source files & locations
# ---------------------------------------------------------------------------

class SourceFile(BaseModel):
    """A scanned source file.  Immutable once read."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="POSIX path relative to the scan root")
    content: str = Field(..., description="Raw file content")
    dialect: Dialect = Field(..., description="Detected source dialect")


class SourceLocation(BaseModel):
    """Where a pattern was first seen (1-based line and column)."""

    model_config = ConfigDict(frozen=True)

    path: str
    line: int = Field(default=1, ge=1)
    column: int = Field(default=1, ge=1)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

class AttributeVariant(BaseModel):
    """One of several differing values contributed for the same attribute."""

    value: Any = None
    sources: list[str] = Field(default_factory=list)


class Pattern(BaseModel):
    """A normalised, structurally recognised code usage.

    The identity key is ``(kind, name)``.  ``sources`` is the provenance:
    every file that contributed the pattern.  ``conflicts`` is only populated
    on catalog entries whose contributors disagree on an attribute.
    """

    kind: PatternKind
    name: str = Field(..., min_length=1)
    attributes: dict[str, Any] = Field(default_factory=dict)
    location: Optional[SourceLocation] = None
    sources: set[str] = Field(default_factory=set)
    conflicts: dict[str, list[AttributeVariant]] = Field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind.value, self.name)


# ---------------------------------------------------------------------------
# Form field variants (closed discriminated union)
# ---------------------------------------------------------------------------

class _FieldBase(BaseModel):
    """Attributes shared by every field variant.

    Extra keys (label, placeholder, component, ...) are kept so catalog data
    reaches templates untouched.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    required: bool = False
    label: Optional[str] = None


class TextField(_FieldBase):
    type: Literal["text"] = "text"
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)


class EmailField(_FieldBase):
    type: Literal["email"] = "email"
    max_length: Optional[int] = Field(default=None, ge=0)


class PasswordField(_FieldBase):
    type: Literal["password"] = "password"
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)


class TextAreaField(_FieldBase):
    type: Literal["textarea"] = "textarea"
    max_length: Optional[int] = Field(default=None, ge=0)


class NumberField(_FieldBase):
    type: Literal["number"] = "number"
    min: Optional[float] = None
    max: Optional[float] = None


class DecimalField(_FieldBase):
    type: Literal["decimal"] = "decimal"
    min: Optional[float] = None
    max: Optional[float] = None
    scale: Optional[int] = Field(default=None, ge=0)


class BooleanField(_FieldBase):
    type: Literal["boolean"] = "boolean"


class DateField(_FieldBase):
    type: Literal["date"] = "date"


class DateTimeField(_FieldBase):
    type: Literal["datetime"] = "datetime"


class EnumField(_FieldBase):
    type: Literal["enum"] = "enum"
    options: list[Any] = Field(default_factory=list)


class ArrayField(_FieldBase):
    type: Literal["array"] = "array"
    item_type: str = "text"


FieldSpec = Annotated[
    Union[
        TextField,
        EmailField,
        PasswordField,
        TextAreaField,
        NumberField,
        DecimalField,
        BooleanField,
        DateField,
        DateTimeField,
        EnumField,
        ArrayField,
    ],
    Field(discriminator="type"),
]

FIELD_TYPES: tuple[str, ...] = (
    "text",
    "email",
    "password",
    "textarea",
    "number",
    "decimal",
    "boolean",
    "date",
    "datetime",
    "enum",
    "array",
)

field_spec_adapter: TypeAdapter[Any] = TypeAdapter(FieldSpec)


def field_from_pattern(pattern: Pattern, attributes: Optional[dict[str, Any]] = None) -> Any:
    """Validate a form-field pattern as a ``FieldSpec`` variant.

    Raises ``pydantic.ValidationError`` when the attributes do not describe
    one of the known field types.
    """
    attrs = pattern.attributes if attributes is None else attributes
    return field_spec_adapter.validate_python({**attrs, "name": pattern.name})


# ---------------------------------------------------------------------------
# Warnings & reports
# ---------------------------------------------------------------------------

class ScanWarning(BaseModel):
    """A recoverable problem found while scanning, parsing, or merging."""

    path: str = Field(default="", description="File the warning refers to")
    reason: str = Field(..., description="Human-readable explanation")
    stage: Literal["scan", "parse", "merge", "import"] = "scan"
    line: Optional[int] = None


class CatalogReport(BaseModel):
    """Outcome of a scan/extract/merge run."""

    root: str = ""
    files_scanned: int = Field(default=0, ge=0)
    files_parsed: int = Field(default=0, ge=0)
    patterns_found: int = Field(default=0, ge=0)
    catalog_size: int = Field(default=0, ge=0)
    warnings: list[ScanWarning] = Field(default_factory=list)
    aborted: bool = False

    @computed_field  # type: ignore[misc]
    @property
    def files_failed(self) -> int:
        """Files that were read but could not be parsed."""
        return sum(1 for w in self.warnings if w.stage == "parse")
