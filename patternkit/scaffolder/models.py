"""Pydantic v2 models for template-driven generation.

Covers generation requests and results, the structured data model each
template category expects, and the helpers that build those data models from
a pattern catalog or from a short field description such as
``"name:text,email:email"``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
)

from patternkit.errors import DataModelError
from patternkit.scanner.catalog import PatternCatalog
from patternkit.scanner.matchers import normalize_field_type
from patternkit.scanner.models import FieldSpec, Pattern, PatternKind, field_spec_adapter
from patternkit.utils import capitalize_first, pascal_case, split_words


# ---------------------------------------------------------------------------
# Requests & results
# ---------------------------------------------------------------------------

class TemplateRef(BaseModel):
    """A template addressed by category and name."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    def __str__(self) -> str:
        return f"{self.category}/{self.name}"


class GenerationRequest(BaseModel):
    """One (template, data model, output path) triple."""

    template: TemplateRef
    data: dict[str, Any] = Field(default_factory=dict)
    output_path: Path
    overwrite: bool = Field(default=False, description="Replace the file if it already exists")

    @field_validator("data", mode="before")
    @classmethod
    def _dump_models(cls, value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value.model_dump()
        return value

    @classmethod
    def build(
        cls,
        category: str,
        name: str,
        data: dict[str, Any] | BaseModel,
        output_path: str | Path,
        *,
        overwrite: bool = False,
    ) -> "GenerationRequest":
        return cls(
            template=TemplateRef(category=category, name=name),
            data=data,
            output_path=Path(output_path),
            overwrite=overwrite,
        )


ErrorKind = Literal["template", "data", "render", "write", "cancelled", "duplicate-output"]


class GenerationError(BaseModel):
    """A failure confined to one generation request."""

    request_index: int = Field(..., ge=0)
    template: str = Field(..., description="category/name of the request's template")
    output_path: str
    kind: ErrorKind
    message: str
    line: Optional[int] = None

    def describe(self) -> str:
        where = f" (line {self.line})" if self.line is not None else ""
        return f"request #{self.request_index + 1} [{self.template}] {self.kind}{where}: {self.message}"


class RenderedFile(BaseModel):
    """Template output waiting to be written."""

    request_index: int
    output_path: Path
    content: str
    overwrite: bool = False


class GenerationResult(BaseModel):
    """Aggregate outcome of a generation run."""

    written: list[str] = Field(default_factory=list)
    errors: list[GenerationError] = Field(default_factory=list)
    aborted: bool = False

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        """False when any request failed or the run was aborted."""
        return not self.errors and not self.aborted


# ---------------------------------------------------------------------------
# Per-category data models
# ---------------------------------------------------------------------------

class FormModel(BaseModel):
    """Data for ``forms`` templates."""

    name: str = Field(..., min_length=1, description="Component name, e.g. UserForm")
    entity: str = Field(..., min_length=1)
    title: Optional[str] = None
    fields: list[FieldSpec] = Field(..., min_length=1)
    validation: Literal["yup", "zod", "none"] = "yup"
    layout: Literal["vertical", "horizontal", "grid"] = "vertical"


class DomainModel(BaseModel):
    """Data for ``domain`` templates (DTO / entity classes)."""

    name: str = Field(..., min_length=1)
    fields: list[FieldSpec] = Field(..., min_length=1)
    id_type: Literal["string", "number"] = "string"
    with_validation: bool = True


class NavigationItem(BaseModel):
    label: str = Field(..., min_length=1)
    link: str = Field(..., min_length=1)
    category: Optional[str] = None
    icon: Optional[str] = None
    component: Optional[str] = None
    show_in_sidebar: bool = True


class NavigationModel(BaseModel):
    """Data for ``navigation`` templates."""

    name: str = Field(..., min_length=1)
    items: list[NavigationItem] = Field(..., min_length=1)


class ServiceModel(BaseModel):
    """Data for ``services`` templates (remote API services)."""

    name: str = Field(..., min_length=1)
    entity: str = Field(..., min_length=1)
    endpoint: str = Field(..., min_length=1)
    base: str = "ArchbaseRemoteApiService"
    id_type: Literal["string", "number"] = "string"


CATEGORY_SCHEMAS: dict[str, type[BaseModel]] = {
    "forms": FormModel,
    "domain": DomainModel,
    "navigation": NavigationModel,
    "services": ServiceModel,
}


def validate_data(category: str, data: dict[str, Any]) -> dict[str, Any]:
    """Check *data* against the schema for *category*.

    Categories without a schema pass their data through unchanged.

    Raises:
        DataModelError: If the data does not satisfy the schema.
    """
    schema = CATEGORY_SCHEMAS.get(category)
    if schema is None:
        return data
    try:
        model = schema.model_validate(data)
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ()))
            problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        raise DataModelError(category, problems) from exc
    return model.model_dump()


# ---------------------------------------------------------------------------
# Description-driven models
# ---------------------------------------------------------------------------

def parse_field_list(spec: str) -> list[Any]:
    """Build field specs from ``"name:type,other:type"``.

    The type defaults to ``text``; a trailing ``?`` on the name marks the
    field optional, otherwise it is required.

    Raises:
        DataModelError: If an entry is empty or its type is unknown.
    """
    fields: list[Any] = []
    problems: list[str] = []
    for raw in spec.split(","):
        item = raw.strip()
        if not item:
            continue
        name, _, field_type = item.partition(":")
        name = name.strip()
        required = not name.endswith("?")
        name = name.rstrip("?").strip()
        if not name:
            problems.append(f"'{item}': missing field name")
            continue
        data = {
            "name": name,
            "type": normalize_field_type(field_type or "text"),
            "required": required,
            "label": capitalize_first(" ".join(split_words(name)) or name),
        }
        try:
            fields.append(field_spec_adapter.validate_python(data))
        except ValidationError:
            problems.append(f"'{item}': unknown field type '{field_type.strip()}'")
    if problems:
        raise DataModelError("fields", problems)
    if not fields:
        raise DataModelError("fields", ["no fields given"])
    return fields


# ---------------------------------------------------------------------------
# Catalog-driven models
# ---------------------------------------------------------------------------

def resolve_attributes(pattern: Pattern, prefer_source: Optional[str] = None) -> dict[str, Any]:
    """Collapse a catalog entry's conflicts into one value per attribute.

    The variant contributed by *prefer_source* wins; otherwise the variant
    backed by the most sources, ties going to the smallest serialised value.
    """
    attributes = dict(pattern.attributes)
    for key, variants in pattern.conflicts.items():
        if not variants:
            continue
        own = [v for v in variants if prefer_source is not None and prefer_source in v.sources]
        if own:
            attributes[key] = own[0].value
            continue
        best = min(
            variants,
            key=lambda v: (-len(v.sources), json.dumps(v.value, sort_keys=True, default=str)),
        )
        attributes[key] = best.value
    return attributes


def _catalog_fields(catalog: PatternCatalog, category: str, source: Optional[str]) -> list[Any]:
    """Field specs for the catalog's form fields.

    Raises:
        DataModelError: If a resolved combination of conflicting attributes
            is not a valid field.
    """
    fields = []
    problems = []
    for pattern in catalog.query(PatternKind.FORM_FIELD, source=source):
        attributes = resolve_attributes(pattern, prefer_source=source)
        try:
            fields.append(field_spec_adapter.validate_python({**attributes, "name": pattern.name}))
        except ValidationError as exc:
            for err in exc.errors():
                loc = ".".join(str(p) for p in err.get("loc", ()))
                problems.append(f"field '{pattern.name}' {loc}: {err.get('msg')}")
    if problems:
        raise DataModelError(category, problems)
    return fields


def form_model_from_catalog(
    catalog: PatternCatalog,
    entity: str,
    source: Optional[str] = None,
    *,
    validation: Literal["yup", "zod", "none"] = "yup",
) -> FormModel:
    """Form data model built from the catalog's form-field patterns.

    Args:
        catalog: Scanned catalog.
        entity: Entity the form edits, e.g. ``"User"``.
        source: Restrict fields to those extracted from this file.
        validation: Validation library for the generated form.

    Raises:
        DataModelError: If no form fields match.
    """
    fields = _catalog_fields(catalog, "forms", source)
    if not fields:
        scope = f" in {source}" if source else ""
        raise DataModelError("forms", [f"no form-field patterns found{scope}"])
    return FormModel(
        name=f"{pascal_case(entity)}Form",
        entity=pascal_case(entity),
        title=capitalize_first(entity),
        fields=fields,
        validation=validation,
    )


def domain_model_from_catalog(
    catalog: PatternCatalog,
    entity: str,
    source: Optional[str] = None,
) -> DomainModel:
    """Domain (DTO) data model built from the catalog's form-field patterns."""
    fields = _catalog_fields(catalog, "domain", source)
    if not fields:
        scope = f" in {source}" if source else ""
        raise DataModelError("domain", [f"no form-field patterns found{scope}"])
    return DomainModel(name=pascal_case(entity), fields=fields)


def navigation_model_from_catalog(
    catalog: PatternCatalog,
    name: str,
    category: Optional[str] = None,
) -> NavigationModel:
    """Navigation data model built from the catalog's navigation items.

    Args:
        catalog: Scanned catalog.
        name: Name of the generated navigation module.
        category: Only include items whose ``category`` attribute matches.
    """
    items = []
    for pattern in catalog.query(PatternKind.NAVIGATION_ITEM):
        attributes = resolve_attributes(pattern)
        if category is not None and attributes.get("category") != category:
            continue
        label = attributes.get("label")
        items.append(
            NavigationItem(
                label=label if isinstance(label, str) and label else pattern.name,
                link=pattern.name,
                category=_optional_str(attributes.get("category")),
                icon=_optional_str(attributes.get("icon")),
                component=_optional_str(attributes.get("component")),
                show_in_sidebar=attributes.get("showInSidebar", True) is not False,
            )
        )
    if not items:
        raise DataModelError("navigation", ["no navigation-item patterns found"])
    return NavigationModel(name=name, items=items)


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None
