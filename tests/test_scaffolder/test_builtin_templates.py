"""Render the templates shipped with PatternKit against their data models."""

from __future__ import annotations

from pathlib import Path

import pytest

from patternkit.scaffolder.generator import Generator
from patternkit.scaffolder.models import (
    DomainModel,
    FormModel,
    GenerationRequest,
    NavigationItem,
    NavigationModel,
    ServiceModel,
    parse_field_list,
)
from patternkit.scaffolder.templates import TemplateCache
from patternkit.scanner.catalog import PatternCatalog
from patternkit.scanner.extractor import PatternExtractor
from patternkit.scanner.walker import SourceScanner


pytestmark = pytest.mark.unit


async def _render_one(tmp_path: Path, category: str, name: str, data) -> str:
    generator = Generator(TemplateCache(), output_root=tmp_path)
    result = await generator.generate([GenerationRequest.build(category, name, data, "out.txt")])
    assert result.success, [e.describe() for e in result.errors]
    return (tmp_path / "out.txt").read_text(encoding="utf-8")


USER_FIELDS = [
    {"name": "email", "type": "email", "required": True, "label": "E-mail"},
    {"name": "age", "type": "number", "min": 0},
    {"name": "status", "type": "enum", "options": ["ACTIVE", "BLOCKED"], "required": True},
]


class TestFormTemplate:
    @pytest.mark.asyncio
    async def test_yup_form(self, tmp_path: Path):
        model = FormModel(name="UserForm", entity="User", title="User", fields=USER_FIELDS)
        output = await _render_one(tmp_path, "forms", "form", model)
        assert " * UserForm - form for User" in output
        assert "import * as yup from 'yup'" in output
        assert "export const userSchema = yup.object().shape({" in output
        assert "  email: yup.string().email('Invalid e-mail').required('E-mail is required')," in output
        assert "  age: yup.number().min(0.0)," in output
        assert ".oneOf([\"ACTIVE\", \"BLOCKED\"])" in output
        assert "export function UserForm({ dataSource }: UserFormProps)" in output
        assert 'dataField="email"' in output
        assert "<ArchbaseNumberEdit" in output
        assert "<ArchbaseSelect" in output

    @pytest.mark.asyncio
    async def test_zod_form(self, tmp_path: Path):
        model = FormModel(name="UserForm", entity="User", fields=USER_FIELDS, validation="zod")
        output = await _render_one(tmp_path, "forms", "form", model)
        assert "import { z } from 'zod'" in output
        assert "  email: z.string().email()," in output
        assert "  age: z.number().min(0.0).optional()," in output
        assert "  status: z.enum([\"ACTIVE\", \"BLOCKED\"])," in output
        assert "yup" not in output

    @pytest.mark.asyncio
    async def test_form_from_field_description(self, tmp_path: Path):
        fields = parse_field_list("name:text,birthDate?:date")
        model = FormModel(name="PersonForm", entity="Person", fields=fields, validation="none")
        output = await _render_one(tmp_path, "forms", "form", model)
        assert "Schema" not in output
        assert 'label="Birth date"' in output
        assert "<ArchbaseDatePicker" in output


class TestDomainTemplate:
    @pytest.mark.asyncio
    async def test_dto(self, tmp_path: Path):
        model = DomainModel(name="User", fields=USER_FIELDS)
        output = await _render_one(tmp_path, "domain", "dto", model)
        assert "export class UserDto {" in output
        assert "  @IsEmail()\n  email: string" in output
        assert "  @IsOptional()\n  @IsNumber()\n  age?: number" in output
        assert '@IsIn(["ACTIVE", "BLOCKED"])' in output
        assert "constructor(data: Partial<UserDto> = {})" in output

    @pytest.mark.asyncio
    async def test_dto_without_validation(self, tmp_path: Path):
        model = DomainModel(name="Tag", fields=[{"name": "labels", "type": "array"}], with_validation=False)
        output = await _render_one(tmp_path, "domain", "dto", model)
        assert "class-validator" not in output
        assert "labels?: string[]" in output


class TestNavigationTemplate:
    @pytest.mark.asyncio
    async def test_routes(self, tmp_path: Path):
        model = NavigationModel(
            name="adminRoutes",
            items=[
                NavigationItem(label="Users", link="/admin/users", icon="IconUsers"),
                NavigationItem(label="Settings", link="/admin/settings", show_in_sidebar=False),
            ],
        )
        output = await _render_one(tmp_path, "navigation", "routes", model)
        assert "export const adminRoutes: NavigationEntry[] = [" in output
        assert 'link: "/admin/users",' in output
        assert 'icon: "IconUsers",' in output
        assert "showInSidebar: false," in output


class TestServiceTemplate:
    @pytest.mark.asyncio
    async def test_remote_service(self, tmp_path: Path):
        model = ServiceModel(name="OrderService", entity="Order", endpoint="/api/orders", id_type="number")
        output = await _render_one(tmp_path, "services", "remote_service", model)
        assert "export class OrderService extends ArchbaseRemoteApiService<OrderDto, number> {" in output
        assert 'return "/api/orders"' in output


class TestCatalogTemplate:
    @pytest.mark.asyncio
    async def test_catalog_summary(self, tmp_path: Path, sample_project: Path):
        catalog = PatternCatalog(PatternExtractor().extract_all(SourceScanner(sample_project)).patterns)
        data = catalog.export()
        data["title"] = "sample"
        output = await _render_one(tmp_path, "common", "catalog", data)
        assert output.startswith("# Pattern catalog: sample")
        assert "## form-field" in output
        assert "## navigation-item" in output
        assert "| `email` |" in output

    @pytest.mark.asyncio
    async def test_category_falls_back_to_common(self, tmp_path: Path):
        output = await _render_one(tmp_path, "reports", "catalog", PatternCatalog().export())
        assert "0 pattern(s)" in output
