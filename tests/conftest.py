"""Shared pytest fixtures for the PatternKit test suite.

Provides reusable fixtures for:
- Sample project trees (TSX form, decorated DTO, yup schema, navigation
  data, remote service, Java entity, a malformed file and excluded paths)
- A small template directory with partials
- Configs pointing at ``tmp_path``
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from patternkit.config import Config, ScanConfig, TemplateConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create *files* (relative path -> content) under *root*."""
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Sample sources
# ---------------------------------------------------------------------------

USER_FORM_TSX = """
    import React from 'react'
    import { ArchbaseEdit, ArchbaseCheckbox, useArchbaseRemoteDataSource } from '@archbase/react'

    const fields = [
      { name: 'email', type: 'email', required: true },
      { name: 'age', type: 'integer', required: false, min: 0 },
    ]

    export function UserForm() {
      const { dataSource } = useArchbaseRemoteDataSource({
        name: 'dsUsers',
        endPointUrl: '/api/users',
        pageSize: 25,
      })
      return (
        <div>
          <ArchbaseEdit dataSource={dataSource} dataField="email" type="email" label="E-mail" required />
          <ArchbaseCheckbox dataSource={dataSource} dataField="active" label="Active" />
        </div>
      )
    }
"""

USER_DTO_TS = """
    import { IsEmail, IsNotEmpty, IsOptional, MaxLength, MinLength } from 'class-validator'

    export class UserDto {
      @IsNotEmpty()
      @MinLength(3)
      @MaxLength(100)
      name: string;

      @IsNotEmpty()
      @IsEmail()
      email: string;

      @IsOptional()
      age?: number;

      constructor(data: Partial<UserDto> = {}) {
        Object.assign(this, data);
      }
    }
"""

USER_SCHEMA_TS = """
    import * as yup from 'yup'

    export const userSchema = yup.object().shape({
      name: yup.string().required().min(3),
      email: yup.string().email().required(),
      age: yup.number().min(0),
    })
"""

NAVIGATION_TSX = """
    import { IconUsers } from '@tabler/icons-react'
    import { UserForm } from '../pages/UserForm'

    export const navigationData = [
      {
        label: 'Users',
        link: '/admin/users',
        category: 'admin',
        icon: <IconUsers size={18} />,
        component: <UserForm />,
        showInSidebar: true,
      },
      {
        label: 'Settings',
        link: '/admin/settings/',
        category: 'admin',
        showInSidebar: false,
      },
    ]
"""

TENANT_SERVICE_TS = """
    import { ArchbaseRemoteApiService } from '@archbase/react'
    import { TenantDto } from '../domain/TenantDto'

    export class TenantService extends ArchbaseRemoteApiService<TenantDto, string> {
      protected getEndpoint(): string {
        return '/api/v1/tenants';
      }

      public getId(entity: TenantDto): string {
        return entity.id;
      }
    }
"""

PRODUTO_JAVA = """
    package com.example.domain;

    import java.math.BigDecimal;
    import jakarta.validation.constraints.*;

    public class Produto {
        @NotEmpty
        @Size(min = 2, max = 120)
        private String nome;

        @NotNull
        @DecimalMin("0.0")
        private BigDecimal preco;

        private Boolean ativo;
    }
"""

BROKEN_TS = """
    export const = {{ ;
"""

SAMPLE_PROJECT: dict[str, str] = {
    "src/pages/UserForm.tsx": USER_FORM_TSX,
    "src/domain/UserDto.ts": USER_DTO_TS,
    "src/validation/userSchema.ts": USER_SCHEMA_TS,
    "src/navigation/navigationData.tsx": NAVIGATION_TSX,
    "src/services/TenantService.ts": TENANT_SERVICE_TS,
    "backend/src/main/java/com/example/domain/Produto.java": PRODUTO_JAVA,
    "src/broken.ts": BROKEN_TS,
    # Never scanned:
    "node_modules/lib/index.ts": "export const x = { name: 'hidden', type: 'text' }\n",
    "src/types.d.ts": "export declare const y: number\n",
    "src/pages/UserForm.test.tsx": "const f = { name: 'testOnly', type: 'text' }\n",
    "README.md": "# sample\n",
}


@pytest.fixture
def make_tree():
    """Expose ``write_tree`` to test modules."""
    return write_tree


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """A small Archbase-style project covering every built-in matcher."""
    return write_tree(tmp_path / "project", SAMPLE_PROJECT)


@pytest.fixture
def scenario_a_project(tmp_path: Path) -> Path:
    """A project with exactly one field-configuration literal."""
    return write_tree(
        tmp_path / "scenario-a",
        {"src/fields.ts": "export const f = { name: 'email', type: 'email', required: true }\n"},
    )


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A template tree with a couple of categories, a common fallback and partials."""
    return write_tree(
        tmp_path / "templates",
        {
            "greetings/hello.j2": "Hello {{ name | pascal_case }}!\n",
            "greetings/shout.j2": "{{ name | upper }}{% include 'bang' %}\n",
            "forms/simple.j2": (
                "{{ name }}:{% for field in fields %} {{ field.name }}={{ field.type }}{% endfor %}\n"
            ),
            "common/banner.j2": "== {{ title }} ==\n",
            "broken/bad.j2": "line one\n{% for x in items %}\nno end\n",
            "partials/bang.j2": "!!!",
        },
    )


# ---------------------------------------------------------------------------
# Configs
# ---------------------------------------------------------------------------

@pytest.fixture
def scan_config() -> ScanConfig:
    return ScanConfig(max_workers=2)


@pytest.fixture
def project_config(sample_project: Path, tmp_path: Path) -> Config:
    """A ``Config`` scanning the sample project into ``tmp_path/out``."""
    return Config(
        project_root=sample_project,
        output_dir=tmp_path / "out",
        scan=ScanConfig(max_workers=2),
        templates=TemplateConfig(),
    )
