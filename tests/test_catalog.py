import json
from pathlib import Path

import pytest

from skillshelf.catalog import build_catalog, render_markdown, write_catalog
from skillshelf.skills import SkillDocument, SkillMetadata


def _skill(root: Path, category: str, name: str, description: str, version: str | None = "1.0.0") -> SkillDocument:
    directory = root / category / name if category else root / name
    return SkillDocument(
        name=name,
        path=directory / "SKILL.md",
        description=description,
        content="",
        category=category,
        metadata=SkillMetadata(author="docs-team", version=version),
        license="MIT",
    )


def test_build_catalog_groups_and_sorts(tmp_path: Path) -> None:
    skills = [
        _skill(tmp_path, "security", "threat-modeling", "Model threats."),
        _skill(tmp_path, "api-and-integration", "webhooks", "Handle webhooks."),
        _skill(tmp_path, "api-and-integration", "api-design", "Design APIs."),
        _skill(tmp_path, "", "loose", "No category."),
    ]

    catalog = build_catalog(skills)

    assert list(catalog.categories) == ["api-and-integration", "security", "uncategorized"]
    assert [e.name for e in catalog.categories["api-and-integration"]] == ["api-design", "webhooks"]
    assert catalog.total == 4


def test_render_markdown_table(tmp_path: Path) -> None:
    catalog = build_catalog([_skill(tmp_path, "database", "sql-generation", "Turn questions | into SQL.", version=None)])

    text = render_markdown(catalog, relative_to=tmp_path)

    assert text.startswith("# Skills\n\n1 skills in 1 categories.")
    assert "## database" in text
    assert "| Skill | Description | Version | Author |" in text
    assert "| [sql-generation](database/sql-generation/SKILL.md) | Turn questions \\| into SQL. |  | docs-team |" in text


def test_write_catalog_picks_format_from_suffix(tmp_path: Path) -> None:
    catalog = build_catalog([_skill(tmp_path / "skills", "seo", "seo-audit", "Audit SEO.")])

    out = write_catalog(catalog, tmp_path / "index.json")
    payload = json.loads(out.read_text(encoding="utf-8"))

    assert payload["total"] == 1
    entry = payload["categories"]["seo"][0]
    assert entry["path"] == "skills/seo/seo-audit/SKILL.md"
    assert entry["version"] == "1.0.0"

    md = write_catalog(catalog, tmp_path / "docs" / "SKILLS.md")
    assert "[seo-audit](../skills/seo/seo-audit/SKILL.md)" in md.read_text(encoding="utf-8")


def test_write_catalog_unknown_format(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="unknown catalog format"):
        write_catalog(build_catalog([]), tmp_path / "index.txt", fmt="html")
