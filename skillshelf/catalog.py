"""Catalogue (index) generation for a skill library."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .skills.base import SkillDocument

UNCATEGORIZED = "uncategorized"


@dataclass(slots=True)
class CatalogEntry:
    name: str
    description: str
    path: Path
    category: str
    version: str | None = None
    author: str | None = None
    license: str | None = None

    @classmethod
    def from_skill(cls, skill: SkillDocument) -> "CatalogEntry":
        return cls(
            name=skill.name,
            description=skill.description,
            path=skill.path,
            category=skill.category or UNCATEGORIZED,
            version=skill.metadata.version,
            author=skill.metadata.author,
            license=skill.license,
        )

    def to_dict(self, relative_to: Path | None = None) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "path": _relative(self.path, relative_to),
            "category": self.category,
            "version": self.version,
            "author": self.author,
            "license": self.license,
        }


@dataclass(slots=True)
class Catalog:
    categories: dict[str, list[CatalogEntry]] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(len(entries) for entries in self.categories.values())


def build_catalog(skills: list[SkillDocument]) -> Catalog:
    grouped: dict[str, list[CatalogEntry]] = {}
    for skill in skills:
        entry = CatalogEntry.from_skill(skill)
        grouped.setdefault(entry.category, []).append(entry)
    return Catalog(categories={name: sorted(grouped[name], key=lambda e: e.name) for name in sorted(grouped)})


def render_markdown(catalog: Catalog, title: str = "Skills", relative_to: Path | None = None) -> str:
    lines = [f"# {title}", "", f"{catalog.total} skills in {len(catalog.categories)} categories.", ""]
    for category, entries in catalog.categories.items():
        lines.append(f"## {category}")
        lines.append("")
        lines.append("| Skill | Description | Version | Author |")
        lines.append("| --- | --- | --- | --- |")
        for entry in entries:
            link = _relative(entry.path, relative_to).replace(" ", "%20")
            lines.append(
                f"| [{_cell(entry.name)}]({link}) | {_cell(entry.description)} | {_cell(entry.version or '')} | {_cell(entry.author or '')} |"
            )
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def render_json(catalog: Catalog, relative_to: Path | None = None) -> str:
    payload = {
        "total": catalog.total,
        "categories": {
            category: [entry.to_dict(relative_to) for entry in entries] for category, entries in catalog.categories.items()
        },
    }
    return json.dumps(payload, indent=2, sort_keys=True) + "\n"


def write_catalog(catalog: Catalog, path: str | Path, fmt: str | None = None) -> Path:
    out_path = Path(path).expanduser()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fmt = fmt or ("json" if out_path.suffix.lower() == ".json" else "markdown")
    if fmt == "json":
        text = render_json(catalog, relative_to=out_path.parent)
    elif fmt == "markdown":
        text = render_markdown(catalog, relative_to=out_path.parent)
    else:
        raise ValueError(f"unknown catalog format: {fmt}")
    out_path.write_text(text, encoding="utf-8")
    return out_path


def _cell(text: str) -> str:
    return " ".join(text.split()).replace("|", "\\|")


def _relative(path: Path, base: Path | None) -> str:
    if base is None:
        return path.as_posix()
    return Path(os.path.relpath(path, base)).as_posix()
