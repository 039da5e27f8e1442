from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class SkillError(Exception):
    """Base class for skill library errors."""


class FrontmatterError(SkillError, ValueError):
    """Raised when a SKILL.md frontmatter block cannot be parsed."""


class SkillNotFoundError(SkillError, KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "skill not found"


@dataclass(slots=True)
class SkillMetadata:
    author: str | None = None
    version: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: Any) -> "SkillMetadata":
        if not isinstance(value, dict):
            return cls()
        extra = {str(k): v for k, v in value.items() if k not in ("author", "version")}
        return cls(author=_as_text(value.get("author")), version=_as_text(value.get("version")), extra=extra)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        if self.author is not None:
            payload["author"] = self.author
        if self.version is not None:
            payload["version"] = self.version
        return payload


@dataclass(slots=True)
class Section:
    title: str
    level: int
    line: int
    content: str = ""


@dataclass(slots=True)
class CodeBlock:
    language: str
    line: int
    content: str
    closed: bool = True


@dataclass(slots=True)
class SkillDocument:
    name: str
    path: Path
    description: str
    content: str
    body: str = ""
    category: str = ""
    license: str | None = None
    metadata: SkillMetadata = field(default_factory=SkillMetadata)
    frontmatter: dict[str, Any] = field(default_factory=dict)
    requires: list[str] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    frontmatter_error: str | None = None
    body_line_offset: int = 0
    mtime: float = 0.0

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def has_frontmatter(self) -> bool:
        return bool(self.frontmatter) or self.content.lstrip("\ufeff").startswith("---")

    def section(self, title: str) -> Section | None:
        wanted = title.strip().lower()
        for section in self.sections:
            if section.title.strip().lower() == wanted:
                return section
        for section in self.sections:
            if wanted in section.title.strip().lower():
                return section
        return None

    def workflow_steps(self) -> list[str]:
        from .sections import numbered_items

        section = self.section("workflow")
        if section is None:
            return []
        return numbered_items(section.content)

    def to_dict(self, *, include_body: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "path": str(self.path),
            "category": self.category,
            "description": self.description,
            "license": self.license,
            "metadata": self.metadata.to_dict(),
            "requires": list(self.requires),
            "sections": [section.title for section in self.sections],
        }
        if include_body:
            payload["body"] = self.body
        return payload


NAME_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
