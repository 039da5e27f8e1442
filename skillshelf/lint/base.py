from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from ..config import DEFAULT_REQUIRED_SECTIONS
from ..skills.base import SkillDocument


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(slots=True)
class Finding:
    rule: str
    severity: Severity
    message: str
    path: Path
    skill: str = ""
    line: int | None = None

    def location(self) -> str:
        return f"{self.path}:{self.line}" if self.line is not None else str(self.path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule": self.rule,
            "severity": self.severity.value,
            "message": self.message,
            "path": str(self.path),
            "skill": self.skill,
            "line": self.line,
        }


@dataclass(slots=True)
class LintContext:
    skills_dir: Path
    skills: list[SkillDocument] = field(default_factory=list)
    required_sections: list[str] = field(default_factory=lambda: list(DEFAULT_REQUIRED_SECTIONS))
    max_name_chars: int = 64
    max_description_chars: int = 1024


class LintRule(Protocol):
    name: str
    description: str
    severity: Severity

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        ...
