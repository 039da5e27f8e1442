from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

CONFIG_DIR = Path.home() / ".skillshelf"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.json"
DEFAULT_USAGE_PATH = CONFIG_DIR / "skill_usage.jsonl"
SKILLS_PATH_ENV = "SKILLSHELF_SKILLS_PATH"
SEVERITIES = ("error", "warning", "info")
DEFAULT_REQUIRED_SECTIONS = ["Workflow", "Best Practices", "Edge Cases"]


@dataclass(slots=True)
class ShelfConfig:
    workspace_root: str = str(Path.cwd())
    skills_path: str = "skills"
    templates_path: str = "templates"
    index_path: str = "SKILLS.md"
    usage_log_path: str = str(DEFAULT_USAGE_PATH)

    max_selected_skills: int = 3
    search_top_k: int = 5
    min_search_score: float = 0.05

    strict: bool = False
    disabled_rules: list[str] = field(default_factory=list)
    rule_severity: dict[str, str] = field(default_factory=dict)
    required_sections: list[str] = field(default_factory=lambda: list(DEFAULT_REQUIRED_SECTIONS))
    max_name_chars: int = 64
    max_description_chars: int = 1024

    default_author: str = ""
    default_license: str = "MIT"
    default_version: str = "1.0.0"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShelfConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {unknown}")
        obj = cls(**data)
        obj.validate()
        return obj

    @classmethod
    def load(cls, path: str | Path = DEFAULT_CONFIG_PATH) -> "ShelfConfig":
        config_path = Path(path).expanduser()
        if not config_path.exists():
            cfg = cls()
        else:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError(f"config at {config_path} must be a JSON object")
            cfg = cls.from_dict(raw)

        override = os.getenv(SKILLS_PATH_ENV)
        if override:
            cfg.skills_path = override
        return cfg

    def save(self, path: str | Path = DEFAULT_CONFIG_PATH) -> Path:
        config_path = Path(path).expanduser()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(self.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
        return config_path

    def _resolve(self, raw: str) -> Path:
        candidate = Path(raw).expanduser()
        if candidate.is_absolute():
            return candidate
        return Path(self.workspace_root).expanduser().resolve() / candidate

    def resolved_skills_dir(self) -> Path:
        return self._resolve(self.skills_path)

    def resolved_templates_dir(self) -> Path:
        return self._resolve(self.templates_path)

    def resolved_index_path(self) -> Path:
        return self._resolve(self.index_path)

    def resolved_usage_path(self) -> Path:
        return Path(self.usage_log_path).expanduser()

    def validate(self) -> None:
        if not self.skills_path:
            raise ValueError("skills_path is required")
        if not self.index_path:
            raise ValueError("index_path is required")
        if self.max_selected_skills <= 0:
            raise ValueError("max_selected_skills must be > 0")
        if self.search_top_k <= 0:
            raise ValueError("search_top_k must be > 0")
        if not (0 <= self.min_search_score <= 1):
            raise ValueError("min_search_score must be between 0 and 1")
        if self.max_name_chars <= 0:
            raise ValueError("max_name_chars must be > 0")
        if self.max_description_chars <= 0:
            raise ValueError("max_description_chars must be > 0")
        invalid = {rule: level for rule, level in self.rule_severity.items() if level not in SEVERITIES}
        if invalid:
            raise ValueError(f"invalid rule severities: {invalid}. allowed: {', '.join(SEVERITIES)}")
        if any(not str(title).strip() for title in self.required_sections):
            raise ValueError("required_sections cannot contain empty titles")
