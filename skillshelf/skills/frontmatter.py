"""YAML frontmatter handling for SKILL.md files."""

from __future__ import annotations

import re
from typing import Any

import yaml

from .base import FrontmatterError

_DELIMITER = "---"


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split ``text`` into its frontmatter mapping and markdown body.

    Text that does not open with a ``---`` line has no frontmatter and is
    returned unchanged as the body. An unterminated block, invalid YAML or a
    block that is not a mapping raises :class:`FrontmatterError`.
    """
    text = text.lstrip("\ufeff")
    lines = text.splitlines()
    if not lines or lines[0].strip() != _DELIMITER:
        return {}, text

    end = -1
    for i in range(1, len(lines)):
        if lines[i].strip() == _DELIMITER:
            end = i
            break
    if end == -1:
        raise FrontmatterError("frontmatter opened with '---' but never closed")

    block = "\n".join(lines[1:end])
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" (line {mark.line + 2})" if mark is not None else ""
        raise FrontmatterError(f"invalid YAML in frontmatter{where}: {getattr(exc, 'problem', None) or exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontmatterError(f"frontmatter must be a mapping, got {type(data).__name__}")

    body = "\n".join(lines[end + 1 :])
    return {str(k): v for k, v in data.items()}, body


def frontmatter_line_count(text: str) -> int:
    """Number of lines taken by the frontmatter block including both delimiters."""
    lines = text.lstrip("\ufeff").splitlines()
    if not lines or lines[0].strip() != _DELIMITER:
        return 0
    for i in range(1, len(lines)):
        if lines[i].strip() == _DELIMITER:
            return i + 1
    return 0


def strip_frontmatter(text: str) -> str:
    if text.lstrip("\ufeff").startswith(_DELIMITER):
        match = re.match(r"^\ufeff?---[ \t]*\r?\n.*?\r?\n---[ \t]*(?:\r?\n|$)", text, flags=re.DOTALL)
        if match:
            return text[match.end():].strip()
    return text.strip()


def render_frontmatter(mapping: dict[str, Any], body: str) -> str:
    dumped = yaml.safe_dump(mapping, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"{_DELIMITER}\n{dumped}{_DELIMITER}\n\n{body.strip()}\n"


def coerce_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = [part.strip().strip("'\"") for part in value.split(",")]
        return [item for item in items if item]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [str(value).strip()] if str(value).strip() else []
