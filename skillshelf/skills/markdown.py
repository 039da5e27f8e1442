from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from ..config import DEFAULT_USAGE_PATH
from .base import FrontmatterError, SkillDocument, SkillMetadata, SkillNotFoundError
from .frontmatter import coerce_list, frontmatter_line_count, split_frontmatter
from .sections import parse_code_blocks, parse_sections

logger = logging.getLogger(__name__)

SKILL_FILENAME = "SKILL.md"


def load_skill(skill_file: str | Path, root: str | Path | None = None) -> SkillDocument:
    """Parse one SKILL.md into a :class:`SkillDocument`.

    Frontmatter problems do not raise: the error is kept on the document so the
    linter can report it, and name/description fall back to the directory name
    and the first prose line.
    """
    path = Path(skill_file)
    content = path.read_text(encoding="utf-8", errors="replace")

    frontmatter: dict = {}
    error: str | None = None
    try:
        frontmatter, body = split_frontmatter(content)
        offset = frontmatter_line_count(content)
    except FrontmatterError as exc:
        logger.debug("frontmatter error in %s: %s", path, exc)
        error = str(exc)
        body = content
        offset = 0

    name = frontmatter.get("name")
    if not isinstance(name, str) or not name.strip():
        name = path.parent.name
    description = frontmatter.get("description")
    if not isinstance(description, str) or not description.strip():
        description = _extract_description(body, skip_open_fence=error is not None)
    license_ = frontmatter.get("license")

    try:
        mtime = path.stat().st_mtime
    except OSError:
        mtime = 0.0

    return SkillDocument(
        name=name.strip(),
        path=path,
        description=" ".join(description.split()),
        content=content,
        body=body,
        category=_category(path, Path(root) if root is not None else None),
        license=str(license_).strip() if license_ is not None and str(license_).strip() else None,
        metadata=SkillMetadata.from_value(frontmatter.get("metadata")),
        frontmatter=frontmatter,
        requires=coerce_list(frontmatter.get("requires")),
        sections=parse_sections(body, offset),
        code_blocks=parse_code_blocks(body, offset),
        frontmatter_error=error,
        body_line_offset=offset,
        mtime=mtime,
    )


def stray_skill_files(directory: str | Path) -> list[Path]:
    """Files in ``directory`` named like SKILL.md in a different case."""
    base = Path(directory)
    if not base.is_dir():
        return []
    return sorted(p for p in base.iterdir() if p.is_file() and p.name.lower() == SKILL_FILENAME.lower() and p.name != SKILL_FILENAME)


class MarkdownSkillLibrary:
    """Skill loader over a directory tree of SKILL.md files."""

    def __init__(self, skills_dir: str | Path, usage_path: str | Path | None = DEFAULT_USAGE_PATH) -> None:
        self.skills_dir = Path(skills_dir).expanduser()
        self.usage_path = Path(usage_path).expanduser() if usage_path is not None else None
        self._mtime_cache: dict[str, float] = {}
        self._documents: dict[str, tuple[float, SkillDocument]] = {}

    def _skill_files(self) -> list[Path]:
        if not self.skills_dir.exists():
            return []
        return sorted(p for p in self.skills_dir.rglob(SKILL_FILENAME) if p.is_file())

    def list_skills(self, *, include_empty: bool = False) -> list[SkillDocument]:
        skills: list[SkillDocument] = []
        seen: set[str] = set()
        for skill_file in self._skill_files():
            key = str(skill_file)
            seen.add(key)
            try:
                mtime = skill_file.stat().st_mtime
            except OSError:
                continue

            cached = self._documents.get(key)
            if cached is not None and cached[0] == mtime:
                document = cached[1]
            else:
                document = load_skill(skill_file, self.skills_dir)
                self._documents[key] = (mtime, document)

            if not include_empty and not document.content.strip():
                continue
            skills.append(document)

        for stale in set(self._documents) - seen:
            del self._documents[stale]
        return skills

    def get(self, name: str) -> SkillDocument:
        for skill in self.list_skills():
            if skill.name == name:
                return skill
        raise SkillNotFoundError(f"unknown skill: {name}")

    def categories(self) -> dict[str, list[SkillDocument]]:
        grouped: dict[str, list[SkillDocument]] = {}
        for skill in self.list_skills():
            grouped.setdefault(skill.category, []).append(skill)
        return {category: grouped[category] for category in sorted(grouped)}

    def reload_if_changed(self) -> int:
        """Re-scan skill files, reload only those whose mtime has changed.

        Returns the count of changed, new and deleted skill files.
        """
        if not self.skills_dir.exists():
            return 0

        reloaded = 0
        seen: set[str] = set()
        for skill_file in self._skill_files():
            key = str(skill_file)
            try:
                mtime = skill_file.stat().st_mtime
            except OSError:
                continue
            seen.add(key)
            if self._mtime_cache.get(key) != mtime:
                self._mtime_cache[key] = mtime
                self._documents.pop(key, None)
                reloaded += 1

        for gone in set(self._mtime_cache) - seen:
            del self._mtime_cache[gone]
            self._documents.pop(gone, None)
            reloaded += 1
        return reloaded

    def summary(self) -> str:
        skills = self.list_skills()
        if not skills:
            return ""
        lines = ["Available skills:"]
        for skill in skills:
            lines.append(f"- {skill.name}: {skill.description}")
        return "\n".join(lines)

    def select_for_message(self, message: str, max_skills: int = 3) -> list[SkillDocument]:
        text = message.lower()
        available = self.list_skills()

        if not available:
            return []

        skill_by_name: dict[str, SkillDocument] = {s.name: s for s in available}

        def is_explicit(skill: SkillDocument) -> bool:
            name = skill.name.lower()
            return f"${name}" in text or re.search(rf"(?<![\w-]){re.escape(name)}(?![\w-])", text) is not None

        selected: list[SkillDocument] = []
        for skill in available:
            description_hit = any(word in text for word in _keywords(skill.description))
            if is_explicit(skill) or description_hit:
                selected.append(skill)

        if not selected:
            return []

        # Explicit mentions first, then name.
        selected.sort(key=lambda skill: (0 if is_explicit(skill) else 1, skill.name.lower()))
        selected = selected[:max_skills]

        # Required skills, one level deep.
        selected_names = {s.name for s in selected}
        deps_to_add: list[SkillDocument] = []
        for skill in selected:
            for req_name in skill.requires:
                if req_name not in selected_names and req_name in skill_by_name:
                    deps_to_add.append(skill_by_name[req_name])
                    selected_names.add(req_name)

        combined = (selected + deps_to_add)[:max_skills]
        self._record_usage([s.name for s in combined])
        return combined

    def _record_usage(self, skill_names: list[str]) -> None:
        if not skill_names or self.usage_path is None:
            return
        try:
            self.usage_path.parent.mkdir(parents=True, exist_ok=True)
            ts = datetime.now(tz=timezone.utc).isoformat()
            with open(self.usage_path, "a", encoding="utf-8") as f:
                for name in skill_names:
                    f.write(json.dumps({"skill": name, "ts": ts}) + "\n")
        except OSError as exc:
            logger.warning("could not record skill usage to %s: %s", self.usage_path, exc)

    def get_usage_stats(self) -> dict[str, int]:
        """Read the usage log and return {skill_name: count}."""
        counts: dict[str, int] = {}
        if self.usage_path is None or not self.usage_path.exists():
            return counts
        try:
            for line in self.usage_path.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                    skill = obj.get("skill")
                    if isinstance(skill, str):
                        counts[skill] = counts.get(skill, 0) + 1
                except (json.JSONDecodeError, AttributeError):
                    continue
        except OSError as exc:
            logger.warning("could not read skill usage from %s: %s", self.usage_path, exc)
        return counts


def _category(path: Path, root: Path | None) -> str:
    if root is None:
        return ""
    try:
        relative = path.parent.relative_to(root)
    except ValueError:
        return ""
    return relative.parts[0] if relative.parts else ""


def _extract_description(body: str, skip_open_fence: bool = False) -> str:
    lines = body.lstrip("\ufeff").splitlines()
    # A broken frontmatter block leaves its opening delimiter in the body.
    if skip_open_fence and lines and lines[0].strip() == "---":
        lines = lines[1:]
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("#"):
            continue
        return stripped[:180]
    return "Skill instructions"


STOP_WORDS = {
    "this",
    "that",
    "with",
    "from",
    "into",
    "about",
    "your",
    "when",
    "where",
    "which",
    "should",
    "would",
    "could",
    "skill",
    "instructions",
    "using",
}


def _keywords(description: str) -> set[str]:
    words = set(re.findall(r"[a-zA-Z0-9_]{4,}", description.lower()))
    return {w for w in words if w not in STOP_WORDS}
