from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from string import Template

from .skills.base import NAME_PATTERN
from .skills.frontmatter import render_frontmatter, strip_frontmatter
from .skills.markdown import SKILL_FILENAME


@dataclass(slots=True)
class TemplateLoader:
    """
    Loads the SKILL.md body template used to scaffold new skills.

    A workspace template (``<workspace>/templates/SKILL.md``) overrides the
    packaged default. Any frontmatter in the template is dropped; the
    frontmatter of a new skill is always generated.
    """

    workspace_root: Path
    templates_dir_name: str = "templates"

    def _get_builtin_dir(self) -> Path:
        return Path(__file__).parent / "defaults"

    def _get_workspace_dir(self) -> Path:
        templates_dir = Path(self.templates_dir_name).expanduser()
        if templates_dir.is_absolute():
            return templates_dir
        return Path(self.workspace_root) / templates_dir

    def load_template(self, name: str = SKILL_FILENAME) -> str | None:
        """Looks for a template by name in the workspace first, then builtin."""
        workspace_path = self._get_workspace_dir() / name
        if workspace_path.exists() and workspace_path.is_file():
            return strip_frontmatter(workspace_path.read_text(encoding="utf-8", errors="replace"))

        builtin_path = self._get_builtin_dir() / name
        if builtin_path.exists() and builtin_path.is_file():
            return strip_frontmatter(builtin_path.read_text(encoding="utf-8", errors="replace"))

        return None

    def render_skill(
        self,
        name: str,
        description: str,
        *,
        author: str = "",
        license: str = "MIT",
        version: str = "1.0.0",
    ) -> str:
        template = self.load_template()
        if template is None:
            raise RuntimeError(f"no {SKILL_FILENAME} template found")

        title = " ".join(part.capitalize() for part in name.split("-"))
        body = Template(template).safe_substitute(
            name=name,
            title=title,
            description=description,
            author=author,
            license=license,
            version=version,
        )
        frontmatter = {
            "name": name,
            "description": description,
            "license": license,
            "metadata": {"author": author or "unknown", "version": version},
        }
        return render_frontmatter(frontmatter, body)

    def create_skill(
        self,
        skills_dir: str | Path,
        name: str,
        *,
        category: str | None = None,
        description: str | None = None,
        author: str = "",
        license: str = "MIT",
        version: str = "1.0.0",
        max_name_chars: int = 64,
    ) -> Path:
        if not NAME_PATTERN.match(name):
            raise ValueError(f"invalid skill name '{name}': use lower-case letters, digits and single hyphens")
        if len(name) > max_name_chars:
            raise ValueError(f"skill name is {len(name)} chars, limit is {max_name_chars}")
        if category is not None and not is_valid_category(category):
            raise ValueError(f"invalid category '{category}'")

        base = Path(skills_dir).expanduser()
        target_dir = base / category / name if category else base / name
        skill_file = target_dir / SKILL_FILENAME
        if skill_file.exists():
            raise FileExistsError(f"skill already exists: {skill_file}")

        text = self.render_skill(
            name,
            description or f"Guide the agent through {name.replace('-', ' ')} tasks.",
            author=author,
            license=license,
            version=version,
        )
        target_dir.mkdir(parents=True, exist_ok=True)
        skill_file.write_text(text, encoding="utf-8")
        return skill_file


def is_valid_category(category: str) -> bool:
    """A category is a single folder name directly under the skills directory."""
    return bool(category.strip()) and Path(category).name == category and category not in (".", "..")
