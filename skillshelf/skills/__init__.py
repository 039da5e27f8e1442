"""Skills: SKILL.md documents and the library loader."""

from .base import CodeBlock, FrontmatterError, Section, SkillDocument, SkillError, SkillMetadata, SkillNotFoundError
from .frontmatter import render_frontmatter, split_frontmatter, strip_frontmatter
from .markdown import MarkdownSkillLibrary, load_skill

__all__ = [
    "CodeBlock",
    "FrontmatterError",
    "MarkdownSkillLibrary",
    "Section",
    "SkillDocument",
    "SkillError",
    "SkillMetadata",
    "SkillNotFoundError",
    "load_skill",
    "render_frontmatter",
    "split_frontmatter",
    "strip_frontmatter",
]
