"""skillshelf package."""

from .config import ShelfConfig
from .skills import MarkdownSkillLibrary, SkillDocument

__version__ = "0.1.0"
__all__ = ["MarkdownSkillLibrary", "ShelfConfig", "SkillDocument", "__version__"]
