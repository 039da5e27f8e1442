"""Core numerical modules."""

from .search import SkillIndex, tokenize

__all__ = ["SkillIndex", "tokenize"]
