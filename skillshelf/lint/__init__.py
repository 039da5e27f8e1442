"""Structural lint rules for SKILL.md libraries."""

from .base import Finding, LintContext, LintRule, Severity
from .builtin import builtin_rules
from .registry import LintRegistry, LintReport

__all__ = [
    "Finding",
    "LintContext",
    "LintRegistry",
    "LintReport",
    "LintRule",
    "Severity",
    "builtin_rules",
]
