from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from ..skills.base import SkillDocument
from .base import Finding, LintContext, LintRule, Severity

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LintReport:
    findings: list[Finding] = field(default_factory=list)
    skills_checked: int = 0

    def counts(self) -> dict[str, int]:
        totals = {severity.value: 0 for severity in Severity}
        for finding in self.findings:
            totals[finding.severity.value] += 1
        return totals

    def ok(self, strict: bool = False) -> bool:
        counts = self.counts()
        if counts["error"]:
            return False
        return not (strict and counts["warning"])

    def for_skill(self, name: str) -> list[Finding]:
        return [finding for finding in self.findings if finding.skill == name]

    def to_dict(self) -> dict[str, Any]:
        return {
            "skills_checked": self.skills_checked,
            "counts": self.counts(),
            "findings": [finding.to_dict() for finding in self.findings],
        }


class LintRegistry:
    def __init__(
        self,
        rules: Iterable[LintRule] = (),
        *,
        disabled: Iterable[str] = (),
        severity_overrides: dict[str, str] | None = None,
    ) -> None:
        self._rules: dict[str, LintRule] = {}
        self.disabled = set(disabled)
        self.severity_overrides = {name: Severity(level) for name, level in (severity_overrides or {}).items()}
        for rule in rules:
            self.register(rule)

    def register(self, rule: LintRule) -> None:
        self._rules[rule.name] = rule

    def get(self, name: str) -> LintRule:
        if name not in self._rules:
            raise KeyError(f"unknown rule: {name}")
        return self._rules[name]

    def names(self) -> list[str]:
        return sorted(self._rules)

    def active(self) -> list[LintRule]:
        unknown = sorted((self.disabled | set(self.severity_overrides)) - set(self._rules))
        if unknown:
            logger.warning("configuration names unknown lint rules: %s", ", ".join(unknown))
        return [self._rules[name] for name in self.names() if name not in self.disabled]

    def severity_of(self, rule: LintRule) -> Severity:
        return self.severity_overrides.get(rule.name, rule.severity)

    def run(self, skills: list[SkillDocument], context: LintContext) -> LintReport:
        findings: list[Finding] = []
        rules = self.active()
        for skill in skills:
            for rule in rules:
                try:
                    produced = rule.check(skill, context)
                except Exception as exc:
                    logger.exception("lint rule %s crashed on %s", rule.name, skill.path)
                    findings.append(
                        Finding(
                            rule="internal",
                            severity=Severity.ERROR,
                            message=f"rule '{rule.name}' failed: {exc}",
                            path=skill.path,
                            skill=skill.name,
                        )
                    )
                    continue
                severity = self.severity_of(rule)
                findings.extend(replace(finding, severity=severity) for finding in produced)

        findings.sort(key=lambda f: (str(f.path), f.line or 0, f.rule))
        return LintReport(findings=findings, skills_checked=len(skills))
