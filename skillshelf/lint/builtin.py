from __future__ import annotations

import re
from typing import Any

from ..skills.base import NAME_PATTERN, SkillDocument
from ..skills.markdown import stray_skill_files
from .base import Finding, LintContext, Severity

VERSION_PATTERN = re.compile(r"^v?\d+\.\d+(?:\.\d+)?(?:[-+][0-9A-Za-z.-]+)?$")


class _Rule:
    name = ""
    description = ""
    severity = Severity.WARNING

    def finding(self, skill: SkillDocument, message: str, line: int | None = None) -> Finding:
        return Finding(rule=self.name, severity=self.severity, message=message, path=skill.path, skill=skill.name, line=line)

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        raise NotImplementedError


def _raw(skill: SkillDocument, key: str) -> Any:
    return skill.frontmatter.get(key)


def _field_line(skill: SkillDocument, key: str) -> int | None:
    """1-based line of a top-level frontmatter key, if present."""
    if not skill.has_frontmatter:
        return None
    for number, line in enumerate(skill.content.splitlines()[1:], start=2):
        if line.strip() == "---":
            break
        if line.startswith(f"{key}:"):
            return number
    return 1


class FrontmatterValidRule(_Rule):
    name = "frontmatter-valid"
    description = "SKILL.md opens with a closed YAML frontmatter block that parses to a mapping."
    severity = Severity.ERROR

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        if skill.frontmatter_error:
            return [self.finding(skill, skill.frontmatter_error, line=1)]
        if not skill.has_frontmatter:
            return [self.finding(skill, "missing YAML frontmatter block", line=1)]
        return []


class RequiredFieldsRule(_Rule):
    name = "required-fields"
    description = "Frontmatter has non-empty 'name' and 'description' strings."
    severity = Severity.ERROR

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        if skill.frontmatter_error:
            return []
        findings: list[Finding] = []
        for key in ("name", "description"):
            value = _raw(skill, key)
            if value is None:
                findings.append(self.finding(skill, f"frontmatter field '{key}' is missing", line=1))
            elif not isinstance(value, str) or not value.strip():
                findings.append(self.finding(skill, f"frontmatter field '{key}' must be a non-empty string", line=_field_line(skill, key)))
        return findings


class NameFormatRule(_Rule):
    name = "name-format"
    description = "Skill name is lower-case hyphen-case and not too long."
    severity = Severity.ERROR

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        name = _raw(skill, "name")
        if not isinstance(name, str) or not name.strip():
            return []
        line = _field_line(skill, "name")
        findings: list[Finding] = []
        if not NAME_PATTERN.match(name):
            findings.append(self.finding(skill, f"name '{name}' must be lower-case letters, digits and single hyphens", line=line))
        if len(name) > context.max_name_chars:
            findings.append(self.finding(skill, f"name is {len(name)} chars, limit is {context.max_name_chars}", line=line))
        return findings


class NameMatchesDirectoryRule(_Rule):
    name = "name-matches-directory"
    description = "Frontmatter name equals the name of the folder holding SKILL.md."

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        name = _raw(skill, "name")
        if not isinstance(name, str) or not name.strip():
            return []
        directory = skill.directory.name
        if name.strip() != directory:
            return [self.finding(skill, f"name '{name.strip()}' does not match directory '{directory}'", line=_field_line(skill, "name"))]
        return []


class DescriptionLengthRule(_Rule):
    name = "description-length"
    description = "Description stays within the configured length."

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        description = _raw(skill, "description")
        if not isinstance(description, str):
            return []
        length = len(description.strip())
        if length > context.max_description_chars:
            return [
                self.finding(
                    skill,
                    f"description is {length} chars, limit is {context.max_description_chars}",
                    line=_field_line(skill, "description"),
                )
            ]
        return []


class LicensePresentRule(_Rule):
    name = "license-present"
    description = "Frontmatter declares a license."

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        if skill.frontmatter_error:
            return []
        value = _raw(skill, "license")
        if not isinstance(value, str) or not value.strip():
            return [self.finding(skill, "frontmatter field 'license' is missing or empty", line=_field_line(skill, "license"))]
        return []


class MetadataFieldsRule(_Rule):
    name = "metadata-fields"
    description = "Frontmatter 'metadata' mapping carries 'author' and 'version'."

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        if skill.frontmatter_error:
            return []
        metadata = _raw(skill, "metadata")
        line = _field_line(skill, "metadata")
        if metadata is None:
            return [self.finding(skill, "frontmatter field 'metadata' is missing", line=line)]
        if not isinstance(metadata, dict):
            return [self.finding(skill, "frontmatter field 'metadata' must be a mapping", line=line)]
        findings: list[Finding] = []
        for key in ("author", "version"):
            value = metadata.get(key)
            if value is None or not str(value).strip():
                findings.append(self.finding(skill, f"metadata.{key} is missing or empty", line=line))
        return findings


class VersionFormatRule(_Rule):
    name = "version-format"
    description = "metadata.version looks like MAJOR.MINOR or MAJOR.MINOR.PATCH."

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        version = skill.metadata.version
        if version is None:
            return []
        if not VERSION_PATTERN.match(version):
            return [self.finding(skill, f"metadata.version '{version}' is not a MAJOR.MINOR[.PATCH] version", line=_field_line(skill, "metadata"))]
        return []


class RequiredSectionsRule(_Rule):
    name = "required-sections"
    description = "Body contains the configured template sections."

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        findings: list[Finding] = []
        for title in context.required_sections:
            if skill.section(title) is None:
                findings.append(self.finding(skill, f"missing section '{title}'"))
        return findings


class WorkflowNumberedRule(_Rule):
    name = "workflow-numbered"
    description = "Workflow section is written as numbered steps."

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        section = skill.section("workflow")
        if section is None:
            return []
        if not skill.workflow_steps():
            return [self.finding(skill, f"section '{section.title}' has no numbered steps", line=section.line)]
        return []


class CodeFenceClosedRule(_Rule):
    name = "code-fence-closed"
    description = "Every fenced code block is closed."
    severity = Severity.ERROR

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        return [self.finding(skill, "code fence is never closed", line=block.line) for block in skill.code_blocks if not block.closed]


class CodeFenceLanguageRule(_Rule):
    name = "code-fence-language"
    description = "Fenced code blocks declare a language."
    severity = Severity.INFO

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        return [self.finding(skill, "code fence has no language", line=block.line) for block in skill.code_blocks if not block.language]


class SingleSkillFileRule(_Rule):
    name = "single-skill-file"
    description = "Each skill directory holds exactly one SKILL.md and skill names are unique."
    severity = Severity.ERROR

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        findings = [
            self.finding(skill, f"extra skill file '{stray.name}' next to SKILL.md")
            for stray in stray_skill_files(skill.directory)
        ]
        others = [other for other in context.skills if other.name == skill.name and other.path != skill.path]
        if others:
            where = ", ".join(str(other.path) for other in others)
            findings.append(self.finding(skill, f"skill name '{skill.name}' is also used by {where}"))
        return findings


class RequiresKnownRule(_Rule):
    name = "requires-known"
    description = "Every 'requires' entry names a skill in the library."

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        known = {other.name for other in context.skills}
        line = _field_line(skill, "requires")
        return [self.finding(skill, f"requires unknown skill '{name}'", line=line) for name in skill.requires if name not in known]


class EmptyBodyRule(_Rule):
    name = "empty-body"
    description = "Skill has markdown instructions after the frontmatter."
    severity = Severity.ERROR

    def check(self, skill: SkillDocument, context: LintContext) -> list[Finding]:
        if not skill.body.strip():
            return [self.finding(skill, "skill has no instructions after the frontmatter")]
        return []


def builtin_rules() -> list[_Rule]:
    return [
        FrontmatterValidRule(),
        RequiredFieldsRule(),
        NameFormatRule(),
        NameMatchesDirectoryRule(),
        DescriptionLengthRule(),
        LicensePresentRule(),
        MetadataFieldsRule(),
        VersionFormatRule(),
        RequiredSectionsRule(),
        WorkflowNumberedRule(),
        CodeFenceClosedRule(),
        CodeFenceLanguageRule(),
        SingleSkillFileRule(),
        RequiresKnownRule(),
        EmptyBodyRule(),
    ]
