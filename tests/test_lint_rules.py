from pathlib import Path

from skillshelf.lint import LintContext, LintRegistry, Severity, builtin_rules
from skillshelf.skills import MarkdownSkillLibrary

VALID = """---
name: {name}
description: Design REST APIs with consistent resource naming.
license: MIT
metadata:
  author: docs-team
  version: "1.0.0"
---

# API Design

## Workflow

1. Identify the resources.
2. Define the endpoints.

## Examples

```http
GET /orders/42
```

## Best Practices

- Use plural nouns.

## Edge Cases

- Empty collections return an empty list.
"""


def _write_skill(root: Path, rel: str, text: str) -> Path:
    skill_dir = root / rel
    skill_dir.mkdir(parents=True, exist_ok=True)
    path = skill_dir / "SKILL.md"
    path.write_text(text, encoding="utf-8")
    return path


def _lint(root: Path):
    skills = MarkdownSkillLibrary(root, usage_path=None).list_skills(include_empty=True)
    registry = LintRegistry(builtin_rules())
    return registry.run(skills, LintContext(skills_dir=root, skills=skills))


def _rules(report) -> set[str]:
    return {finding.rule for finding in report.findings}


def test_valid_skill_has_no_findings(tmp_path: Path) -> None:
    _write_skill(tmp_path, "api/api-design", VALID.format(name="api-design"))

    report = _lint(tmp_path)

    assert report.findings == []
    assert report.skills_checked == 1
    assert report.ok(strict=True)


def test_missing_frontmatter_reports_required_fields(tmp_path: Path) -> None:
    _write_skill(tmp_path, "bare", "# Bare\n\n## Workflow\n\n1. Step.\n")

    report = _lint(tmp_path)
    errors = {f.rule for f in report.findings if f.severity is Severity.ERROR}

    assert {"frontmatter-valid", "required-fields"} <= errors
    assert {"license-present", "metadata-fields", "required-sections"} <= _rules(report)
    assert not report.ok()


def test_invalid_yaml_is_reported_once(tmp_path: Path) -> None:
    _write_skill(tmp_path, "broken", "---\nname: [oops\n---\n# Broken\n")

    report = _lint(tmp_path)

    frontmatter = [f for f in report.findings if f.rule == "frontmatter-valid"]
    assert len(frontmatter) == 1
    assert frontmatter[0].line == 1
    assert "required-fields" not in _rules(report)


def test_empty_description_is_error(tmp_path: Path) -> None:
    text = VALID.format(name="api-design").replace(
        "description: Design REST APIs with consistent resource naming.", 'description: ""'
    )
    _write_skill(tmp_path, "api-design", text)

    report = _lint(tmp_path)
    findings = [f for f in report.findings if f.rule == "required-fields"]

    assert len(findings) == 1
    assert "description" in findings[0].message
    assert findings[0].line == 3


def test_bad_name_format_and_directory_mismatch(tmp_path: Path) -> None:
    _write_skill(tmp_path, "api-design", VALID.format(name="API_Design"))

    report = _lint(tmp_path)
    by_rule = {f.rule: f for f in report.findings}

    assert by_rule["name-format"].severity is Severity.ERROR
    assert by_rule["name-format"].line == 2
    assert by_rule["name-matches-directory"].severity is Severity.WARNING


def test_long_description_and_bad_version(tmp_path: Path) -> None:
    text = (
        VALID.format(name="api-design")
        .replace("Design REST APIs with consistent resource naming.", "word " * 300)
        .replace('"1.0.0"', "latest")
    )
    _write_skill(tmp_path, "api-design", text)

    rules = _rules(_lint(tmp_path))

    assert "description-length" in rules
    assert "version-format" in rules


def test_metadata_must_be_mapping(tmp_path: Path) -> None:
    text = VALID.format(name="api-design").replace('metadata:\n  author: docs-team\n  version: "1.0.0"\n', "metadata: docs-team\n")
    _write_skill(tmp_path, "api-design", text)

    findings = [f for f in _lint(tmp_path).findings if f.rule == "metadata-fields"]

    assert len(findings) == 1
    assert "mapping" in findings[0].message


def test_workflow_without_numbered_steps(tmp_path: Path) -> None:
    text = VALID.format(name="api-design").replace("1. Identify the resources.\n2. Define the endpoints.", "- identify\n- define")
    _write_skill(tmp_path, "api-design", text)

    findings = [f for f in _lint(tmp_path).findings if f.rule == "workflow-numbered"]

    assert len(findings) == 1
    assert findings[0].line == 12


def test_code_fence_rules(tmp_path: Path) -> None:
    text = VALID.format(name="api-design") + "\n```\nno language\n```\n\n```bash\nnever closed\n"
    _write_skill(tmp_path, "api-design", text)

    report = _lint(tmp_path)
    by_rule = {f.rule: f for f in report.findings}

    assert by_rule["code-fence-language"].severity is Severity.INFO
    assert by_rule["code-fence-closed"].severity is Severity.ERROR
    assert not report.ok()


def test_info_findings_do_not_fail_strict(tmp_path: Path) -> None:
    text = VALID.format(name="api-design").replace("```http", "```")
    _write_skill(tmp_path, "api-design", text)

    report = _lint(tmp_path)

    assert _rules(report) == {"code-fence-language"}
    assert report.ok(strict=True)


def test_stray_and_duplicate_skill_files(tmp_path: Path) -> None:
    first = _write_skill(tmp_path, "one/api-design", VALID.format(name="api-design"))
    (first.parent / "skill.md").write_text("stray", encoding="utf-8")
    _write_skill(tmp_path, "two/api-design", VALID.format(name="api-design"))

    findings = [f for f in _lint(tmp_path).findings if f.rule == "single-skill-file"]
    messages = [f.message for f in findings]

    assert any("skill.md" in message for message in messages)
    assert sum("also used by" in message for message in messages) == 2


def test_requires_unknown_skill(tmp_path: Path) -> None:
    text = VALID.format(name="api-design").replace("license: MIT\n", "license: MIT\nrequires: [ghost-skill]\n")
    _write_skill(tmp_path, "api-design", text)

    report = _lint(tmp_path)
    findings = [f for f in report.findings if f.rule == "requires-known"]

    assert len(findings) == 1
    assert "ghost-skill" in findings[0].message
    assert report.ok()
    assert not report.ok(strict=True)


def test_empty_file_reports_empty_body(tmp_path: Path) -> None:
    _write_skill(tmp_path, "empty", "")

    assert "empty-body" in _rules(_lint(tmp_path))


def test_custom_required_sections(tmp_path: Path) -> None:
    _write_skill(tmp_path, "api-design", VALID.format(name="api-design"))
    skills = MarkdownSkillLibrary(tmp_path, usage_path=None).list_skills()
    context = LintContext(skills_dir=tmp_path, skills=skills, required_sections=["Workflow", "Security"])

    report = LintRegistry(builtin_rules()).run(skills, context)

    assert [f.message for f in report.findings] == ["missing section 'Security'"]
