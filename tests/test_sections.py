from skillshelf.skills.sections import numbered_items, parse_code_blocks, parse_sections

BODY = """# Webhook Handling

Intro text.

## Workflow

1. Verify the signature.
2. Store the event id.

### Retries

Retry with backoff.

## Examples

```python
# not a heading
handle(event)
```

## Edge Cases

- Duplicate deliveries.
"""


def test_parse_sections_skips_headings_inside_code() -> None:
    titles = [section.title for section in parse_sections(BODY)]
    assert titles == ["Webhook Handling", "Workflow", "Retries", "Examples", "Edge Cases"]


def test_section_content_includes_subsections() -> None:
    sections = {section.title: section for section in parse_sections(BODY)}

    workflow = sections["Workflow"]
    assert workflow.level == 2
    assert "1. Verify the signature." in workflow.content
    assert "Retry with backoff." in workflow.content
    assert "Examples" not in workflow.content


def test_section_lines_use_offset() -> None:
    sections = parse_sections(BODY, line_offset=5)
    assert sections[0].line == 6
    assert sections[1].line == 10


def test_parse_code_blocks_language_and_line() -> None:
    blocks = parse_code_blocks(BODY)

    assert len(blocks) == 1
    assert blocks[0].language == "python"
    assert blocks[0].line == 16
    assert blocks[0].closed is True
    assert blocks[0].content == "# not a heading\nhandle(event)"


def test_parse_code_blocks_unclosed_and_tilde() -> None:
    body = "~~~\nplain\n~~~\n\n````yaml\nkey: value\n```\nstill inside\n"
    blocks = parse_code_blocks(body)

    assert [b.language for b in blocks] == ["", "yaml"]
    assert blocks[0].closed is True
    assert blocks[1].closed is False
    assert "still inside" in blocks[1].content


def test_numbered_items_ignores_code() -> None:
    text = "1. First\n2) Second\n```\n3. not a step\n```\n- bullet\n  10. Nested"
    assert numbered_items(text) == ["First", "Second", "Nested"]
