from __future__ import annotations

import re

from .base import CodeBlock, Section

_HEADING = re.compile(r"^(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
_FENCE = re.compile(r"^[ ]{0,3}(`{3,}|~{3,})(.*)$")
_NUMBERED = re.compile(r"^\s*\d+[.)]\s+(.+)$")


def _fence_states(lines: list[str]) -> list[bool]:
    """For each line, whether it belongs to a fenced code block (fence lines included)."""
    inside: list[bool] = []
    fence: str | None = None
    for line in lines:
        match = _FENCE.match(line)
        if fence is None:
            if match:
                fence = match.group(1)
                inside.append(True)
                continue
            inside.append(False)
            continue
        inside.append(True)
        if match and match.group(1)[0] == fence[0] and len(match.group(1)) >= len(fence) and not match.group(2).strip():
            fence = None
    return inside


def parse_sections(body: str, line_offset: int = 0) -> list[Section]:
    lines = body.splitlines()
    fenced = _fence_states(lines)

    headings: list[tuple[int, int, str]] = []
    for index, line in enumerate(lines):
        if fenced[index]:
            continue
        match = _HEADING.match(line)
        if match:
            headings.append((index, len(match.group(1)), match.group(2).strip()))

    sections: list[Section] = []
    for position, (index, level, title) in enumerate(headings):
        end = len(lines)
        for next_index, next_level, _ in headings[position + 1 :]:
            if next_level <= level:
                end = next_index
                break
        content = "\n".join(lines[index + 1 : end]).strip()
        sections.append(Section(title=title, level=level, line=index + 1 + line_offset, content=content))
    return sections


def parse_code_blocks(body: str, line_offset: int = 0) -> list[CodeBlock]:
    blocks: list[CodeBlock] = []
    lines = body.splitlines()

    fence: str | None = None
    language = ""
    start = 0
    buffer: list[str] = []
    for index, line in enumerate(lines):
        match = _FENCE.match(line)
        if fence is None:
            if match:
                fence = match.group(1)
                info = match.group(2).strip()
                language = info.split()[0] if info else ""
                start = index
                buffer = []
            continue
        if match and match.group(1)[0] == fence[0] and len(match.group(1)) >= len(fence) and not match.group(2).strip():
            blocks.append(CodeBlock(language=language, line=start + 1 + line_offset, content="\n".join(buffer)))
            fence = None
            continue
        buffer.append(line)

    if fence is not None:
        blocks.append(CodeBlock(language=language, line=start + 1 + line_offset, content="\n".join(buffer), closed=False))
    return blocks


def numbered_items(text: str) -> list[str]:
    lines = text.splitlines()
    fenced = _fence_states(lines)
    items: list[str] = []
    for index, line in enumerate(lines):
        if fenced[index]:
            continue
        match = _NUMBERED.match(line)
        if match:
            items.append(match.group(1).strip())
    return items
