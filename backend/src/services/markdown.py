"""Markdown addressing helpers: word counts, sections, and line ranges.

Sections are keyed by level-2 (``##``) headings and are re-derived from the
content on every call; nothing here caches or mutates state. Line numbers
are 1-indexed, section indexes are 0-indexed.

Rules for :func:`parse_sections`:

- ``##`` headings open a new section (the heading line belongs to it).
- ``###`` and deeper headings stay inside their parent ``##`` section.
- A leading ``#`` line is the document title and is skipped, but only while
  no section has been opened yet; a later ``#`` line is ordinary content.
- Content before the first ``##`` forms section 0 with heading ``(intro)``.
- A trailing ``\\r`` stays part of the line, so ``## A\\r`` is a heading named ``A``.
"""

from __future__ import annotations

import re
from typing import List, Optional

from ..models.entry import LineRange, SectionContent, SectionInfo

CJK_PATTERN = re.compile(r"[\u4e00-\u9fff\u3400-\u4dbf\uf900-\ufaff]")
H1_PATTERN = re.compile(r"^#\s+(.+)$")
H2_PATTERN = re.compile(r"^##\s+(.+)$")
NUMBERED_LINE_PATTERN = re.compile(r"^ *\d+\| (.*)$", re.DOTALL)
INTRO_HEADING = "(intro)"


class SectionNotFoundError(LookupError):
    """Raised when a section index does not exist in the content."""

    def __init__(self, section_index: int):
        self.section_index = section_index
        super().__init__(f"Section {section_index} does not exist")


class TextNotFoundError(LookupError):
    """Raised when the text to replace does not occur in the content."""

    def __init__(self) -> None:
        super().__init__("No match found for the given text")


class AmbiguousMatchError(ValueError):
    """Raised when the text to replace occurs more than once."""

    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"Ambiguous: {count} matches found; provide more surrounding context "
            "to identify a unique location"
        )


def count_words(text: Optional[str]) -> int:
    """Count words in mixed CJK/Latin text.

    Each CJK ideograph counts as one word; the remaining text is split on
    whitespace and every non-empty token counts as one word.
    """
    if not text:
        return 0
    cjk_count = len(CJK_PATTERN.findall(text))
    stripped = CJK_PATTERN.sub(" ", text)
    return cjk_count + len(stripped.split())


def count_lines(content: Optional[str]) -> int:
    """Count lines in content (0 for empty content)."""
    if not content:
        return 0
    return len(content.split("\n"))


def _finish_section(
    heading: str, line_start: int, lines: List[str], last_line_index: int, index: int
) -> SectionInfo:
    return SectionInfo(
        index=index,
        heading=heading,
        line_start=line_start,
        line_end=last_line_index + 1,
        word_count=count_words("\n".join(lines)),
    )


def parse_sections(content: Optional[str]) -> List[SectionInfo]:
    """Split content into ordered sections delimited by ``##`` headings."""
    if not content:
        return []

    lines = content.split("\n")
    sections: List[SectionInfo] = []
    heading: Optional[str] = None
    line_start = 0
    section_lines: List[str] = []

    for i, line in enumerate(lines):
        h2_match = H2_PATTERN.match(line)
        if h2_match:
            if heading is not None:
                sections.append(
                    _finish_section(heading, line_start, section_lines, i - 1, len(sections))
                )
            heading = h2_match.group(1).strip()
            line_start = i + 1
            section_lines = [line]
            continue

        if heading is None and not sections and H1_PATTERN.match(line):
            # Document title, not part of any section
            continue

        if heading is None:
            heading = INTRO_HEADING
            line_start = i + 1
            section_lines = []
        section_lines.append(line)

    if heading is not None:
        sections.append(
            _finish_section(heading, line_start, section_lines, len(lines) - 1, len(sections))
        )

    return sections


def get_line_range(content: str, offset: int, limit: int) -> LineRange:
    """Return lines ``offset`` (1-indexed, inclusive) onwards, at most ``limit`` of them.

    Each line is prefixed with its right-aligned line number and ``"| "``.
    Offsets past the end yield empty content rather than an error.
    """
    lines = content.split("\n")
    start_idx = max(0, offset - 1)
    end_idx = min(len(lines), start_idx + limit)
    has_more = end_idx < len(lines)

    pad_width = len(str(end_idx))
    numbered = [
        f"{str(start_idx + i + 1).rjust(pad_width)}| {line}"
        for i, line in enumerate(lines[start_idx:end_idx])
    ]
    return LineRange(content="\n".join(numbered), has_more=has_more)


def find_section(content: str, section_index: int) -> SectionInfo:
    for section in parse_sections(content):
        if section.index == section_index:
            return section
    raise SectionNotFoundError(section_index)


def get_section_content(content: str, section_index: int) -> SectionContent:
    """Return one section as line-numbered content.

    Raises SectionNotFoundError if the index does not exist.
    """
    section = find_section(content, section_index)
    line_range = get_line_range(
        content, section.line_start, section.line_end - section.line_start + 1
    )
    return SectionContent(
        heading=section.heading,
        content=line_range.content,
        line_start=section.line_start,
        line_end=section.line_end,
        word_count=section.word_count,
    )


def replace_section_content(
    full_content: str, section_index: int, new_section_content: str
) -> str:
    """Splice new text in place of a section, leaving all other lines untouched.

    The replacement is not required to keep the section's heading.
    Raises SectionNotFoundError if the index does not exist.
    """
    section = find_section(full_content, section_index)
    lines = full_content.split("\n")
    before = lines[: section.line_start - 1]
    after = lines[section.line_end :]
    return "\n".join(before + new_section_content.split("\n") + after)


def replace_exact_text(content: str, old_text: str, new_text: str) -> str:
    """Replace the single literal occurrence of ``old_text``.

    Raises TextNotFoundError when there is no occurrence and
    AmbiguousMatchError (with the match count) when there are several.
    """
    if not old_text:
        raise ValueError("old_text must not be empty")
    count = content.count(old_text)
    if count == 0:
        raise TextNotFoundError()
    if count > 1:
        raise AmbiguousMatchError(count)
    return content.replace(old_text, new_text, 1)


def strip_line_numbers(numbered: str) -> str:
    """Undo the ``"<n>| "`` prefixes produced by :func:`get_line_range`.

    Raises ValueError naming the first line that carries no such prefix.
    """
    if not numbered:
        return ""
    stripped = []
    for position, line in enumerate(numbered.split("\n"), start=1):
        match = NUMBERED_LINE_PATTERN.match(line)
        if match is None:
            raise ValueError(f"Line {position} has no line-number prefix: {line!r}")
        stripped.append(match.group(1))
    return "\n".join(stripped)


def derive_summary(content: str, length: int = 200) -> str:
    """First ``length`` characters of the content with newlines flattened."""
    return content[:length].replace("\n", " ")


__all__ = [
    "SectionNotFoundError",
    "TextNotFoundError",
    "AmbiguousMatchError",
    "count_words",
    "count_lines",
    "parse_sections",
    "get_line_range",
    "find_section",
    "get_section_content",
    "replace_section_content",
    "replace_exact_text",
    "strip_line_numbers",
    "derive_summary",
]
