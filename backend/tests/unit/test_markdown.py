import pytest

from backend.src.services.markdown import (
    AmbiguousMatchError,
    SectionNotFoundError,
    TextNotFoundError,
    count_lines,
    count_words,
    derive_summary,
    get_line_range,
    get_section_content,
    parse_sections,
    replace_exact_text,
    replace_section_content,
    strip_line_numbers,
)

DOC = "# Title\n\nIntro text\n## A\nbody a\n### sub\nmore\n## B\nbody b"


def test_count_words_mixes_cjk_and_latin() -> None:
    assert count_words("你好world") == 3
    assert count_words("hello  world\nfoo") == 3
    assert count_words("") == 0
    assert count_words(None) == 0


def test_count_lines() -> None:
    assert count_lines("") == 0
    assert count_lines("one") == 1
    assert count_lines("one\ntwo\n") == 3


def test_parse_sections_skips_title_and_builds_intro() -> None:
    sections = parse_sections(DOC)

    assert [(s.index, s.heading, s.line_start, s.line_end) for s in sections] == [
        (0, "(intro)", 2, 3),
        (1, "A", 4, 7),
        (2, "B", 8, 9),
    ]
    # ### headings stay inside their parent section
    assert sections[1].word_count == 7
    assert sections[2].word_count == 4


def test_parse_sections_are_contiguous() -> None:
    sections = parse_sections(DOC)

    for previous, current in zip(sections, sections[1:]):
        assert current.line_start == previous.line_end + 1
    assert sections[-1].line_end == count_lines(DOC)


def test_parse_sections_intro_counts_its_first_line() -> None:
    sections = parse_sections("Intro line\n## A\nx")

    assert sections[0].heading == "(intro)"
    assert sections[0].line_start == 1
    assert sections[0].word_count == 2


def test_parse_sections_late_h1_is_content() -> None:
    sections = parse_sections("## A\n# Not a title\n")

    assert len(sections) == 1
    assert sections[0].line_end == 3
    assert sections[0].word_count == count_words("## A\n# Not a title\n")


def test_parse_sections_edge_cases() -> None:
    assert parse_sections("") == []
    assert parse_sections("# Only a title") == []
    assert parse_sections("# Title\nbody")[0].line_start == 2


def test_get_line_range_pads_to_last_number() -> None:
    content = "\n".join(f"line{i}" for i in range(1, 13))

    first = get_line_range(content, 1, 10)
    assert first.has_more is True
    assert first.content.split("\n")[0] == " 1| line1"
    assert first.content.split("\n")[-1] == "10| line10"

    tail = get_line_range(content, 8, 5)
    assert tail.has_more is False
    assert tail.content.split("\n")[0] == " 8| line8"


def test_get_line_range_window_and_beyond_end() -> None:
    assert get_line_range("a\nb\nc", 2, 5).content == "2| b\n3| c"

    beyond = get_line_range("a\nb", 10, 5)
    assert beyond.content == ""
    assert beyond.has_more is False


def test_line_numbers_strip_back_to_original() -> None:
    content = "first | piped\n\n## heading\nlast"
    numbered = get_line_range(content, 1, count_lines(content)).content

    assert strip_line_numbers(numbered) == content


def test_get_section_content_numbers_lines() -> None:
    section = get_section_content(DOC, 1)

    assert section.heading == "A"
    assert section.content == "4| ## A\n5| body a\n6| ### sub\n7| more"
    assert (section.line_start, section.line_end) == (4, 7)


def test_replace_section_content_leaves_other_lines() -> None:
    updated = replace_section_content(DOC, 1, "## A2\nnew")

    assert updated == "# Title\n\nIntro text\n## A2\nnew\n## B\nbody b"


def test_missing_section_raises() -> None:
    with pytest.raises(SectionNotFoundError) as excinfo:
        replace_section_content(DOC, 5, "x")
    assert excinfo.value.section_index == 5

    with pytest.raises(SectionNotFoundError):
        get_section_content("", 0)


def test_replace_exact_text_unique_match() -> None:
    assert replace_exact_text("hello world", "world", "there") == "hello there"


def test_replace_exact_text_reports_match_count() -> None:
    with pytest.raises(AmbiguousMatchError) as excinfo:
        replace_exact_text("a b a", "a", "x")
    assert excinfo.value.count == 2
    assert "2" in str(excinfo.value)


def test_replace_exact_text_errors() -> None:
    with pytest.raises(TextNotFoundError):
        replace_exact_text("hello", "bye", "x")
    with pytest.raises(ValueError):
        replace_exact_text("hello", "", "x")


def test_derive_summary_flattens_newlines() -> None:
    assert derive_summary("line1\nline2") == "line1 line2"
    assert len(derive_summary("x" * 500)) == 200


ROUND_TRIP_DOCS = [
    DOC,
    "# T\n\nintro\n## A\na\n### s\n## B\nb\n",
    "intro\n# late\n## A\n\n",
    "## Only\n",
    "# T\n# U\n## A\nx",
    "## Pipes\nx | y\n1| fake\n## End",
]


@pytest.mark.parametrize("content", ROUND_TRIP_DOCS)
def test_sections_cover_every_line_after_titles(content: str) -> None:
    sections = parse_sections(content)
    lines = content.split("\n")

    # Only leading "#" title lines may sit before the first section
    assert all(line.startswith("# ") for line in lines[: sections[0].line_start - 1])
    for previous, current in zip(sections, sections[1:]):
        assert current.line_start == previous.line_end + 1
    assert sections[-1].line_end == len(lines)


@pytest.mark.parametrize("content", ROUND_TRIP_DOCS)
def test_section_round_trip_reproduces_content(content: str) -> None:
    for section in parse_sections(content):
        numbered = get_section_content(content, section.index).content
        rebuilt = replace_section_content(content, section.index, strip_line_numbers(numbered))
        assert rebuilt == content


def test_replace_exact_text_leaves_single_new_occurrence() -> None:
    content = "alpha beta\ngamma delta"

    updated = replace_exact_text(content, "beta\ngamma", "BETA-GAMMA")

    assert updated.count("BETA-GAMMA") == 1
    assert "beta\ngamma" not in updated
    assert updated == "alpha BETA-GAMMA delta"


def test_parse_sections_treats_crlf_headings_as_headings() -> None:
    sections = parse_sections("# T\r\nintro\r\n## A\r\nx")

    assert [(s.heading, s.line_start, s.line_end) for s in sections] == [
        ("(intro)", 2, 2),
        ("A", 3, 4),
    ]


def test_strip_line_numbers_rejects_unnumbered_lines() -> None:
    with pytest.raises(ValueError, match="Line 2"):
        strip_line_numbers("1| ok\nmissing prefix")

    assert strip_line_numbers("") == ""
    assert strip_line_numbers(" 9| \n10| x") == "\nx"
