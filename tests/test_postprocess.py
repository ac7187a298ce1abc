import pytest

from cleanmark.postprocess import outside_fences, post_process, remove_empty_links, truncate


def test_collapses_blank_runs() -> None:
    assert post_process("a\n\n\n\nb") == "a\n\nb"


def test_trims_document() -> None:
    assert post_process("\n\n  text  \n") == "text"


def test_separates_glued_heading() -> None:
    assert post_process("text\n# Heading") == "text\n\n# Heading"


def test_joins_list_items() -> None:
    assert post_process("- a\n\n- b\n\n\n1. c") == "- a\n- b\n1. c"


def test_heading_keeps_gap_before_list() -> None:
    assert post_process("# Title\n\n- One\n- Two") == "# Title\n\n- One\n- Two"


def test_removes_empty_links() -> None:
    assert post_process("see [](http://x) here") == "see here"
    assert remove_empty_links("![](a.png)") == "![](a.png)"


def test_collapses_interior_spaces_only() -> None:
    assert post_process("a   b\n  - nested") == "a b\n  - nested"


def test_truncate() -> None:
    assert truncate("abcdef", 3) == "abc..."
    assert truncate("abc", 3) == "abc"
    assert truncate("abcdef", 0) == "abcdef"
    assert post_process("abcdef", 3) == "abc..."


@pytest.mark.parametrize(
    "sample",
    [
        "a\n\n\n\nb",
        "text\n# Heading\n\n\n- a\n\n- b",
        "  [](x)  lead  ",
        "x [](a)\n\n\n\n[](b) y",
        "# H\n\n\n\n\n## I",
        "```\nx\n\n\n\ny\n```\n\n\n- a\n\n- b",
    ],
)
def test_idempotent(sample: str) -> None:
    once = post_process(sample)
    assert post_process(once) == once


def test_fenced_code_left_untouched() -> None:
    markdown = "```\na   b\n\n\n\n# c\n- d\n\n- e\n[](x)\n```\ntext\n# H"
    assert post_process(markdown) == "```\na   b\n\n\n\n# c\n- d\n\n- e\n[](x)\n```\ntext\n\n# H"


def test_outside_fences_only_touches_prose() -> None:
    assert outside_fences("a\n```\nb\n```\nc", str.upper) == "A\n```\nb\n```\nC"


def test_longer_fence_protects_inner_fence_lines() -> None:
    markdown = "````\n```\n# x\n\n\n\ny\n```\n````"
    assert post_process(markdown) == markdown
