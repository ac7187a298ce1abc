from __future__ import annotations

import re
from typing import Callable

ELLIPSIS = "..."

_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_GLUED_HEADING_RE = re.compile(r"\n+(#{1,6} )")
_LIST_ITEM = r"[ \t]*(?:[-*+]|\d+\.) "
_LIST_GAP_RE = re.compile(rf"(^{_LIST_ITEM}.*)\n{{2,}}(?={_LIST_ITEM})", re.MULTILINE)
_EMPTY_LINK_RE = re.compile(r"(?<!!)\[\]\([^)]*\)")
_SPACE_RUN_RE = re.compile(r"(?<=\S) {2,}")
_FENCED_BLOCK_RE = re.compile(r"^(`{3,})[^\n]*\n.*?^\1[ \t]*$", re.MULTILINE | re.DOTALL)


def outside_fences(markdown: str, transform: Callable[[str], str]) -> str:
    """Apply *transform* to every stretch of *markdown* that is not a fenced code block."""
    parts: list[str] = []
    position = 0
    for match in _FENCED_BLOCK_RE.finditer(markdown):
        parts.append(transform(markdown[position : match.start()]))
        parts.append(match.group(0))
        position = match.end()
    parts.append(transform(markdown[position:]))
    return "".join(parts)


def collapse_newlines(markdown: str) -> str:
    return _EXCESS_NEWLINES_RE.sub("\n\n", markdown)


def tidy(markdown: str) -> str:
    """Collapse blank-line runs outside code blocks and trim the document."""
    return outside_fences(markdown, collapse_newlines).strip()


def remove_empty_links(markdown: str) -> str:
    while True:
        markdown, count = _EMPTY_LINK_RE.subn("", markdown)
        if not count:
            return markdown


def truncate(markdown: str, max_length: int) -> str:
    if max_length > 0 and len(markdown) > max_length:
        return markdown[:max_length] + ELLIPSIS
    return markdown


def _clean_prose(markdown: str) -> str:
    markdown = collapse_newlines(markdown)
    markdown = _GLUED_HEADING_RE.sub(r"\n\n\1", markdown)
    markdown = _LIST_GAP_RE.sub(r"\1\n", markdown)
    markdown = remove_empty_links(markdown)
    return _SPACE_RUN_RE.sub(" ", markdown)


def post_process(markdown: str, max_length: int = 0) -> str:
    """Apply the Markdown cleanup passes in order, then the length limit.

    Fenced code blocks are left exactly as rendered.
    """
    markdown = outside_fences(tidy(markdown), _clean_prose)
    # Removed links can leave blank runs or edge whitespace behind.
    markdown = tidy(markdown)
    return truncate(markdown, max_length)


__all__ = [
    "ELLIPSIS",
    "collapse_newlines",
    "outside_fences",
    "post_process",
    "remove_empty_links",
    "tidy",
    "truncate",
]
