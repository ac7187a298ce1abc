from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import Tag

# Leaves that carry meaning without any text.
SELF_CONTAINED_TAGS: frozenset[str] = frozenset({"img", "hr", "br"})
# Emptying a cell or row would shift the remaining columns.
TABLE_STRUCTURE_TAGS: frozenset[str] = frozenset({"tr", "th", "td"})
MEANINGFUL_DESCENDANTS: tuple[str, ...] = ("img", "hr")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _is_empty(tag: Tag) -> bool:
    if tag.name in SELF_CONTAINED_TAGS or tag.name in TABLE_STRUCTURE_TAGS:
        return False
    if tag.get_text().strip():
        return False
    return tag.find(MEANINGFUL_DESCENDANTS) is None


def prune_empty(tree: BeautifulSoup) -> BeautifulSoup:
    """Remove elements without text in document order, skipping removed subtrees."""
    stack: list[Tag] = [tree]
    while stack:
        parent = stack.pop()
        kept: list[Tag] = []
        for child in [node for node in parent.children if isinstance(node, Tag)]:
            if _is_empty(child):
                child.decompose()
            else:
                kept.append(child)
        stack.extend(reversed(kept))
    return tree


def normalize(sanitized_html: str) -> BeautifulSoup:
    return prune_empty(parse_html(sanitized_html))


__all__ = ["normalize", "parse_html", "prune_empty"]
