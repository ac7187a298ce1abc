"""Post-order tree-to-Markdown renderer driven by a :class:`RuleSet`.

Follows markdownify's ``process_tag`` (whitespace-only children next to block
boundaries are dropped, ``_inline`` and ``_noformat`` pseudo-tags are pushed
down, newlines between children collapse to at most two) but walks the tree
with an explicit stack so deeply nested input cannot exhaust the recursion
limit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator

from bs4.element import CData, Comment, Declaration, Doctype, NavigableString, PageElement, ProcessingInstruction, Tag
from markdownify import re_extract_newlines, should_remove_whitespace_inside, should_remove_whitespace_outside

from .rules import RuleSet

_MARKUP_STRINGS = (Comment, CData, Declaration, Doctype, ProcessingInstruction)
_HEADING_RE = re.compile(r"h\d+$")
INLINE_TAGS: frozenset[str] = frozenset({"td", "th"})
NOFORMAT_TAGS: frozenset[str] = frozenset({"pre", "code", "kbd", "samp"})


def _ignorable(node: PageElement, remove_inside: bool) -> bool:
    if isinstance(node, Tag):
        return False
    if not isinstance(node, NavigableString) or isinstance(node, _MARKUP_STRINGS):
        return True
    if str(node).strip():
        return False
    if remove_inside and (not node.previous_sibling or not node.next_sibling):
        return True
    return should_remove_whitespace_outside(node.previous_sibling) or should_remove_whitespace_outside(
        node.next_sibling
    )


def _child_tags(node: Tag, parent_tags: set[str]) -> set[str]:
    tags = set(parent_tags)
    tags.add(node.name)
    if _HEADING_RE.match(node.name) or node.name in INLINE_TAGS:
        tags.add("_inline")
    if node.name in NOFORMAT_TAGS:
        tags.add("_noformat")
    return tags


def _join(parts: list[str], preformatted: bool) -> str:
    parts = [part for part in parts if part]
    if preformatted:
        return "".join(parts)
    joined = [""]
    for part in parts:
        leading, content, trailing = re_extract_newlines.match(part).groups()
        if joined[-1] and leading:
            previous = joined.pop()
            leading = "\n" * min(2, max(len(previous), len(leading)))
        joined.extend([leading, content, trailing])
    return "".join(joined)


@dataclass(slots=True)
class _Frame:
    node: Tag
    parent_tags: set[str]
    child_tags: set[str]
    children: Iterator[PageElement]
    parts: list[str] = field(default_factory=list)

    @property
    def preformatted(self) -> bool:
        return "pre" in self.child_tags


def _frame(node: Tag, parent_tags: set[str]) -> _Frame:
    remove_inside = should_remove_whitespace_inside(node)
    children = [child for child in node.children if not _ignorable(child, remove_inside)]
    return _Frame(node, parent_tags, _child_tags(node, parent_tags), iter(children))


def render(tree: Tag, rules: RuleSet) -> str:
    """Render the children of *tree*; each element is handed to its first matching rule."""
    converter = rules.converter
    root = _frame(tree, set())
    stack = [root]
    while stack:
        frame = stack[-1]
        child = next(frame.children, None)
        if child is None:
            stack.pop()
            content = _join(frame.parts, frame.preformatted)
            if frame is root:
                return content
            stack[-1].parts.append(rules.for_node(frame.node).render(frame.node, content, frame.parent_tags))
        elif isinstance(child, Tag):
            stack.append(_frame(child, frame.child_tags))
        else:
            frame.parts.append(converter.process_text(child, parent_tags=frame.child_tags))
    return ""


__all__ = ["INLINE_TAGS", "NOFORMAT_TAGS", "render"]
