"""Markdown rendering rules.

A rule pairs a predicate over an element with a replacement that has the shape
of markdownify's ``convert_<tag>(el, text, parent_tags)`` methods: it receives
the element, the already-rendered content of its children and the set of
enclosing tag names. Rules are consulted in order and the first match wins;
rules added with :meth:`RuleSet.add` are put in front of the built-ins so they
override them for overlapping matches.

The built-in rules are bound methods of a single :class:`CleanmarkConverter`
created per conversion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator
from urllib.parse import parse_qs, unquote, urlsplit

from bs4.element import Tag
from markdownify import (
    ASTERISK,
    ATX,
    SPACES,
    UNDERSCORE,
    MarkdownConverter,
    abstract_inline_conversion,
    re_backtick_runs,
    strip_pre,
)

from .models import ConversionOptions
from .sanitizer import SanitizePolicy, build_policy

Predicate = Callable[[Tag], bool]
Replacement = Callable[[Tag, str, set], str]

BLOCK_TAGS: frozenset[str] = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "center",
        "dd", "details", "dir", "div", "dl", "dt", "fieldset", "figcaption", "figure",
        "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hgroup", "hr",
        "html", "li", "main", "menu", "nav", "ol", "p", "pre", "section", "summary",
        "table", "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
    }
)
HEADING_TAGS: tuple[str, ...] = ("h1", "h2", "h3", "h4", "h5", "h6")
TABLE_TAGS: tuple[str, ...] = ("table", "thead", "tbody", "tr", "th", "td")
REMOVED_TAGS: tuple[str, ...] = ("script", "style", "meta", "link", "noscript", "iframe")

REDIRECT_MARKERS: tuple[str, ...] = ("safelink.emails", "redirect")
REDIRECT_PARAMETER = "destination"


class CleanmarkConverter(MarkdownConverter):
    """markdownify converter configured for the output dialect.

    ATX headings, ``-`` bullets, ``**`` strong and fenced code blocks. The
    emphasis delimiter is a separate option so the DOCX profile can use ``_``
    while keeping ``**`` for strong text.
    """

    class Options(MarkdownConverter.DefaultOptions):
        autolinks = False
        bullets = "-"
        em_symbol = ASTERISK
        escape_misc = True
        heading_style = ATX
        newline_style = SPACES
        strong_em_symbol = ASTERISK
        table_infer_header = True
        wrap = True
        wrap_width = None

    convert_em = abstract_inline_conversion(lambda self: self.options["em_symbol"])
    convert_i = convert_em

    def convert_heading(self, el: Tag, text: str, parent_tags: set) -> str:
        return self.convert_hN(int(el.name[1]), el, text, parent_tags)

    def convert_pre(self, el: Tag, text: str, parent_tags: set) -> str:
        """Fence code with one backtick more than the longest run inside it."""
        if not text:
            return ""
        code = strip_pre(text)
        longest = max((len(run) for run in re_backtick_runs.findall(code)), default=0)
        fence = "`" * max(3, longest + 1)
        return f"\n\n{fence}{self.options['code_language']}\n{code}\n{fence}\n\n"


DOCX_MARKDOWN: dict[str, str] = {"em_symbol": UNDERSCORE}


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    matches: Predicate
    render: Replacement


def is_block(node: object) -> bool:
    return isinstance(node, Tag) and node.name in BLOCK_TAGS


def tag_filter(*names: str) -> Predicate:
    wanted = frozenset(names)

    def matches(node: Tag) -> bool:
        return node.name in wanted

    return matches


def _default(node: Tag, text: str, parent_tags: set) -> str:
    return text


DEFAULT_RULE = Rule("default", lambda node: True, _default)


class RuleSet:
    """Ordered rule registry with first-match-wins dispatch.

    *converter* supplies text handling (whitespace and escaping) for the
    renderer; it is the same converter the built-in rules are bound to.
    """

    def __init__(self, rules: Iterable[Rule] = (), converter: MarkdownConverter | None = None) -> None:
        self._rules: list[Rule] = list(rules)
        self._keep: list[Rule] = []
        self._remove: list[Rule] = []
        self.converter = converter if converter is not None else CleanmarkConverter()

    def add(self, rule: Rule) -> "RuleSet":
        self._rules.insert(0, rule)
        return self

    def keep(self, *tags: str) -> "RuleSet":
        self._keep.append(Rule(f"keep:{','.join(tags)}", tag_filter(*tags), _keep_html))
        return self

    def remove(self, *tags: str) -> "RuleSet":
        self._remove.append(Rule(f"remove:{','.join(tags)}", tag_filter(*tags), lambda node, text, parent_tags: ""))
        return self

    def __iter__(self) -> Iterator[Rule]:
        yield from self._rules
        yield from self._keep
        yield from self._remove

    @property
    def names(self) -> list[str]:
        return [rule.name for rule in self]

    def for_node(self, node: Tag) -> Rule:
        for rule in self:
            if rule.matches(node):
                return rule
        return DEFAULT_RULE


def _keep_html(node: Tag, text: str, parent_tags: set) -> str:
    html = str(node)
    return f"\n\n{html}\n\n" if is_block(node) else html


def _image(converter: MarkdownConverter, include_alt: bool) -> Replacement:
    def render(node: Tag, text: str, parent_tags: set) -> str:
        if not node.get("src"):
            return ""
        if not include_alt:
            node.attrs.pop("alt", None)
        return converter.convert_img(node, text, parent_tags)

    return render


def builtin_rules(
    converter: CleanmarkConverter,
    *,
    include_image_alt: bool = True,
    tables: bool = False,
) -> list[Rule]:
    rules = [
        Rule("paragraph", tag_filter("p"), converter.convert_p),
        Rule("lineBreak", tag_filter("br"), converter.convert_br),
        Rule("heading", tag_filter(*HEADING_TAGS), converter.convert_heading),
        Rule("blockquote", tag_filter("blockquote"), converter.convert_blockquote),
        Rule("list", tag_filter("ul", "ol"), converter.convert_list),
        Rule("listItem", tag_filter("li"), converter.convert_li),
        Rule("codeBlock", tag_filter("pre"), converter.convert_pre),
        Rule("horizontalRule", tag_filter("hr"), converter.convert_hr),
        Rule("inlineLink", tag_filter("a"), converter.convert_a),
        Rule("emphasis", tag_filter("em", "i"), converter.convert_em),
        Rule("strong", tag_filter("strong", "b"), converter.convert_strong),
        Rule("code", tag_filter("code"), converter.convert_code),
        Rule("image", tag_filter("img"), _image(converter, include_image_alt)),
    ]
    if tables:
        rules += [
            Rule("tableCell", tag_filter("th", "td"), converter.convert_td),
            Rule("tableRow", tag_filter("tr"), converter.convert_tr),
            Rule("table", tag_filter("table"), converter.convert_table),
        ]
    rules.append(
        Rule(
            "block",
            lambda node: is_block(node) and node.name not in TABLE_TAGS,
            converter.convert_div,
        )
    )
    return rules


def unwrap_redirect(href: str) -> str | None:
    """Return the decoded destination of a redirect URL, or None."""
    try:
        query = urlsplit(href).query
    except ValueError:
        return None
    values = parse_qs(query).get(REDIRECT_PARAMETER)
    if not values or not values[0]:
        return None
    return unquote(values[0])


def _is_redirect_link(node: Tag) -> bool:
    if node.name != "a":
        return False
    href = node.get("href")
    return bool(href) and any(marker in str(href) for marker in REDIRECT_MARKERS)


def redirect_target(href: str, policy: SanitizePolicy) -> str | None:
    """Where a redirect link should point once unwrapped.

    The decoded destination replaces the wrapper when the policy allows it.
    A destination the policy rejects drops the link entirely, since following
    the wrapper would land there anyway. Without a destination the wrapper
    itself is kept if it is allowed.
    """
    destination = unwrap_redirect(href)
    if destination is not None:
        return destination if policy.allows_link(destination) else None
    return href if policy.allows_link(href) else None


def redirect_rule(converter: MarkdownConverter, policy: SanitizePolicy) -> Rule:
    def render(node: Tag, text: str, parent_tags: set) -> str:
        target = redirect_target(str(node.get("href") or ""), policy)
        if target is None:
            del node["href"]
        else:
            node["href"] = target
        return converter.convert_a(node, text, parent_tags)

    return Rule("redirectLinks", _is_redirect_link, render)


def _trimmed_paragraph(node: Tag, text: str, parent_tags: set) -> str:
    trimmed = text.strip()
    if "_inline" in parent_tags:
        return f" {trimmed} " if trimmed else ""
    return f"\n\n{trimmed}\n\n" if trimmed else ""


def line_break_rule(replacement: str) -> Rule:
    def render(node: Tag, text: str, parent_tags: set) -> str:
        return " " if "_inline" in parent_tags else replacement

    return Rule("lineBreaks", tag_filter("br"), render)


def build_rules(options: ConversionOptions, policy: SanitizePolicy | None = None) -> RuleSet:
    """Fresh rule set for the HTML profile."""
    converter = CleanmarkConverter()
    rules = RuleSet(
        builtin_rules(
            converter,
            include_image_alt=options.include_image_alt,
            tables=options.preserve_tables,
        ),
        converter,
    )
    rules.add(line_break_rule("\n" if options.preserve_line_breaks else " "))
    rules.add(Rule("removeEmptyParagraphs", tag_filter("p"), _trimmed_paragraph))
    rules.add(redirect_rule(converter, policy or build_policy(options)))
    rules.remove(*REMOVED_TAGS)
    return rules


def build_docx_rules(preserve_structure: bool = True) -> RuleSet:
    """Fresh rule set for mammoth-generated HTML."""
    converter = CleanmarkConverter(**DOCX_MARKDOWN)
    rules = RuleSet(builtin_rules(converter, include_image_alt=True, tables=False), converter)
    rules.add(line_break_rule("  \n"))
    if preserve_structure:
        rules.keep(*TABLE_TAGS)
    return rules


__all__ = [
    "BLOCK_TAGS",
    "CleanmarkConverter",
    "DEFAULT_RULE",
    "DOCX_MARKDOWN",
    "REDIRECT_MARKERS",
    "Rule",
    "RuleSet",
    "build_docx_rules",
    "build_rules",
    "builtin_rules",
    "is_block",
    "line_break_rule",
    "redirect_rule",
    "redirect_target",
    "tag_filter",
    "unwrap_redirect",
]
