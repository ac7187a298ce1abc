"""Allow-list HTML sanitizer built on BeautifulSoup.

The policy mirrors what a Markdown renderer can express: anything outside the
allowed tag set is unwrapped (its text survives), a small set of tags is
dropped together with its content, attributes are filtered per tag, and URLs
are checked against per-tag scheme lists and an optional domain allow-list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from bs4.element import CData, Comment, Declaration, Doctype, ProcessingInstruction, Tag

from .models import ConversionOptions

BASE_TAGS: frozenset[str] = frozenset(
    {
        "p", "br", "b", "strong", "i", "em", "a",
        "ul", "ol", "li", "blockquote", "code",
        "pre", "h1", "h2", "h3", "h4", "h5", "h6",
        "img", "hr",
    }
)
TABLE_TAGS: frozenset[str] = frozenset({"table", "thead", "tbody", "tr", "th", "td"})

DISCARD_WITH_CONTENT: frozenset[str] = frozenset(
    {
        "script", "style", "textarea", "option", "noscript", "iframe",
        "head", "title", "template", "object", "embed", "svg", "math",
    }
)

# Unwrapped tags that must not glue neighbouring words together.
SEPARATING_TAGS: frozenset[str] = frozenset(
    {
        "div", "table", "thead", "tbody", "tfoot", "tr", "th", "td",
        "caption", "dl", "dt", "dd", "li", "figcaption",
    }
)

URL_ATTRIBUTES: frozenset[str] = frozenset({"href", "src"})

_MARKUP_STRINGS = (Comment, CData, Declaration, Doctype, ProcessingInstruction)
_SCHEME_RE = re.compile(r"^([a-z][a-z0-9+\-.]*):", re.IGNORECASE)
_URL_NOISE_RE = re.compile(r"[\x00-\x20\x7f]+")


@dataclass(frozen=True, slots=True)
class SanitizePolicy:
    allowed_tags: frozenset[str]
    allowed_attributes: Mapping[str, frozenset[str]]
    allowed_schemes: frozenset[str] = frozenset({"http", "https", "mailto"})
    allowed_schemes_by_tag: Mapping[str, frozenset[str]] = field(default_factory=dict)
    transform_tags: Mapping[str, str] = field(default_factory=dict)
    allowed_domains: tuple[str, ...] = ()

    def schemes_for(self, tag: str) -> frozenset[str]:
        return self.allowed_schemes_by_tag.get(tag, self.allowed_schemes)

    def excludes(self, tag: Tag, name: str) -> bool:
        """Return True when a tag must be removed together with its content."""
        if not self.allowed_domains or name != "a":
            return False
        href = tag.get("href")
        if not href:
            return False
        hostname = url_hostname(str(href))
        return hostname is None or hostname not in self.allowed_domains

    def allows_link(self, url: str) -> bool:
        """Whether an ``<a href>`` pointing at *url* survives this policy."""
        if not _url_allowed(url, self.schemes_for("a")):
            return False
        if self.allowed_domains:
            return url_hostname(url) in self.allowed_domains
        return True


def build_policy(options: ConversionOptions) -> SanitizePolicy:
    allowed_tags = BASE_TAGS | TABLE_TAGS if options.preserve_tables else BASE_TAGS
    image_attributes = {"src", "title"}
    if options.include_image_alt:
        image_attributes.add("alt")
    return SanitizePolicy(
        allowed_tags=allowed_tags,
        allowed_attributes={
            "a": frozenset({"href", "title"}),
            "img": frozenset(image_attributes),
        },
        allowed_schemes=frozenset({"http", "https", "mailto"}),
        allowed_schemes_by_tag={"img": frozenset({"http", "https", "data"})},
        transform_tags={
            "div": "p" if options.preserve_line_breaks else "",
            "span": "",
            "section": "p",
            "article": "p",
            "header": "p",
            "footer": "p",
            "aside": "blockquote",
            "h7": "h6",
            "h8": "h6",
        },
        allowed_domains=options.allowed_domains,
    )


def url_scheme(url: str) -> str | None:
    """Return the lower-cased scheme of *url*, or None for relative URLs."""
    cleaned = _URL_NOISE_RE.sub("", url)
    match = _SCHEME_RE.match(cleaned)
    return match.group(1).lower() if match else None


def url_hostname(url: str) -> str | None:
    """Return the hostname of an absolute URL, or None when it has none or cannot be parsed."""
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
    except ValueError:
        return None
    if not parts.scheme or not hostname:
        return None
    return hostname


def _url_allowed(url: str, schemes: frozenset[str]) -> bool:
    scheme = url_scheme(url)
    return scheme is None or scheme in schemes


def _filter_attributes(tag: Tag, name: str, policy: SanitizePolicy) -> None:
    allowed = policy.allowed_attributes.get(name, frozenset())
    kept: dict[str, str] = {}
    for key, value in tag.attrs.items():
        if key not in allowed:
            continue
        if isinstance(value, list):
            value = " ".join(value)
        if key in URL_ATTRIBUTES and not _url_allowed(value, policy.schemes_for(name)):
            continue
        kept[key] = value
    tag.attrs = kept


def sanitize(html: str, policy: SanitizePolicy) -> str:
    soup = BeautifulSoup(html, "html.parser")
    to_unwrap: list[Tag] = []
    stack: list[Tag] = [soup]
    while stack:
        parent = stack.pop()
        for child in list(parent.children):
            if isinstance(child, _MARKUP_STRINGS):
                child.extract()
                continue
            if not isinstance(child, Tag):
                continue
            original = child.name.lower()
            if original in DISCARD_WITH_CONTENT:
                child.decompose()
                continue
            name = policy.transform_tags.get(original, original)
            if policy.excludes(child, name):
                child.decompose()
                continue
            if name and name in policy.allowed_tags:
                child.name = name
                _filter_attributes(child, name, policy)
                if name == "img" and not child.get("src"):
                    child.decompose()
                    continue
            else:
                to_unwrap.append(child)
            stack.append(child)

    # Descendants are discovered after their ancestors, so reversing unwraps inside-out.
    for tag in reversed(to_unwrap):
        if tag.name in SEPARATING_TAGS:
            tag.insert_after(" ")
        tag.unwrap()
    return str(soup)


__all__ = [
    "BASE_TAGS",
    "SanitizePolicy",
    "TABLE_TAGS",
    "build_policy",
    "sanitize",
    "url_hostname",
    "url_scheme",
]
