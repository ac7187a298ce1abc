"""HTML to Markdown pipeline: sanitize, normalize, render, post-process."""

from __future__ import annotations

from typing import Any, Mapping

from .errors import ConversionError, UsageError
from .models import EMAIL_OPTIONS, ConversionOptions
from .normalizer import normalize
from .postprocess import post_process
from .renderer import render
from .rules import build_rules
from .sanitizer import build_policy, sanitize


def ensure_html(html: object, *, index: int | None = None) -> str:
    if not isinstance(html, str):
        raise UsageError(
            "INVALID_INPUT",
            f"HTML input must be a string, got {type(html).__name__}",
            index=index,
        )
    if not html.strip():
        raise UsageError("EMPTY_INPUT", "HTML content is empty", index=index)
    return html


def resolve_options(options: ConversionOptions | Mapping[str, Any] | None) -> ConversionOptions:
    if options is None:
        return ConversionOptions()
    if isinstance(options, ConversionOptions):
        return options
    try:
        return ConversionOptions.from_mapping(options)
    except (KeyError, TypeError, ValueError) as exc:
        raise UsageError("INVALID_OPTIONS", str(exc)) from exc


def _run_pipeline(html: str, options: ConversionOptions) -> str:
    policy = build_policy(options)
    tree = normalize(sanitize(html, policy))
    markdown = render(tree, build_rules(options, policy))
    return post_process(markdown, options.max_length)


def convert(
    html: object,
    options: ConversionOptions | Mapping[str, Any] | None = None,
    *,
    index: int | None = None,
) -> str:
    """Convert an HTML string to Markdown.

    Raises:
        UsageError: *html* is not a string, is blank, or *options* are invalid.
        ConversionError: a pipeline stage failed; the original error is chained.
    """
    source = ensure_html(html, index=index)
    resolved = resolve_options(options)
    try:
        return _run_pipeline(source, resolved)
    except Exception as exc:
        raise ConversionError(
            "CONVERSION_FAILED",
            f"Failed to convert HTML to Markdown: {exc}",
            index=index,
        ) from exc


def convert_default(html: object) -> str:
    return convert(html, ConversionOptions())


def convert_custom(html: object, options: ConversionOptions | Mapping[str, Any] | None = None) -> str:
    return convert(html, options)


def convert_email(html: object) -> str:
    """Convert e-mail bodies: length-limited, alt text kept, line breaks collapsed."""
    return convert(html, EMAIL_OPTIONS)


__all__ = [
    "convert",
    "convert_custom",
    "convert_default",
    "convert_email",
    "ensure_html",
    "resolve_options",
]
