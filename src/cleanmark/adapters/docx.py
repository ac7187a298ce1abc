"""DOCX support: mammoth produces HTML, the shared renderer produces Markdown."""

from __future__ import annotations

from io import BytesIO

import mammoth

from .base import AdapterResponse
from ..detection import DocumentType
from ..errors import ConversionError, UsageError
from ..models import ConversionOptions, DocxConversion
from ..normalizer import parse_html
from ..postprocess import tidy
from ..renderer import render
from ..rules import build_docx_rules
from ..sanitizer import build_policy, sanitize

STYLE_MAP = "\n".join(
    [
        "p[style-name='Title'] => h1:fresh",
        "p[style-name='Subtitle'] => h2:fresh",
    ]
)


def docx_to_html(payload: bytes) -> tuple[str, list[str]]:
    """Run mammoth with images embedded as data URIs; returns HTML and its messages."""
    result = mammoth.convert_to_html(
        BytesIO(payload),
        style_map=STYLE_MAP,
        convert_image=mammoth.images.data_uri,
    )
    return result.value, [message.message for message in result.messages]


def html_to_docx_markdown(html: str, preserve_structure: bool = True) -> str:
    policy = build_policy(ConversionOptions(preserve_tables=preserve_structure, preserve_line_breaks=True))
    tree = parse_html(sanitize(html, policy))
    return tidy(render(tree, build_docx_rules(preserve_structure)))


def convert_docx(
    payload: bytes,
    *,
    preserve_structure: bool = True,
    index: int | None = None,
) -> DocxConversion:
    if not payload:
        raise UsageError("EMPTY_INPUT", "DOCX payload is empty", index=index)
    try:
        html, warnings = docx_to_html(payload)
    except Exception as exc:
        raise ConversionError(
            "DOCX_READ_FAILED",
            f"Failed to read DOCX document: {exc}",
            index=index,
        ) from exc
    try:
        markdown = html_to_docx_markdown(html, preserve_structure)
    except Exception as exc:
        raise ConversionError(
            "CONVERSION_FAILED",
            f"Failed to convert DOCX to Markdown: {exc}",
            index=index,
        ) from exc
    return DocxConversion(markdown=markdown, html=html, warnings=warnings)


class DOCXAdapter:
    document_type = DocumentType.DOCX

    def __init__(self, preserve_structure: bool = True) -> None:
        self._preserve_structure = preserve_structure

    def convert(self, payload: bytes, options: ConversionOptions) -> AdapterResponse:
        result = convert_docx(payload, preserve_structure=self._preserve_structure)
        return AdapterResponse(markdown=result.markdown, warnings=result.warnings, html=result.html)
