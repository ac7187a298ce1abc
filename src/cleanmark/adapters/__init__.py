"""Format adapters turning uploaded payloads into Markdown."""

from __future__ import annotations

from functools import lru_cache

from .base import Adapter, AdapterResponse
from .docx import DOCXAdapter, convert_docx, docx_to_html, html_to_docx_markdown
from .html import HTMLAdapter
from ..detection import DocumentType


@lru_cache(maxsize=None)
def get_adapter(document_type: DocumentType) -> Adapter:
    if document_type is DocumentType.DOCX:
        return DOCXAdapter()
    if document_type is DocumentType.HTML:
        return HTMLAdapter()
    raise KeyError(f"No adapter registered for {document_type}")


__all__ = [
    "Adapter",
    "AdapterResponse",
    "convert_docx",
    "docx_to_html",
    "get_adapter",
    "html_to_docx_markdown",
]
