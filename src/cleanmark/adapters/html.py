from __future__ import annotations

from .base import AdapterResponse
from ..core import convert
from ..detection import DocumentType
from ..models import ConversionOptions
from ..utils import decode_text


class HTMLAdapter:
    document_type = DocumentType.HTML

    def convert(self, payload: bytes, options: ConversionOptions) -> AdapterResponse:
        html = decode_text(payload)
        return AdapterResponse(markdown=convert(html, options), html=html)
