from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from ..detection import DocumentType
from ..models import ConversionOptions


@dataclass(slots=True)
class AdapterResponse:
    markdown: str
    warnings: list[str] = field(default_factory=list)
    html: str | None = None


class Adapter(Protocol):
    document_type: DocumentType

    def convert(self, payload: bytes, options: ConversionOptions) -> AdapterResponse:  # pragma: no cover - interface
        ...
