from __future__ import annotations

import re
import zipfile
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, Mapping


class DocumentType(str, Enum):
    DOCX = "docx"
    HTML = "html"

    @property
    def extension(self) -> str:
        return f".{self.value}"


@dataclass(slots=True)
class DetectionResult:
    document_type: DocumentType
    mime_type: str
    extension: str


DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
HTML_MIME = "text/html"

EXTENSION_MAP: dict[str, DocumentType] = {
    ".docx": DocumentType.DOCX,
    ".html": DocumentType.HTML,
    ".htm": DocumentType.HTML,
}

MIME_MAP: dict[DocumentType, str] = {
    DocumentType.DOCX: DOCX_MIME,
    DocumentType.HTML: HTML_MIME,
}

_TAG_RE = re.compile(r"<[^>]+>")
_COMMON_ELEMENT_RE = re.compile(r"<(html|head|body|div|p|span|table|ul|ol|li|h[1-6]|a|img|br|hr)", re.IGNORECASE)
_PAIRED_TAG_RE = re.compile(r"<[^>]+>.*</[^>]+>", re.DOTALL)
_ENTITY_RE = re.compile(r"&[a-zA-Z0-9#]+;")
_ATTRIBUTE_RE = re.compile(r"""=\s*["'][^"']*["']""")
_PROPERTY_PATH_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_.]*$")


class DetectionError(RuntimeError):
    """Raised when format detection fails."""


def is_docx_bytes(payload: bytes) -> bool:
    if not payload.startswith(b"PK"):
        return False
    try:
        with zipfile.ZipFile(BytesIO(payload)) as archive:
            return "word/document.xml" in archive.namelist()
    except zipfile.BadZipFile:
        return False


def looks_like_docx(mime_type: str | None, file_name: str | None) -> bool:
    """Accept DOCX by mime type or file name; a missing mime type is assumed DOCX."""
    mime = mime_type or DOCX_MIME
    if mime == DOCX_MIME:
        return True
    return bool(file_name) and file_name.lower().endswith(".docx")


def looks_like_html(value: Any, record: Mapping[str, Any] | None = None) -> bool:
    """Guess whether a text parameter is HTML content rather than a property path.

    This is a heuristic for disambiguating caller input; short HTML snippets and
    long non-HTML strings can be classified wrongly.
    """
    if not isinstance(value, str) or len(value) < 10:
        return False
    has_tags = bool(_TAG_RE.search(value))
    if has_tags and (_COMMON_ELEMENT_RE.search(value) or _PAIRED_TAG_RE.search(value)):
        return True
    has_entities = bool(_ENTITY_RE.search(value))
    if has_entities or _ATTRIBUTE_RE.search(value):
        return True
    if len(value) < 50 and _PROPERTY_PATH_RE.match(value) and record is not None and value in record:
        return False
    return len(value) > 30 and (has_tags or has_entities)


def sniff_mime(path: Path) -> str:
    extension = path.suffix.lower()
    if extension == ".docx":
        if is_docx_bytes(path.read_bytes()):
            return DOCX_MIME
        return "application/octet-stream"
    if extension in {".html", ".htm"}:
        with path.open("rb") as handle:
            sample = handle.read(2048).decode("utf-8", errors="ignore")
        if _TAG_RE.search(sample):
            return HTML_MIME
        return "application/octet-stream"
    return "application/octet-stream"


def detect_document_type(path: Path) -> DetectionResult:
    extension = path.suffix.lower()
    ext_type = EXTENSION_MAP.get(extension)
    if not ext_type:
        raise DetectionError(f"Unsupported file extension: {extension or '<none>'}")
    mime = sniff_mime(path)
    expected_mime = MIME_MAP[ext_type]
    if mime != expected_mime:
        raise DetectionError(
            f"MIME sniff mismatch: expected {expected_mime}, detected {mime or 'unknown'}",
        )
    return DetectionResult(document_type=ext_type, mime_type=mime, extension=extension)
