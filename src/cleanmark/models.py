"""Domain models for HTML and DOCX to Markdown conversion."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Iterable, Literal, Mapping

from .logging import BatchSummary

_OPTION_ALIASES: dict[str, str] = {
    "preserveTables": "preserve_tables",
    "maxLength": "max_length",
    "includeImageAlt": "include_image_alt",
    "allowedDomains": "allowed_domains",
    "preserveLineBreaks": "preserve_line_breaks",
}


def _normalize_domains(domains: Iterable[str] | str | None) -> tuple[str, ...]:
    if not domains:
        return ()
    if isinstance(domains, str):
        domains = domains.split(",")
    seen: dict[str, None] = {}
    for domain in domains:
        cleaned = str(domain).strip().lower()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


@dataclass(frozen=True, slots=True)
class ConversionOptions:
    """Caller policy for a single HTML conversion."""

    preserve_tables: bool = False
    max_length: int = 0
    include_image_alt: bool = True
    allowed_domains: tuple[str, ...] = ()
    preserve_line_breaks: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.max_length, bool) or not isinstance(self.max_length, int):
            raise TypeError(f"max_length must be an integer, got {self.max_length!r}")
        if self.max_length < 0:
            raise ValueError("max_length must be zero (unlimited) or positive")
        object.__setattr__(self, "allowed_domains", _normalize_domains(self.allowed_domains))

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any] | None, *, base: "ConversionOptions | None" = None
    ) -> "ConversionOptions":
        """Build options from camelCase or snake_case keys, defaulting the rest."""
        base = base or cls()
        if not data:
            return base
        known = {item.name for item in fields(cls)}
        updates: dict[str, Any] = {}
        for key, value in data.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise KeyError(f"Unknown conversion option: {key}")
            updates[name] = value
        if "max_length" in updates:
            updates["max_length"] = int(updates["max_length"] or 0)
        for flag in ("preserve_tables", "include_image_alt", "preserve_line_breaks"):
            if flag in updates:
                updates[flag] = bool(updates[flag])
        return replace(base, **updates)

    def as_dict(self) -> dict[str, object]:
        return {
            "preserve_tables": self.preserve_tables,
            "max_length": self.max_length,
            "include_image_alt": self.include_image_alt,
            "allowed_domains": list(self.allowed_domains),
            "preserve_line_breaks": self.preserve_line_breaks,
        }


EMAIL_OPTIONS = ConversionOptions(
    preserve_tables=False,
    max_length=10000,
    include_image_alt=True,
    preserve_line_breaks=False,
)


@dataclass(slots=True)
class DocxConversion:
    """Markdown produced from a DOCX document plus converter diagnostics."""

    markdown: str
    html: str
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Attachment:
    data: bytes
    mime_type: str | None = None
    file_name: str | None = None


@dataclass(slots=True)
class Record:
    """A JSON-like record with optional binary attachments."""

    json: dict[str, Any] = field(default_factory=dict)
    binary: dict[str, Attachment] = field(default_factory=dict)


OutputMode = Literal["json", "file"]


@dataclass(slots=True)
class BatchConversionResult:
    """Outputs of a record batch, in input order, with aggregate counts."""

    records: list[Record]
    summary: BatchSummary


__all__ = [
    "Attachment",
    "BatchConversionResult",
    "ConversionOptions",
    "DocxConversion",
    "EMAIL_OPTIONS",
    "OutputMode",
    "Record",
]
