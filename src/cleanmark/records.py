"""Batch processing of JSON-like records.

Each record carries a JSON payload and optional binary attachments. The HTML
input is resolved per record, converted, and written back either as a JSON
field or as a ``text/markdown`` attachment.
"""

from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass
from typing import Any, Callable, Literal, Mapping, Sequence

from .detection import is_docx_bytes, looks_like_docx, looks_like_html
from .errors import CleanmarkError, ConversionError, UsageError
from .logging import BatchSummary
from .models import Attachment, BatchConversionResult, ConversionOptions, OutputMode, Record
from .service import ConversionService
from .utils import decode_text, generate_run_id

MARKDOWN_MIME = "text/markdown"
COMMON_HTML_PROPERTIES: tuple[str, ...] = (
    "html",
    "content",
    "body",
    "text",
    "data",
    "body.content",
    "body.html",
)
EMAIL_PROPERTIES: frozenset[str] = frozenset(
    {"body", "subject", "sender", "from", "toRecipients", "receivedDateTime"}
)


@dataclass(slots=True)
class HtmlRecordSettings:
    source: Literal["text", "binary"] = "text"
    text_property: str = "body"
    binary_property: str = "data"
    output_mode: OutputMode = "json"
    markdown_field: str = "markdown"
    output_binary_property: str = "data"
    output_filename: str = "document.md"
    options: ConversionOptions | Mapping[str, Any] | None = None


@dataclass(slots=True)
class DocxRecordSettings:
    binary_property: str = "data"
    output_mode: OutputMode = "json"
    markdown_field: str = "markdown"
    include_html: bool = False
    preserve_structure: bool = True
    output_binary_property: str = "data"
    output_filename: str = "document.md"


def get_nested(data: Any, path: str) -> Any:
    """Follow a dot-separated path through nested mappings; None when any step is missing."""
    current = data
    for key in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _missing_property_message(prop: str, record: Mapping[str, Any]) -> str:
    available = list(record.keys())
    if any(key in EMAIL_PROPERTIES for key in available):
        suggestion = '. For email data, try using "body.content", "body.html", or "body" as the text property.'
    else:
        suggestion = ". Try using one of the common properties: " + ", ".join(COMMON_HTML_PROPERTIES) + "."
    return f'Text property "{prop}" not found{suggestion} Available properties: {", ".join(available)}'


def resolve_text_html(record: Record, text_property: str, *, index: int) -> str:
    data = record.json
    if not isinstance(data, Mapping):
        raise UsageError("NO_JSON", "No JSON data available", index=index)
    if looks_like_html(text_property, data):
        html: Any = text_property
        used = "evaluated expression"
    else:
        used = text_property
        html = get_nested(data, text_property)
        if html is None:
            for candidate in COMMON_HTML_PROPERTIES:
                value = get_nested(data, candidate)
                if isinstance(value, str) and value.strip():
                    html, used = value, candidate
                    break
        if html is None:
            raise UsageError("MISSING_PROPERTY", _missing_property_message(text_property, data), index=index)
        if not isinstance(html, str):
            raise UsageError(
                "INVALID_INPUT",
                f'Text property "{used}" must be a string, got {type(html).__name__}',
                index=index,
            )
    if not html.strip():
        raise UsageError("EMPTY_INPUT", "HTML content is empty", index=index)
    return html


def _attachment(record: Record, name: str, *, index: int) -> Attachment:
    attachment = record.binary.get(name)
    if attachment is None:
        raise UsageError("MISSING_BINARY", f'Binary property "{name}" not found', index=index)
    return attachment


def _markdown_attachment(markdown: str, filename: str) -> Attachment:
    return Attachment(
        data=markdown.encode("utf-8"),
        mime_type=MARKDOWN_MIME,
        file_name=filename or "document.md",
    )


def _guarded(worker: Callable[[Record, int, str], Record]) -> Callable[[Record, int, str], Record]:
    """Give unexpected worker failures a code and the record index."""

    def run(record: Record, index: int, run_id: str) -> Record:
        try:
            return worker(record, index, run_id)
        except CleanmarkError:
            raise
        except Exception as exc:
            raise ConversionError("CONVERSION_FAILED", f"Unexpected failure: {exc}", index=index) from exc

    return run


class RecordProcessor:
    def __init__(self, service: ConversionService) -> None:
        self._service = service

    def convert_html_record(self, record: Record, settings: HtmlRecordSettings, index: int, run_id: str) -> Record:
        if settings.source == "binary":
            html = decode_text(_attachment(record, settings.binary_property, index=index).data)
        else:
            html = resolve_text_html(record, settings.text_property, index=index)
        markdown = self._service.convert_html(
            html, settings.options, index=index, source=f"record:{index}", run_id=run_id
        )
        if settings.output_mode == "json":
            return Record(json={**record.json, settings.markdown_field: markdown})
        return Record(
            json=dict(record.json),
            binary={settings.output_binary_property: _markdown_attachment(markdown, settings.output_filename)},
        )

    def convert_docx_record(self, record: Record, settings: DocxRecordSettings, index: int, run_id: str) -> Record:
        attachment = _attachment(record, settings.binary_property, index=index)
        if not (looks_like_docx(attachment.mime_type, attachment.file_name) or is_docx_bytes(attachment.data)):
            raise UsageError(
                "UNSUPPORTED_MIME",
                f'Expected a .docx file (mime="{attachment.mime_type}", name="{attachment.file_name or "unknown"}")',
                index=index,
            )
        result = self._service.convert_docx(
            attachment.data,
            preserve_structure=settings.preserve_structure,
            index=index,
            source=f"record:{index}",
            run_id=run_id,
        )
        if settings.output_mode == "json":
            payload: dict[str, Any] = {
                **record.json,
                settings.markdown_field: result.markdown,
                "warnings": result.warnings,
            }
            if settings.include_html:
                payload["html"] = result.html
            return Record(json=payload)
        return Record(
            json={**record.json, "warnings": result.warnings},
            binary={settings.output_binary_property: _markdown_attachment(result.markdown, settings.output_filename)},
        )

    def process_html(
        self,
        records: Sequence[Record],
        settings: HtmlRecordSettings | None = None,
        *,
        parallelism: int | None = None,
        continue_on_fail: bool = False,
    ) -> BatchConversionResult:
        settings = settings or HtmlRecordSettings()
        return self._run_batch(
            records,
            lambda record, index, run_id: self.convert_html_record(record, settings, index, run_id),
            parallelism=parallelism,
            continue_on_fail=continue_on_fail,
        )

    def process_docx(
        self,
        records: Sequence[Record],
        settings: DocxRecordSettings | None = None,
        *,
        parallelism: int | None = None,
        continue_on_fail: bool = False,
    ) -> BatchConversionResult:
        settings = settings or DocxRecordSettings()
        return self._run_batch(
            records,
            lambda record, index, run_id: self.convert_docx_record(record, settings, index, run_id),
            parallelism=parallelism,
            continue_on_fail=continue_on_fail,
        )

    def _run_batch(
        self,
        records: Sequence[Record],
        worker: Callable[[Record, int, str], Record],
        *,
        parallelism: int | None,
        continue_on_fail: bool,
    ) -> BatchConversionResult:
        worker = _guarded(worker)
        run_id = generate_run_id("batch")
        summary = BatchSummary(total=len(records))
        parallelism = max(1, parallelism or self._service.config.runtime.parallelism)
        outputs: list[Record | None] = [None] * len(records)
        errors: dict[int, CleanmarkError] = {}

        if parallelism == 1:
            for index, record in enumerate(records):
                try:
                    outputs[index] = worker(record, index, run_id)
                except CleanmarkError as exc:
                    if not continue_on_fail:
                        raise
                    errors[index] = exc
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=parallelism) as executor:
                future_map = {
                    executor.submit(worker, record, index, run_id): index for index, record in enumerate(records)
                }
                for future in concurrent.futures.as_completed(future_map):
                    index = future_map[future]
                    try:
                        outputs[index] = future.result()
                    except CleanmarkError as exc:
                        errors[index] = exc
            if errors and not continue_on_fail:
                raise errors[min(errors)]

        results: list[Record] = []
        for index, output in enumerate(outputs):
            if index in errors:
                summary.failures += 1
                results.append(Record(json={"error": str(errors[index])}))
                continue
            summary.successes += 1
            warnings = output.json.get("warnings") if output is not None else None
            if isinstance(warnings, list):
                summary.add_warnings([str(item) for item in warnings])
            results.append(output)  # type: ignore[arg-type]
        return BatchConversionResult(records=results, summary=summary)


__all__ = [
    "COMMON_HTML_PROPERTIES",
    "DocxRecordSettings",
    "HtmlRecordSettings",
    "RecordProcessor",
    "get_nested",
    "resolve_text_html",
]
