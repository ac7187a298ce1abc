from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .adapters import AdapterResponse, convert_docx, get_adapter
from .config import AppConfig
from .core import convert, ensure_html
from .detection import DetectionError, DocumentType, detect_document_type
from .errors import CleanmarkError, ConversionError, UsageError
from .logging import RunLogEntry, RunLogger
from .models import ConversionOptions, DocxConversion
from .utils import atomic_write, generate_run_id


@dataclass(slots=True)
class FileConversionResult:
    run_id: str
    source: Path
    markdown: str
    warnings: list[str]
    output_path: Path | None
    summary: str


class ConversionService:
    """Applies configured defaults, input-size guards and run logging around the pipeline."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._logger = RunLogger(config.runtime.log_path)

    @property
    def config(self) -> AppConfig:
        return self._config

    def options(self, overrides: ConversionOptions | Mapping[str, Any] | None = None) -> ConversionOptions:
        if isinstance(overrides, ConversionOptions):
            return overrides
        try:
            return ConversionOptions.from_mapping(overrides, base=self._config.defaults)
        except (KeyError, TypeError, ValueError) as exc:
            raise UsageError("INVALID_OPTIONS", str(exc)) from exc

    def enforce_size_limit(self, size_bytes: int, *, index: int | None = None) -> None:
        limit = self._config.runtime.max_input_bytes
        if limit > 0 and size_bytes > limit:
            raise UsageError(
                "SIZE_LIMIT",
                f"Input of {size_bytes} bytes exceeds the configured limit of {limit} bytes",
                index=index,
            )

    def convert_html(
        self,
        html: object,
        options: ConversionOptions | Mapping[str, Any] | None = None,
        *,
        index: int | None = None,
        source: str = "inline",
        run_id: str | None = None,
    ) -> str:
        run_id = run_id or generate_run_id()
        start = time.perf_counter()
        input_chars = len(html) if isinstance(html, str) else 0
        try:
            text = ensure_html(html, index=index)
            self.enforce_size_limit(len(text.encode("utf-8")), index=index)
            markdown = convert(text, self.options(options), index=index)
        except CleanmarkError as exc:
            self._log(run_id, index, source, "failure", exc.code, input_chars, 0, [], start)
            raise
        self._log(run_id, index, source, "success", None, input_chars, len(markdown), [], start)
        return markdown

    def convert_docx(
        self,
        payload: bytes,
        *,
        preserve_structure: bool = True,
        index: int | None = None,
        source: str = "inline",
        run_id: str | None = None,
    ) -> DocxConversion:
        run_id = run_id or generate_run_id()
        start = time.perf_counter()
        try:
            self.enforce_size_limit(len(payload), index=index)
            result = convert_docx(payload, preserve_structure=preserve_structure, index=index)
        except CleanmarkError as exc:
            self._log(run_id, index, source, "failure", exc.code, len(payload), 0, [], start)
            raise
        self._log(
            run_id, index, source, "success", None, len(payload), len(result.markdown), result.warnings, start
        )
        return result

    def convert_file(
        self,
        path: Path,
        *,
        options: ConversionOptions | Mapping[str, Any] | None = None,
        output_path: Path | None = None,
    ) -> FileConversionResult:
        run_id = generate_run_id()
        start = time.perf_counter()
        if not path.exists():
            raise UsageError("NOT_FOUND", f"Source file does not exist: {path}")
        self.enforce_size_limit(path.stat().st_size)
        try:
            detection = detect_document_type(path)
        except DetectionError as exc:
            raise UsageError("UNSUPPORTED_MIME", str(exc)) from exc

        response = self._convert_with_adapter(detection.document_type, path.read_bytes(), options, path, run_id)

        if output_path is not None:
            atomic_write(output_path, response.markdown + "\n")
        elapsed = time.perf_counter() - start
        target = output_path or "<stdout>"
        return FileConversionResult(
            run_id=run_id,
            source=path,
            markdown=response.markdown,
            warnings=response.warnings,
            output_path=output_path,
            summary=f"Converted {path.name} -> {target} in {elapsed:.2f}s",
        )

    def _convert_with_adapter(
        self,
        document_type: DocumentType,
        payload: bytes,
        options: ConversionOptions | Mapping[str, Any] | None,
        path: Path,
        run_id: str,
    ) -> AdapterResponse:
        adapter = get_adapter(document_type)
        start = time.perf_counter()
        try:
            response = adapter.convert(payload, self.options(options))
        except CleanmarkError as exc:
            self._log(run_id, None, str(path), "failure", exc.code, len(payload), 0, [], start)
            raise
        except Exception as exc:
            self._log(run_id, None, str(path), "failure", "CONVERSION_FAILED", len(payload), 0, [], start)
            raise ConversionError("CONVERSION_FAILED", f"Failed to convert {path.name}: {exc}") from exc
        self._log(
            run_id, None, str(path), "success", None, len(payload), len(response.markdown), response.warnings, start
        )
        return response

    def _log(
        self,
        run_id: str,
        index: int | None,
        source: str,
        status: str,
        error_code: str | None,
        input_chars: int,
        output_chars: int,
        warnings: list[str],
        start: float,
    ) -> None:
        self._logger.append(
            RunLogEntry(
                run_id=run_id,
                index=index if index is not None else 0,
                source=source,
                status=status,
                error_code=error_code,
                input_chars=input_chars,
                output_chars=output_chars,
                warnings=list(warnings),
                elapsed_ms=(time.perf_counter() - start) * 1000,
            )
        )


__all__ = ["ConversionService", "FileConversionResult"]
