from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from ..schemas import ConvertRequest, ConvertResponse
from ...detection import looks_like_docx
from ...errors import CleanmarkError, UsageError
from ...service import ConversionService
from ...utils import decode_text

router = APIRouter(tags=["conversion"])


def conversion_service(request: Request) -> ConversionService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="SERVICE_UNAVAILABLE")
    return service


def _http_error(exc: CleanmarkError) -> HTTPException:
    if isinstance(exc, UsageError):
        status = 413 if exc.code == "SIZE_LIMIT" else 400
    else:
        status = 422
    return HTTPException(status_code=status, detail=exc.code)


async def _read_upload(file: UploadFile, service: ConversionService) -> bytes:
    content = await file.read()
    try:
        service.enforce_size_limit(len(content))
    except UsageError as exc:
        raise _http_error(exc) from exc
    return content


@router.post("/convert", summary="Convert an HTML string", response_model=ConvertResponse)
async def convert_html(
    request: ConvertRequest,
    service: ConversionService = Depends(conversion_service),
) -> ConvertResponse:
    overrides = request.options.overrides() if request.options else None
    try:
        markdown = await run_in_threadpool(service.convert_html, request.html, overrides, source="api")
    except CleanmarkError as exc:
        raise _http_error(exc) from exc
    return ConvertResponse(markdown=markdown, html=request.html if request.include_html else None)


@router.post("/convert/file", summary="Convert an uploaded HTML file", response_model=ConvertResponse)
async def convert_html_file(
    file: UploadFile = File(...),
    service: ConversionService = Depends(conversion_service),
) -> ConvertResponse:
    content = await _read_upload(file, service)
    try:
        markdown = await run_in_threadpool(
            service.convert_html, decode_text(content), source=file.filename or "upload"
        )
    except CleanmarkError as exc:
        raise _http_error(exc) from exc
    return ConvertResponse(markdown=markdown)


@router.post("/convert/docx", summary="Convert an uploaded DOCX document", response_model=ConvertResponse)
async def convert_docx_file(
    file: UploadFile = File(...),
    include_html: bool = Query(False, alias="includeHtml"),
    preserve_structure: bool = Query(True, alias="preserveStructure"),
    service: ConversionService = Depends(conversion_service),
) -> ConvertResponse:
    if not looks_like_docx(file.content_type, file.filename):
        raise HTTPException(status_code=415, detail="UNSUPPORTED_MIME")
    content = await _read_upload(file, service)
    try:
        result = await run_in_threadpool(
            service.convert_docx,
            content,
            preserve_structure=preserve_structure,
            source=file.filename or "upload",
        )
    except CleanmarkError as exc:
        raise _http_error(exc) from exc
    return ConvertResponse(
        markdown=result.markdown,
        html=result.html if include_html else None,
        warnings=result.warnings,
    )


__all__ = ["conversion_service", "router"]
