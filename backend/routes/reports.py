"""
Report PDF endpoints: pre-flight validation, HTML preview and generation.
Generation runs the fallback chain; remote results come back as JSON with a
download link, local results are streamed directly.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from sqlalchemy.orm import Session

from auth import AuthClaims, require_auth
from db.session import SessionLocal, get_db
from models import (
    AttemptOut,
    BulkServicesDocument,
    CostReportBundle,
    PdfGenerationResponse,
    ReportOptions,
    ValidationIssueOut,
    ValidationResponse,
)
from pdf_records import PdfRecordWriter
from report_source import load_company_details, load_cost_report_bundle
from reporting.assembler import assemble_bulk_services, assemble_cost_report
from reporting.backends import ArtifactPublisher, build_backends
from reporting.budget import CancelToken
from reporting.config import GenerationConfig
from reporting.content import DocumentDefinition
from reporting.fallback import FallbackResult
from reporting.pdf_engine import PlaywrightPdfEngine
from reporting.pipeline import generate_bulk_services, generate_cost_report, generate_variation_sheets
from reporting.tree_html import render_document_html
from reporting.validation import ValidationResult, document_stats, validate_document
from s3_client import S3ContentStore

_LOG = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["reports"])

DISCONNECT_POLL_S = 0.5


# --- Dependencies (overridden in tests) ---

def get_config() -> GenerationConfig:
    return GenerationConfig.from_env()


def get_content_store() -> S3ContentStore:
    return S3ContentStore()


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_backends(
    config: Annotated[GenerationConfig, Depends(get_config)],
    store: Annotated[S3ContentStore, Depends(get_content_store)],
    session_factory: Annotated[Callable[[], Session], Depends(get_session_factory)],
) -> list:
    publisher = ArtifactPublisher(store, PdfRecordWriter(session_factory))
    return build_backends(config, publisher, engine=PlaywrightPdfEngine())


# --- Helpers ---

def _issues(result: ValidationResult) -> tuple[list[ValidationIssueOut], list[ValidationIssueOut]]:
    errors = [ValidationIssueOut(**i.to_dict()) for i in result.errors]
    warnings = [ValidationIssueOut(**i.to_dict()) for i in result.warnings]
    return errors, warnings


def _validation_response(document: DocumentDefinition) -> ValidationResponse:
    result = validate_document(document)
    errors, warnings = _issues(result)
    return ValidationResponse(valid=result.valid, errors=errors, warnings=warnings, stats=document_stats(document))


async def _watch_disconnect(request: Request, cancel: CancelToken) -> None:
    while not cancel.cancelled:
        await asyncio.sleep(DISCONNECT_POLL_S)
        if await request.is_disconnected():
            cancel.cancel("Client disconnected")
            return


def _progress_logger(request: Request):
    request_id = getattr(request.state, "request_id", "-")

    def _log(message: str, percent: int, backend: Optional[str]) -> None:
        _LOG.info("PDF_PROGRESS request_id=%s percent=%s backend=%s step=%s", request_id, percent, backend or "-", message)

    return _log


async def _with_cancel(request: Request, cancel: CancelToken, work):
    watcher = asyncio.create_task(_watch_disconnect(request, cancel))
    try:
        return await work
    finally:
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)


async def _to_response(result: FallbackResult, store: S3ContentStore) -> Response:
    attempts = [AttemptOut(backend=a.backend, status=a.status.value, error=a.error, elapsed_ms=round(a.elapsed_ms, 1)) for a in result.attempts]
    if result.cancelled:
        return JSONResponse(
            status_code=499,
            content={"detail": "Request cancelled", "status": result.status, "attempts": [a.model_dump() for a in attempts]},
        )
    artifact = result.artifact
    if artifact is not None and artifact.content is not None:
        return Response(
            content=artifact.content,
            media_type="application/pdf",
            headers={
                "Content-Disposition": f'attachment; filename="{artifact.filename}"',
                "X-PDF-Method": result.method,
            },
        )
    download_url = await asyncio.to_thread(store.presigned_url, result.locator) if result.locator else None
    payload = PdfGenerationResponse(
        success=True,
        method=result.method,
        status=result.status,
        filePath=result.locator,
        fileName=result.filename,
        fileSize=result.size,
        downloadUrl=download_url,
        attempts=attempts,
    )
    return JSONResponse(content=payload.model_dump())


# --- Validation and preview ---

@router.post("/cost-reports/validate", response_model=ValidationResponse)
def validate_cost_report(
    bundle: CostReportBundle,
    config: Annotated[GenerationConfig, Depends(get_config)],
    claims: Annotated[AuthClaims, Depends(require_auth)],
) -> ValidationResponse:
    return _validation_response(assemble_cost_report(bundle, config))


@router.post("/bulk-services/validate", response_model=ValidationResponse)
def validate_bulk_services(
    document: BulkServicesDocument,
    config: Annotated[GenerationConfig, Depends(get_config)],
    claims: Annotated[AuthClaims, Depends(require_auth)],
) -> ValidationResponse:
    return _validation_response(assemble_bulk_services(document, config))


@router.post("/cost-reports/preview", response_class=HTMLResponse)
def preview_cost_report(
    bundle: CostReportBundle,
    config: Annotated[GenerationConfig, Depends(get_config)],
    claims: Annotated[AuthClaims, Depends(require_auth)],
) -> HTMLResponse:
    return HTMLResponse(content=render_document_html(assemble_cost_report(bundle, config)))


# --- Generation ---

@router.post("/cost-reports/pdf")
async def cost_report_pdf(
    bundle: CostReportBundle,
    request: Request,
    config: Annotated[GenerationConfig, Depends(get_config)],
    backends: Annotated[list, Depends(get_backends)],
    store: Annotated[S3ContentStore, Depends(get_content_store)],
    claims: Annotated[AuthClaims, Depends(require_auth)],
) -> Response:
    cancel = CancelToken()
    result = await _with_cancel(
        request,
        cancel,
        generate_cost_report(
            bundle,
            config,
            backends,
            cancel=cancel,
            progress=_progress_logger(request),
            user_id=claims.sub,
            auth_token=claims.token,
        ),
    )
    return await _to_response(result, store)


@router.post("/cost-reports/{report_id}/pdf")
async def stored_cost_report_pdf(
    report_id: str,
    request: Request,
    config: Annotated[GenerationConfig, Depends(get_config)],
    backends: Annotated[list, Depends(get_backends)],
    store: Annotated[S3ContentStore, Depends(get_content_store)],
    session_factory: Annotated[Callable[[], Session], Depends(get_session_factory)],
    db: Annotated[Session, Depends(get_db)],
    claims: Annotated[AuthClaims, Depends(require_auth)],
    options: Optional[ReportOptions] = None,
) -> Response:
    bundle = load_cost_report_bundle(db, report_id, options)
    if bundle is None:
        raise HTTPException(status_code=404, detail="Cost report not found")

    def _company_sync():
        session = session_factory()
        try:
            return load_company_details(session, report_id)
        finally:
            session.close()

    async def _company():
        return await asyncio.to_thread(_company_sync)

    cancel = CancelToken()
    result = await _with_cancel(
        request,
        cancel,
        generate_cost_report(
            bundle,
            config,
            backends,
            cancel=cancel,
            progress=_progress_logger(request),
            user_id=claims.sub,
            auth_token=claims.token,
            company_loader=_company,
        ),
    )
    return await _to_response(result, store)


@router.post("/tenant-variations/pdf")
async def tenant_variations_pdf(
    bundle: CostReportBundle,
    request: Request,
    config: Annotated[GenerationConfig, Depends(get_config)],
    backends: Annotated[list, Depends(get_backends)],
    store: Annotated[S3ContentStore, Depends(get_content_store)],
    claims: Annotated[AuthClaims, Depends(require_auth)],
) -> Response:
    cancel = CancelToken()
    result = await _with_cancel(
        request,
        cancel,
        generate_variation_sheets(
            bundle,
            config,
            backends,
            cancel=cancel,
            progress=_progress_logger(request),
            user_id=claims.sub,
            auth_token=claims.token,
        ),
    )
    return await _to_response(result, store)


@router.post("/bulk-services/pdf")
async def bulk_services_pdf(
    document: BulkServicesDocument,
    request: Request,
    config: Annotated[GenerationConfig, Depends(get_config)],
    backends: Annotated[list, Depends(get_backends)],
    store: Annotated[S3ContentStore, Depends(get_content_store)],
    claims: Annotated[AuthClaims, Depends(require_auth)],
) -> Response:
    cancel = CancelToken()
    result = await _with_cancel(
        request,
        cancel,
        generate_bulk_services(
            document,
            config,
            backends,
            cancel=cancel,
            progress=_progress_logger(request),
            user_id=claims.sub,
            auth_token=claims.token,
        ),
    )
    return await _to_response(result, store)
