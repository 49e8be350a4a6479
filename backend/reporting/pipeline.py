"""
End-to-end generation per report kind:
resolve optional assets -> assemble -> pre-flight validate -> fallback chain.

Validation errors are raised before any backend runs. Backend failures are
absorbed by the chain; only a total failure is raised.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence

import httpx

from models import BulkServicesDocument, CompanyDetails, CostReportBundle, ReportKind
from pdf_records import revision_label

from .assembler import (
    assemble_bulk_services,
    assemble_cost_report,
    assemble_local_summary,
    assemble_variation_sheets,
)
from .assets import load_company_details, resolve_logos
from .backends import RenderJob
from .budget import CancelToken
from .config import GenerationConfig
from .content import DocumentDefinition
from .errors import DocumentValidationError, TotalFailureError
from .fallback import FallbackResult, ProgressCallback, run_fallback_chain
from .format_utils import report_filename
from .html_template import build_bulk_services_html, build_cost_report_html
from .validation import document_stats, log_validation_result, strip_invalid_images, validate_document

_LOG = logging.getLogger(__name__)

CompanyLoader = Callable[[], Awaitable["CompanyDetails | None"]]


def preflight(document: DocumentDefinition, context: str) -> DocumentDefinition:
    """
    Validate; on errors strip unusable images and validate again. Returns the
    document that passed, or raises DocumentValidationError.
    """
    result = validate_document(document)
    log_validation_result(result, context)
    if result.valid:
        return document
    stripped = strip_invalid_images(document)
    retry = validate_document(stripped)
    log_validation_result(retry, f"{context}:stripped")
    if not retry.valid:
        raise DocumentValidationError(retry)
    return stripped


async def _resolve_company(
    company: CompanyDetails,
    loader: CompanyLoader | None,
    config: GenerationConfig,
    cancel: CancelToken,
    http_client: httpx.AsyncClient | None,
) -> CompanyDetails:
    company = await load_company_details(loader, company, config, cancel)
    if not (company.logo_url or company.client_logo_url):
        return company
    if http_client is not None:
        return await resolve_logos(company, http_client, config, cancel)
    async with httpx.AsyncClient(timeout=config.logo_timeout_s) as client:
        return await resolve_logos(company, client, config, cancel)


def _notify(progress: ProgressCallback | None, message: str, percent: int) -> None:
    if progress is not None:
        progress(message, percent, None)


async def _run(
    job: RenderJob,
    backends: Sequence,
    cancel: CancelToken,
    progress: ProgressCallback | None,
) -> FallbackResult:
    result = await run_fallback_chain(job, backends, cancel, progress)
    if not result.success and not result.cancelled:
        raise TotalFailureError(result.error or "Unknown error", result.attempts)
    return result


async def generate_cost_report(
    bundle: CostReportBundle,
    config: GenerationConfig,
    backends: Sequence,
    cancel: CancelToken | None = None,
    progress: ProgressCallback | None = None,
    user_id: str | None = None,
    auth_token: str | None = None,
    company_loader: CompanyLoader | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FallbackResult:
    cancel = cancel or CancelToken()
    _notify(progress, "Loading company details...", 5)
    company = await _resolve_company(bundle.company, company_loader, config, cancel, http_client)
    bundle = bundle.model_copy(update={"company": company})

    _notify(progress, "Assembling document...", 10)
    document = assemble_cost_report(bundle, config)
    local_document = assemble_local_summary(bundle, config)

    _notify(progress, "Validating document...", 30)
    document = preflight(document, "cost_report")
    local_document = preflight(local_document, "cost_report:local")
    _LOG.info("PDF_DOCUMENT kind=%s stats=%s", ReportKind.COST_REPORT.value, document_stats(document))

    report = bundle.report
    job = RenderJob(
        kind=ReportKind.COST_REPORT,
        filename=report_filename(ReportKind.COST_REPORT.value, report.project_number, report.revision),
        project_id=report.project_id,
        report_id=report.id or None,
        revision_label=revision_label(report.report_number),
        document=document,
        local_document=local_document,
        html=build_cost_report_html(bundle, config),
        margins=bundle.options.resolved_margins(),
        user_id=user_id,
        auth_token=auth_token,
    )
    return await _run(job, backends, cancel, progress)


async def generate_variation_sheets(
    bundle: CostReportBundle,
    config: GenerationConfig,
    backends: Sequence,
    cancel: CancelToken | None = None,
    progress: ProgressCallback | None = None,
    user_id: str | None = None,
    auth_token: str | None = None,
    company_loader: CompanyLoader | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FallbackResult:
    cancel = cancel or CancelToken()
    _notify(progress, "Loading company details...", 5)
    company = await _resolve_company(bundle.company, company_loader, config, cancel, http_client)
    bundle = bundle.model_copy(update={"company": company})

    _notify(progress, "Assembling document...", 10)
    # Variation sheets are already small; the local backend renders the same tree
    document = assemble_variation_sheets(bundle, config)

    _notify(progress, "Validating document...", 30)
    document = preflight(document, "tenant_variation")

    report = bundle.report
    job = RenderJob(
        kind=ReportKind.TENANT_VARIATION,
        filename=report_filename(ReportKind.TENANT_VARIATION.value, report.project_number, report.revision),
        project_id=report.project_id,
        report_id=report.id or None,
        revision_label=revision_label(report.report_number),
        document=document,
        local_document=document,
        html=build_cost_report_html(bundle, config, variations_only=True),
        margins=bundle.options.resolved_margins(),
        user_id=user_id,
        auth_token=auth_token,
    )
    return await _run(job, backends, cancel, progress)


async def generate_bulk_services(
    document_data: BulkServicesDocument,
    config: GenerationConfig,
    backends: Sequence,
    cancel: CancelToken | None = None,
    progress: ProgressCallback | None = None,
    user_id: str | None = None,
    auth_token: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FallbackResult:
    cancel = cancel or CancelToken()
    _notify(progress, "Loading company details...", 5)
    company = await _resolve_company(document_data.company, None, config, cancel, http_client)
    document_data = document_data.model_copy(update={"company": company})

    _notify(progress, "Assembling document...", 10)
    document = assemble_bulk_services(document_data, config)
    local_document = assemble_bulk_services(document_data, config, summary_only=True)

    _notify(progress, "Validating document...", 30)
    document = preflight(document, "bulk_services")
    local_document = preflight(local_document, "bulk_services:local")

    job = RenderJob(
        kind=ReportKind.BULK_SERVICES,
        filename=report_filename(
            ReportKind.BULK_SERVICES.value,
            document_data.document_number,
            document_data.revision,
        ),
        project_id=document_data.project_id,
        report_id=document_data.id or None,
        revision_label=f"Revision {document_data.revision}",
        document=document,
        local_document=local_document,
        html=build_bulk_services_html(document_data, config),
        margins=document_data.options.resolved_margins(),
        user_id=user_id,
        auth_token=auth_token,
    )
    return await _run(job, backends, cancel, progress)
