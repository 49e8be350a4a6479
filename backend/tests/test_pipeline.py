from __future__ import annotations

import asyncio

import httpx
import pytest

from models import (
    BulkServicesDocument,
    Category,
    CompanyDetails,
    CostReportBundle,
    LineItem,
    Report,
    Variation,
)
from reporting.backends import RenderedArtifact
from reporting.config import GenerationConfig
from reporting.content import DocumentDefinition, DocumentInfo, ImageBlock, TableBlock, TextBlock, walk
from reporting.errors import BackendError, DocumentValidationError, TotalFailureError
from reporting.pipeline import (
    generate_bulk_services,
    generate_cost_report,
    generate_variation_sheets,
    preflight,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 200


class RecordingBackend:
    def __init__(self, backend_id, fail=False):
        self.backend_id = backend_id
        self.fail = fail
        self.timeout_s = 1.0
        self.jobs = []

    async def render(self, job, cancel=None):
        self.jobs.append(job)
        if self.fail:
            raise BackendError(self.backend_id, "unavailable")
        return RenderedArtifact(locator=job.storage_path, filename=job.filename, size=10)


def _bundle(**company) -> CostReportBundle:
    return CostReportBundle(
        report=Report(id="r1", project_id="p1", project_name="Mall", project_number="MN-01", report_number=3),
        categories=[Category(code="A", description="Site", line_items=[LineItem(code="A1", original_budget=10, anticipated_final=8)])],
        variations=[Variation(code="VO-1", total_amount=100)],
        company=CompanyDetails(company_name="QS Partners", **company),
    )


def _images(document) -> list[ImageBlock]:
    return [b for b in walk(document.content or []) if isinstance(b, ImageBlock)]


def test_cost_report_job_carries_filename_and_revision_label():
    backend = RecordingBackend("render-service")
    result = asyncio.run(generate_cost_report(_bundle(), GenerationConfig(), [backend], user_id="u1", auth_token="tok"))
    assert result.success
    job = backend.jobs[0]
    assert job.filename.startswith("CostReport_MN-01_A_")
    assert job.revision_label == "Report 3"
    assert job.user_id == "u1"
    assert job.auth_token == "tok"
    assert "EXECUTIVE SUMMARY" in job.html
    assert result.filename == job.filename


def test_total_failure_raises_single_consolidated_error():
    backends = [RecordingBackend("render-service", True), RecordingBackend("html-converter", True), RecordingBackend("local", True)]
    with pytest.raises(TotalFailureError) as excinfo:
        asyncio.run(generate_cost_report(_bundle(), GenerationConfig(), backends))
    assert str(excinfo.value) == "All generation methods failed. Last error: local: unavailable"
    assert len(excinfo.value.attempts) == 3


def test_broken_logo_is_stripped_before_rendering():
    backend = RecordingBackend("render-service")
    bundle = _bundle(logo_data="data:image/png;base64,AAAA")
    asyncio.run(generate_cost_report(bundle, GenerationConfig(), [backend]))
    assert _images(backend.jobs[0].document) == []


def test_logo_is_fetched_and_inlined():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/logo.png":
            return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})
        return httpx.Response(404)

    backend = RecordingBackend("render-service")

    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            bundle = _bundle(logo_url="https://cdn.example.com/logo.png", client_logo_url="https://cdn.example.com/missing.png")
            return await generate_cost_report(bundle, GenerationConfig(), [backend], http_client=client)

    result = asyncio.run(main())
    assert result.success
    images = _images(backend.jobs[0].document)
    assert len(images) == 1
    assert images[0].image.startswith("data:image/png;base64,")


def test_slow_company_loader_degrades_to_fallback():
    async def slow_loader():
        await asyncio.sleep(5)

    config = GenerationConfig().model_copy(update={"company_timeout_s": 0.05})
    backend = RecordingBackend("render-service")
    result = asyncio.run(generate_cost_report(_bundle(), config, [backend], company_loader=slow_loader))
    assert result.success
    assert "QS Partners" in backend.jobs[0].html


def test_company_loader_details_are_used():
    async def loader():
        return CompanyDetails(company_name="Loaded Consulting", contact_name="Thandi")

    backend = RecordingBackend("render-service")
    asyncio.run(generate_cost_report(_bundle(), GenerationConfig(), [backend], company_loader=loader))
    texts = [b.text for b in walk(backend.jobs[0].document.content) if isinstance(b, TextBlock)]
    assert "Loaded Consulting" in texts


def test_variation_and_bulk_jobs():
    backend = RecordingBackend("render-service")
    asyncio.run(generate_variation_sheets(_bundle(), GenerationConfig(), [backend]))
    assert backend.jobs[0].filename.startswith("TenantVariation_MN-01_A_")
    assert "TENANT VARIATIONS" in backend.jobs[0].html

    document = BulkServicesDocument(id="b1", project_id="p2", project_name="Warehouse", document_number="BS-9", revision="B")
    asyncio.run(generate_bulk_services(document, GenerationConfig(), [backend]))
    job = backend.jobs[1]
    assert job.filename.startswith("BulkServices_BS-9_B_")
    assert job.storage_path.startswith("p2/")
    assert job.revision_label == "Revision B"


def test_preflight_raises_when_stripping_cannot_fix_document():
    document = DocumentDefinition(
        content=[TableBlock(body=[[TextBlock("a"), TextBlock("b")], [TextBlock("c")]])],
        info=DocumentInfo(title="Broken"),
        styles={"body": {}},
    )
    with pytest.raises(DocumentValidationError) as excinfo:
        preflight(document, "test")
    assert excinfo.value.result.codes() == ["TABLE_COLUMN_MISMATCH"]


def test_validation_error_is_raised_before_any_backend():
    backend = RecordingBackend("render-service")
    config = GenerationConfig(default_font="Courier")
    with pytest.raises(DocumentValidationError):
        asyncio.run(generate_cost_report(_bundle(), config, [backend]))
    assert backend.jobs == []
