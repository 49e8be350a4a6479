from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from models import CostReportBundle, Margins, Report, ReportKind
from reporting.assembler import assemble_cost_report, assemble_local_summary
from reporting.backends import (
    DIRECT_LOCATOR,
    ArtifactPublisher,
    HtmlConverterBackend,
    LocalBackend,
    RenderJob,
    RenderServiceBackend,
    build_backends,
)
from reporting.config import GenerationConfig
from reporting.errors import ArtifactStoreError, BackendError

PDF = b"%PDF-1.4\n%test\n"


class MemoryStore:
    def __init__(self, fail=False):
        self.fail = fail
        self.objects: dict[str, bytes] = {}

    def upsert(self, key, body, content_type="application/pdf"):
        if self.fail:
            raise ArtifactStoreError("bucket unavailable")
        self.objects[key] = body
        return key

    def delete(self, key):
        self.objects.pop(key, None)


class MemoryRecords:
    def __init__(self, fail=False):
        self.fail = fail
        self.records = []

    def write(self, record):
        if self.fail:
            raise RuntimeError("database is down")
        self.records.append(record)
        return "row-1"

    def delete(self, record_id):
        self.records.clear()


class FakeEngine:
    def __init__(self, output=PDF):
        self.output = output
        self.calls = []

    async def render(self, html_content, margins, header_html, footer_html):
        self.calls.append((html_content, margins, header_html, footer_html))
        return self.output


def _job() -> RenderJob:
    bundle = CostReportBundle(report=Report(id="r1", project_id="p1", project_name="Mall", report_number=2))
    config = GenerationConfig()
    return RenderJob(
        kind=ReportKind.COST_REPORT,
        filename="CostReport_NA_A_20260305.pdf",
        project_id="p1",
        report_id="r1",
        revision_label="Report 2",
        document=assemble_cost_report(bundle, config),
        local_document=assemble_local_summary(bundle, config),
        html="<html><body>report</body></html>",
        margins=Margins(top=20, right=15, bottom=20, left=15),
        user_id="user-1",
        auth_token="jwt-token",
    )


def test_render_service_posts_tree_and_publishes():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=PDF, headers={"content-type": "application/pdf"})

    store, records = MemoryStore(), MemoryRecords()
    backend = RenderServiceBackend(
        "https://render.example.com/pdf",
        "anon-key",
        ArtifactPublisher(store, records),
        90.0,
        transport=httpx.MockTransport(handler),
    )
    artifact = asyncio.run(backend.render(_job()))

    assert seen["auth"] == "Bearer jwt-token"
    assert seen["body"]["reportKind"] == "CostReport"
    assert seen["body"]["document"]["info"]["title"] == "Cost Report - Mall"
    assert artifact.locator == "p1/CostReport_NA_A_20260305.pdf"
    assert artifact.size == len(PDF)
    assert artifact.content is None
    assert store.objects == {"p1/CostReport_NA_A_20260305.pdf": PDF}
    record = records.records[0]
    assert record.revision == "Report 2"
    assert record.generated_by == "user-1"
    assert record.file_size == len(PDF)
    assert record.report_kind == "CostReport"


def test_render_service_upsert_overwrites_same_key():
    store = MemoryStore()
    backend = RenderServiceBackend(
        "https://render.example.com/pdf",
        "",
        ArtifactPublisher(store),
        90.0,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=PDF)),
    )
    asyncio.run(backend.render(_job()))
    asyncio.run(backend.render(_job()))
    assert len(store.objects) == 1


def test_render_service_error_response():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "render failed"}))
    backend = RenderServiceBackend("https://render.example.com/pdf", "", ArtifactPublisher(MemoryStore()), 90.0, transport=transport)
    with pytest.raises(BackendError) as excinfo:
        asyncio.run(backend.render(_job()))
    assert excinfo.value.backend_id == "render-service"
    assert excinfo.value.message == "render failed"


def test_render_service_rejects_non_pdf_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
    store = MemoryStore()
    backend = RenderServiceBackend("https://render.example.com/pdf", "", ArtifactPublisher(store), 90.0, transport=transport)
    with pytest.raises(BackendError, match="not a PDF"):
        asyncio.run(backend.render(_job()))
    assert store.objects == {}


def test_unconfigured_remote_backends_fail_fast():
    publisher = ArtifactPublisher(MemoryStore())
    with pytest.raises(BackendError, match="RENDER_SERVICE_URL"):
        asyncio.run(RenderServiceBackend("", "", publisher, 90.0).render(_job()))
    with pytest.raises(BackendError, match="not configured"):
        asyncio.run(HtmlConverterBackend("https://convert.example.com", "", publisher, 60.0).render(_job()))


def test_html_converter_submits_html_with_margins():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers.get("x-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=PDF)

    store = MemoryStore()
    backend = HtmlConverterBackend(
        "https://convert.example.com/pdf",
        "secret",
        ArtifactPublisher(store),
        60.0,
        transport=httpx.MockTransport(handler),
    )
    artifact = asyncio.run(backend.render(_job()))
    assert seen["key"] == "secret"
    assert seen["body"]["source"] == "<html><body>report</body></html>"
    assert seen["body"]["format"] == "A4"
    assert seen["body"]["margin"] == {"top": "20mm", "right": "15mm", "bottom": "20mm", "left": "15mm"}
    assert artifact.locator in store.objects


def test_metadata_write_failure_is_swallowed():
    store = MemoryStore()
    publisher = ArtifactPublisher(store, MemoryRecords(fail=True))
    artifact = asyncio.run(publisher.publish(_job(), PDF))
    assert artifact.locator == "p1/CostReport_NA_A_20260305.pdf"
    assert artifact.locator in store.objects


def test_store_failure_fails_the_attempt():
    publisher = ArtifactPublisher(MemoryStore(fail=True))
    with pytest.raises(ArtifactStoreError):
        asyncio.run(publisher.publish(_job(), PDF))


def test_local_backend_returns_content_directly():
    engine = FakeEngine()
    artifact = asyncio.run(LocalBackend(engine, 120.0).render(_job()))
    assert artifact.locator == DIRECT_LOCATOR
    assert artifact.content == PDF
    html_content, margins, header_html, footer_html = engine.calls[0]
    assert "EXECUTIVE SUMMARY" in html_content
    assert "DOCUMENT INFORMATION" not in html_content
    assert margins.top == 20
    assert "pageNumber" in footer_html


def test_local_backend_rejects_empty_output():
    with pytest.raises(BackendError):
        asyncio.run(LocalBackend(FakeEngine(output=b""), 120.0).render(_job()))


def test_build_backends_order_and_budgets():
    config = GenerationConfig()
    backends = build_backends(config, ArtifactPublisher(MemoryStore()), engine=FakeEngine())
    assert [b.backend_id for b in backends] == ["render-service", "html-converter", "local"]
    assert [b.timeout_s for b in backends] == [90.0, 60.0, 120.0]
    assert not hasattr(backends[2], "publisher")
