"""
Rendering backends, in priority order:

  render-service  remote authoritative renderer (document tree JSON), result persisted
  html-converter  remote HTML-to-PDF service (separate HTML template), result persisted
  local           in-process Playwright render of a reduced tree, handed back directly

Remote backends persist through ArtifactPublisher. The local backend has no
publisher and never touches the content store.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from models import Margins, ReportKind
from pdf_records import PdfRecord

from .budget import CancelToken
from .config import GenerationConfig
from .content import DocumentDefinition
from .errors import BackendError, PartialDataWarning
from .pdf_engine import PdfEngine, PlaywrightPdfEngine, margin_dict
from .tree_html import footer_template, render_document_html, running_header_template

_LOG = logging.getLogger(__name__)

RENDER_SERVICE = "render-service"
HTML_CONVERTER = "html-converter"
LOCAL = "local"
BACKEND_ORDER = (RENDER_SERVICE, HTML_CONVERTER, LOCAL)

DIRECT_LOCATOR = "direct"


@dataclass
class RenderJob:
    """Everything a backend needs for one request. Built once, shared read-only."""

    kind: ReportKind
    filename: str
    project_id: str
    report_id: str | None
    revision_label: str
    document: DocumentDefinition
    local_document: DocumentDefinition
    html: str
    margins: Margins
    user_id: str | None = None
    auth_token: str | None = None

    @property
    def storage_path(self) -> str:
        return f"{self.project_id or 'unassigned'}/{self.filename}"


@dataclass
class RenderedArtifact:
    locator: str
    filename: str
    size: int
    content: bytes | None = None


class ContentStore(Protocol):
    def upsert(self, key: str, body: bytes, content_type: str = "application/pdf") -> str:
        ...

    def delete(self, key: str) -> None:
        ...


class RecordWriter(Protocol):
    def write(self, record: PdfRecord) -> str:
        ...

    def delete(self, record_id: str) -> None:
        ...


class ArtifactPublisher:
    """
    Upserts the PDF at <project_id>/<filename>, then writes the metadata row best-effort.

    Upload and row write run as one shielded step. If the request is cancelled
    while that step is in flight, publish waits for it and then removes what it
    wrote, so a cancelled attempt leaves neither an object nor a row behind.
    """

    def __init__(self, store: ContentStore, records: RecordWriter | None = None):
        self.store = store
        self.records = records

    async def publish(self, job: RenderJob, content: bytes, cancel: CancelToken | None = None) -> RenderedArtifact:
        if cancel is not None:
            cancel.raise_if_cancelled()
        step = asyncio.ensure_future(self._store_and_record(job, content))
        try:
            artifact, _ = await asyncio.shield(step)
        except asyncio.CancelledError:
            await self._roll_back(step, job.storage_path)
            raise
        return artifact

    async def _store_and_record(self, job: RenderJob, content: bytes) -> tuple[RenderedArtifact, str | None]:
        path = job.storage_path
        await asyncio.to_thread(self.store.upsert, path, content, "application/pdf")
        _LOG.info("PDF_STORED path=%s bytes=%s", path, len(content))

        record_id = None
        if self.records is not None:
            record = PdfRecord(
                report_id=job.report_id,
                project_id=job.project_id,
                file_path=path,
                file_name=job.filename,
                file_size=len(content),
                revision=job.revision_label,
                report_kind=job.kind.value,
                generated_by=job.user_id,
            )
            try:
                record_id = await asyncio.to_thread(self.records.write, record)
            except Exception as e:
                _LOG.warning("PDF_RECORD_FAILED class=%s path=%s err=%s", PartialDataWarning.__name__, path, e)
        return RenderedArtifact(locator=path, filename=job.filename, size=len(content)), record_id

    async def _roll_back(self, step: asyncio.Future, path: str) -> None:
        try:
            _, record_id = await step
        except Exception:
            # Upload failed, nothing was stored
            return
        if record_id is not None and self.records is not None:
            try:
                await asyncio.to_thread(self.records.delete, record_id)
            except Exception as e:
                _LOG.warning("PDF_RECORD_ROLLBACK_FAILED record_id=%s err=%s", record_id, e)
        try:
            await asyncio.to_thread(self.store.delete, path)
            _LOG.info("PDF_DISCARDED path=%s reason=cancelled", path)
        except Exception as e:
            _LOG.warning("PDF_DISCARD_FAILED path=%s err=%s", path, e)


def _error_from_response(backend_id: str, response: httpx.Response, label: str) -> BackendError:
    detail = ""
    try:
        payload = response.json()
        if isinstance(payload, dict):
            detail = str(payload.get("error") or payload.get("message") or "")
    except ValueError:
        detail = ""
    return BackendError(backend_id, detail or f"{label}: {response.status_code}")


def _pdf_bytes(backend_id: str, response: httpx.Response, label: str) -> bytes:
    if response.status_code >= 400:
        raise _error_from_response(backend_id, response, label)
    content = response.content
    if not content.startswith(b"%PDF"):
        raise BackendError(backend_id, "Response was not a PDF document")
    return content


class RenderServiceBackend:
    backend_id = RENDER_SERVICE

    def __init__(
        self,
        url: str,
        api_key: str,
        publisher: ArtifactPublisher,
        timeout_s: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.api_key = api_key
        self.publisher = publisher
        self.timeout_s = timeout_s
        self._transport = transport

    async def render(self, job: RenderJob, cancel: CancelToken | None = None) -> RenderedArtifact:
        if not self.url:
            raise BackendError(self.backend_id, "RENDER_SERVICE_URL is not configured")
        headers = {"Content-Type": "application/json"}
        if job.auth_token:
            headers["Authorization"] = f"Bearer {job.auth_token}"
        if self.api_key:
            headers["apikey"] = self.api_key
        payload = {
            "reportId": job.report_id,
            "reportKind": job.kind.value,
            "filename": job.filename,
            "document": job.document.to_dict(),
        }
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout_s) as client:
            response = await client.post(self.url, json=payload, headers=headers)
        content = _pdf_bytes(self.backend_id, response, "Server error")
        return await self.publisher.publish(job, content, cancel)


class HtmlConverterBackend:
    backend_id = HTML_CONVERTER

    def __init__(
        self,
        url: str,
        api_key: str,
        publisher: ArtifactPublisher,
        timeout_s: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.api_key = api_key
        self.publisher = publisher
        self.timeout_s = timeout_s
        self._transport = transport

    async def render(self, job: RenderJob, cancel: CancelToken | None = None) -> RenderedArtifact:
        if not self.url or not self.api_key:
            raise BackendError(self.backend_id, "HTML converter is not configured")
        payload = {
            "source": job.html,
            "format": "A4",
            "margin": margin_dict(job.margins),
            "use_print": True,
            "footer": {"source": footer_template(), "height": "12mm"},
            "filename": job.filename,
        }
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout_s) as client:
            response = await client.post(self.url, json=payload, headers={"X-API-Key": self.api_key})
        content = _pdf_bytes(self.backend_id, response, "Converter error")
        return await self.publisher.publish(job, content, cancel)


class LocalBackend:
    """Reduced document, rendered in-process, returned to the caller without persisting."""

    backend_id = LOCAL

    def __init__(self, engine: PdfEngine, timeout_s: float):
        self.engine = engine
        self.timeout_s = timeout_s

    async def render(self, job: RenderJob, cancel: CancelToken | None = None) -> RenderedArtifact:
        document = job.local_document
        html_content = render_document_html(document)
        content = await self.engine.render(
            html_content,
            job.margins,
            running_header_template(document),
            footer_template(),
        )
        if not content:
            raise BackendError(self.backend_id, "Renderer returned an empty document")
        return RenderedArtifact(locator=DIRECT_LOCATOR, filename=job.filename, size=len(content), content=content)


def build_backends(
    config: GenerationConfig,
    publisher: ArtifactPublisher,
    engine: PdfEngine | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list:
    return [
        RenderServiceBackend(
            config.render_service_url,
            config.render_service_api_key,
            publisher,
            config.render_service_timeout_s,
            transport=transport,
        ),
        HtmlConverterBackend(
            config.html_converter_url,
            config.html_converter_api_key,
            publisher,
            config.html_converter_timeout_s,
            transport=transport,
        ),
        LocalBackend(engine or PlaywrightPdfEngine(), config.local_render_timeout_s),
    ]
