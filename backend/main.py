from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path

from dotenv import load_dotenv

# Load .env from backend directory so RENDER_SERVICE_URL, S3_BUCKET etc. are available
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from reporting.errors import DocumentValidationError, TotalFailureError
from routes.reports import router as reports_router

_LOG = logging.getLogger("uvicorn.error")

# Version for /health and startup log (Render sets RENDER_GIT_COMMIT)
VERSION = (os.environ.get("RENDER_GIT_COMMIT") or "").strip() or "unknown"


app = FastAPI(title="Cost Report PDF Backend", version="0.1.0")

# CORS: use ALLOWED_ORIGINS env (comma-separated) if set, else default
_origins_env = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-PDF-Method", "X-Request-Id"],
)


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestLogMiddleware)
app.include_router(reports_router)


@app.exception_handler(DocumentValidationError)
async def _validation_failed(request: Request, exc: DocumentValidationError) -> JSONResponse:
    result = exc.result
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(exc),
            "errors": [i.to_dict() for i in result.errors],
            "warnings": [i.to_dict() for i in result.warnings],
        },
    )


@app.exception_handler(TotalFailureError)
async def _generation_failed(request: Request, exc: TotalFailureError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={
            "detail": str(exc),
            "attempts": [
                {"backend": a.backend, "status": a.status.value, "error": a.error} for a in exc.attempts
            ],
        },
    )


@app.on_event("startup")
def startup_log() -> None:
    port = os.environ.get("PORT", "8010")
    host = os.environ.get("HOST", "127.0.0.1")
    render_service = bool((os.environ.get("RENDER_SERVICE_URL") or "").strip())
    converter = bool((os.environ.get("HTML_CONVERTER_API_KEY") or "").strip())
    _LOG.info(
        "Backend starting on http://%s:%s (render service configured: %s, html converter configured: %s) version=%s",
        host, port, render_service, converter, VERSION,
    )
    if not render_service and not converter:
        _LOG.warning("No remote PDF backend configured. Only the local summary PDF will be available.")


@app.get("/health")
def health():
    return {
        "status": "ok",
        "render_service_configured": bool((os.environ.get("RENDER_SERVICE_URL") or "").strip()),
        "html_converter_configured": bool((os.environ.get("HTML_CONVERTER_API_KEY") or "").strip()),
        "storage_configured": bool((os.environ.get("S3_BUCKET") or "").strip()),
        "version": VERSION,
    }


@app.get("/health/pdf")
def health_pdf():
    """
    Runtime check for Playwright PDF dependencies.
    Returns 200 only when Chromium can launch successfully.
    """
    try:
        from playwright.sync_api import sync_playwright
    except Exception:
        raise HTTPException(status_code=503, detail="Playwright is not installed.")

    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(args=["--no-sandbox"])
            page = browser.new_page()
            page.set_content("<html><body>ok</body></html>")
            browser.close()
    except Exception as e:
        msg = str(e)
        if len(msg) > 500:
            msg = msg[:500]
        raise HTTPException(
            status_code=503,
            detail=f"Playwright runtime unavailable: {msg}",
        ) from e

    return {"status": "ok", "pdf_runtime": "ready"}
