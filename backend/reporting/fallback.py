"""
Try rendering backends one after another until one succeeds.

Attempts are strictly sequential: remote backends persist the artifact and
write a metadata row, so two of them must never run at the same time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .backends import RenderedArtifact, RenderJob
from .budget import AttemptStatus, CancelToken, attempt_with_budget
from .errors import BackendTimeoutError

_LOG = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, Optional[str]], None]

STEP_MESSAGES = {
    "render-service": ("Generating PDF on server...", 50),
    "html-converter": ("Trying HTML converter...", 60),
    "local": ("Generating summary PDF locally...", 70),
}


@dataclass
class BackendAttempt:
    backend: str
    status: AttemptStatus
    error: str | None = None
    elapsed_ms: float = 0.0


@dataclass
class FallbackResult:
    success: bool
    method: str
    status: str
    locator: str | None = None
    filename: str | None = None
    size: int = 0
    error: str | None = None
    artifact: RenderedArtifact | None = None
    attempts: list[BackendAttempt] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.status == AttemptStatus.CANCELLED.value


def _notify(progress: ProgressCallback | None, message: str, percent: int, backend: str | None) -> None:
    if progress is None:
        return
    try:
        progress(message, percent, backend)
    except Exception as e:
        _LOG.warning("PROGRESS_CALLBACK_FAILED err=%s", e)


async def run_fallback_chain(
    job: RenderJob,
    backends: Sequence,
    cancel: CancelToken | None = None,
    progress: ProgressCallback | None = None,
) -> FallbackResult:
    """
    Walk backends in order. Errors and timeouts are recorded and the next
    backend is tried; cancellation stops the chain at once. Never raises for
    backend failures; the caller decides what a total failure means.
    """
    cancel = cancel or CancelToken()
    attempts: list[BackendAttempt] = []
    last_error = "No rendering backends configured"

    for backend in backends:
        backend_id = backend.backend_id
        message, percent = STEP_MESSAGES.get(backend_id, (f"Trying {backend_id}...", 50))
        _notify(progress, message, percent, backend_id)

        outcome = await attempt_with_budget(lambda: backend.render(job, cancel), backend.timeout_s, cancel)
        error = outcome.error
        if outcome.status is AttemptStatus.TIMED_OUT:
            error = str(BackendTimeoutError(backend_id, outcome.error or "Timed out"))
        attempts.append(BackendAttempt(backend_id, outcome.status, error, outcome.elapsed_ms))
        _LOG.info(
            "PDF_ATTEMPT backend=%s status=%s elapsed_ms=%.0f err=%s",
            backend_id,
            outcome.status.value,
            outcome.elapsed_ms,
            error,
        )

        if outcome.status is AttemptStatus.CANCELLED:
            _notify(progress, "Cancelled", percent, backend_id)
            return FallbackResult(
                success=False,
                method=backend_id,
                status=AttemptStatus.CANCELLED.value,
                error=outcome.error or "Cancelled",
                attempts=attempts,
            )

        if outcome.ok:
            artifact: RenderedArtifact = outcome.value
            _notify(progress, "Complete", 100, backend_id)
            _LOG.info("PDF_CHAIN_SUCCEEDED backend=%s bytes=%s locator=%s", backend_id, artifact.size, artifact.locator)
            return FallbackResult(
                success=True,
                method=backend_id,
                status=AttemptStatus.SUCCEEDED.value,
                locator=artifact.locator,
                filename=artifact.filename,
                size=artifact.size,
                artifact=artifact,
                attempts=attempts,
            )

        last_error = error or "Unknown error"

    _LOG.error("PDF_CHAIN_FAILED attempts=%s last_error=%s", len(attempts), last_error)
    return FallbackResult(
        success=False,
        method="none",
        status=AttemptStatus.FAILED.value,
        error=last_error,
        attempts=attempts,
    )
