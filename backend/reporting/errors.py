"""Error taxonomy for report generation."""
from __future__ import annotations

from typing import Any


class ReportGenerationError(Exception):
    pass


class DocumentValidationError(ReportGenerationError):
    """Blocking structural defect found before any backend was tried."""

    def __init__(self, result: Any):
        self.result = result
        count = len(getattr(result, "errors", []) or [])
        super().__init__(f"Document failed pre-flight validation with {count} error(s)")


class BackendError(ReportGenerationError):
    def __init__(self, backend_id: str, message: str):
        self.backend_id = backend_id
        self.message = message
        super().__init__(f"{backend_id}: {message}")


class BackendTimeoutError(BackendError):
    pass


class ArtifactStoreError(BackendError):
    def __init__(self, message: str):
        super().__init__("content-store", message)


class TotalFailureError(ReportGenerationError):
    """Every backend in the chain failed. Carries the last backend's error."""

    def __init__(self, last_error: str, attempts: list | None = None):
        self.last_error = last_error
        self.attempts = list(attempts or [])
        super().__init__(f"All generation methods failed. Last error: {last_error}")


class PartialDataWarning(UserWarning):
    """Classifies degradations that are logged and swallowed (missing logo, failed record write)."""
