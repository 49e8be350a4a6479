"""
Race one awaitable against a time budget and a cancel token.

Every backend attempt and every best-effort fetch goes through
attempt_with_budget, so timeout and cancellation handling lives in one place.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

_LOG = logging.getLogger(__name__)


class CancelToken:
    """Externally supplied abort signal for one generation request."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError(self.reason or "Cancelled")


class AttemptStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass
class AttemptOutcome:
    status: AttemptStatus
    value: Any = None
    error: Optional[str] = None
    exception: Optional[BaseException] = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is AttemptStatus.SUCCEEDED


def _error_text(exc: BaseException) -> str:
    text = str(exc).strip()
    return text[:500] if text else type(exc).__name__


async def attempt_with_budget(
    factory: Callable[[], Awaitable[Any]],
    budget_s: float,
    cancel: CancelToken | None = None,
) -> AttemptOutcome:
    """
    Start factory() and wait for whichever comes first: its result, the budget
    running out, or the cancel token. The loser is cancelled and awaited so no
    task outlives the attempt. Never raises for the attempt's own failures.
    """
    token = cancel or CancelToken()
    if token.cancelled:
        return AttemptOutcome(AttemptStatus.CANCELLED, error=token.reason or "Cancelled")

    start = time.perf_counter()
    work = asyncio.ensure_future(factory())
    watcher = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({work, watcher}, timeout=budget_s, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (work, watcher):
            if not task.done():
                task.cancel()
        await asyncio.gather(work, watcher, return_exceptions=True)
    elapsed_ms = (time.perf_counter() - start) * 1000

    if work in done:
        if work.cancelled():
            if token.cancelled:
                return AttemptOutcome(AttemptStatus.CANCELLED, error=token.reason or "Cancelled", elapsed_ms=elapsed_ms)
            return AttemptOutcome(AttemptStatus.FAILED, error="Attempt was cancelled", elapsed_ms=elapsed_ms)
        exc = work.exception()
        if exc is None:
            return AttemptOutcome(AttemptStatus.SUCCEEDED, value=work.result(), elapsed_ms=elapsed_ms)
        return AttemptOutcome(AttemptStatus.FAILED, error=_error_text(exc), exception=exc, elapsed_ms=elapsed_ms)
    if watcher in done:
        return AttemptOutcome(AttemptStatus.CANCELLED, error=token.reason or "Cancelled", elapsed_ms=elapsed_ms)
    return AttemptOutcome(
        AttemptStatus.TIMED_OUT,
        error=f"Timed out after {budget_s:g}s",
        elapsed_ms=elapsed_ms,
    )


async def best_effort(
    factory: Callable[[], Awaitable[Any]],
    budget_s: float,
    cancel: CancelToken | None = None,
    default: Any = None,
    label: str = "fetch",
) -> Any:
    """Optional data: any failure, timeout or cancellation degrades to default."""
    outcome = await attempt_with_budget(factory, budget_s, cancel)
    if outcome.ok:
        return outcome.value
    _LOG.info("BEST_EFFORT_SKIPPED label=%s status=%s err=%s", label, outcome.status.value, outcome.error)
    return default
