from __future__ import annotations

import asyncio

from reporting.budget import AttemptStatus, CancelToken, attempt_with_budget, best_effort


def test_attempt_succeeds_within_budget():
    async def work():
        await asyncio.sleep(0)
        return "pdf"

    outcome = asyncio.run(attempt_with_budget(work, 1.0))
    assert outcome.ok
    assert outcome.status is AttemptStatus.SUCCEEDED
    assert outcome.value == "pdf"


def test_attempt_failure_is_returned_not_raised():
    async def work():
        raise RuntimeError("boom")

    outcome = asyncio.run(attempt_with_budget(work, 1.0))
    assert outcome.status is AttemptStatus.FAILED
    assert outcome.error == "boom"
    assert isinstance(outcome.exception, RuntimeError)


def test_attempt_times_out_and_cancels_work():
    finished = []

    async def work():
        await asyncio.sleep(5)
        finished.append(True)

    outcome = asyncio.run(attempt_with_budget(work, 0.05))
    assert outcome.status is AttemptStatus.TIMED_OUT
    assert outcome.error == "Timed out after 0.05s"
    assert finished == []


def test_attempt_cancelled_mid_flight():
    async def main():
        token = CancelToken()

        async def work():
            await asyncio.sleep(5)
            return "late"

        asyncio.get_running_loop().call_later(0.05, token.cancel, "Client disconnected")
        return await attempt_with_budget(work, 10.0, token)

    outcome = asyncio.run(main())
    assert outcome.status is AttemptStatus.CANCELLED
    assert outcome.error == "Client disconnected"
    assert outcome.value is None


def test_pre_cancelled_token_never_starts_work():
    calls = []

    async def main():
        token = CancelToken()
        token.cancel()

        async def work():
            calls.append(1)

        return await attempt_with_budget(work, 1.0, token)

    outcome = asyncio.run(main())
    assert outcome.status is AttemptStatus.CANCELLED
    assert calls == []


def test_cancel_token_raise_if_cancelled():
    async def main():
        token = CancelToken()
        token.raise_if_cancelled()
        token.cancel("stop")
        token.cancel("ignored")
        assert token.reason == "stop"
        try:
            token.raise_if_cancelled()
        except asyncio.CancelledError:
            return True
        return False

    assert asyncio.run(main())


def test_best_effort_degrades_to_default():
    async def slow():
        await asyncio.sleep(5)

    async def broken():
        raise ValueError("no logo")

    async def fine():
        return "data:image/png;base64,xyz"

    async def main():
        return (
            await best_effort(slow, 0.05, default="fallback"),
            await best_effort(broken, 1.0, default=None),
            await best_effort(fine, 1.0, default=None),
        )

    assert asyncio.run(main()) == ("fallback", None, "data:image/png;base64,xyz")
