from __future__ import annotations

import asyncio

from duolog.contracts import AssistResult, BilingualText
from duolog.errors import ProviderError
from duolog.live.lifecycle import OutcomeStatus, RequestLifecycleManager
from duolog.live.state import SessionState


def _result(text: str) -> AssistResult:
    return AssistResult(
        translations=BilingualText(primary=f"EN({text})", secondary=f"RU({text})"),
        suggested_reply=BilingualText(primary="ok", secondary="ок"),
    )


class FakeClient:
    """Sleeps per call; records calls and cancellations seen by the transport."""

    def __init__(self, delays: dict[str, float] | None = None, errors: dict[str, Exception] | None = None):
        self.delays = delays or {}
        self.errors = errors or {}
        self.calls: list[tuple[str, str]] = []
        self.cancelled: list[str] = []

    async def assist(self, text: str, source_lang: str) -> AssistResult:
        self.calls.append((text, source_lang))
        try:
            await asyncio.sleep(self.delays.get(text, 0.0))
        except asyncio.CancelledError:
            self.cancelled.append(text)
            raise
        if text in self.errors:
            raise self.errors[text]
        return _result(text)


class StubbornClient(FakeClient):
    """Ignores cancellation and still returns a result, like a late network reply."""

    async def assist(self, text: str, source_lang: str) -> AssistResult:
        self.calls.append((text, source_lang))
        try:
            await asyncio.sleep(self.delays.get(text, 0.0))
        except asyncio.CancelledError:
            self.cancelled.append(text)
        if text in self.errors:
            raise self.errors[text]
        return _result(text)


def test_dispatch_publishes_result_and_clears_processing() -> None:
    async def scenario():
        session = SessionState(source_lang="en-US")
        seen: list[bool] = []
        mgr = RequestLifecycleManager(session, FakeClient(), on_change=lambda: seen.append(session.processing))
        outcome = await mgr.dispatch("hello there friend")
        return session, outcome, seen

    session, outcome, seen = asyncio.run(scenario())
    assert outcome.status == OutcomeStatus.COMPLETED
    assert outcome.request.source_lang == "en-US"
    assert session.translations.primary == "EN(hello there friend)"
    assert session.processing is False
    assert session.inflight is None
    assert seen == [True, False]


def test_new_dispatch_cancels_in_flight_request() -> None:
    async def scenario():
        session = SessionState()
        client = FakeClient(delays={"first text here": 1.0})
        mgr = RequestLifecycleManager(session, client)
        first = mgr.submit("first text here")
        await asyncio.sleep(0.01)
        assert session.processing is True
        second = await mgr.dispatch("second text here")
        return session, client, await first, second

    session, client, first, second = asyncio.run(scenario())
    assert client.cancelled == ["first text here"]
    assert first.status == OutcomeStatus.CANCELLED
    assert second.status == OutcomeStatus.COMPLETED
    assert session.translations.primary == "EN(second text here)"
    assert session.processing is False


def test_superseded_before_start_never_reaches_client() -> None:
    async def scenario():
        session = SessionState()
        client = FakeClient()
        mgr = RequestLifecycleManager(session, client)
        first = mgr.submit("first text here")
        second = mgr.submit("second text here")
        await asyncio.gather(first, second, return_exceptions=True)
        return session, client

    session, client = asyncio.run(scenario())
    assert [c[0] for c in client.calls] == ["second text here"]
    assert session.translations.primary == "EN(second text here)"


def test_late_result_of_superseded_call_is_dropped() -> None:
    async def scenario():
        session = SessionState()
        client = StubbornClient(
            delays={"old text arrives late": 0.05, "new text fails fast": 0.0},
            errors={"new text fails fast": ProviderError(503, "provider down")},
        )
        mgr = RequestLifecycleManager(session, client)
        old = mgr.submit("old text arrives late")
        await asyncio.sleep(0.01)
        new = await mgr.dispatch("new text fails fast")
        old_outcome = await old
        return session, old_outcome, new

    session, old_outcome, new = asyncio.run(scenario())
    assert old_outcome.status == OutcomeStatus.CANCELLED
    assert old_outcome.result is not None
    assert new.status == OutcomeStatus.FAILED
    # The stale reply neither published its translation nor cleared the newer error.
    assert session.translations.is_empty()
    assert session.error == "Error: Failed to process assist request | Details: provider down"
    assert session.processing is False


def test_provider_error_surfaces_single_message() -> None:
    async def scenario():
        session = SessionState()
        client = FakeClient(errors={"hello there friend": ProviderError(429, "rate limited")})
        mgr = RequestLifecycleManager(session, client)
        outcome = await mgr.dispatch("hello there friend")
        return session, outcome

    session, outcome = asyncio.run(scenario())
    assert outcome.status == OutcomeStatus.FAILED
    assert outcome.error == "Error: Failed to process assist request | Details: rate limited"
    assert session.error == outcome.error
    assert session.processing is False


def test_new_dispatch_clears_previous_error() -> None:
    async def scenario():
        session = SessionState()
        session.error = "Error: old"
        mgr = RequestLifecycleManager(session, FakeClient(delays={"hello there friend": 0.05}))
        task = mgr.submit("hello there friend")
        cleared = session.error
        await task
        return cleared

    assert asyncio.run(scenario()) == ""


def test_teardown_cancels_and_keeps_state_untouched() -> None:
    async def scenario():
        session = SessionState()
        client = FakeClient(delays={"hello there friend": 1.0})
        mgr = RequestLifecycleManager(session, client)
        task = mgr.submit("hello there friend")
        await asyncio.sleep(0.01)
        session.teardown()
        outcome = await task
        return session, client, outcome

    session, client, outcome = asyncio.run(scenario())
    assert outcome.status == OutcomeStatus.CANCELLED
    assert client.cancelled == ["hello there friend"]
    assert session.processing is False
    assert session.inflight is None
    assert session.translations.is_empty()


def test_outside_cancellation_propagates_and_frees_slot() -> None:
    async def scenario():
        session = SessionState()
        client = FakeClient(delays={"hello there friend": 1.0})
        mgr = RequestLifecycleManager(session, client)
        task = mgr.submit("hello there friend")
        await asyncio.sleep(0.01)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            propagated = True
        else:
            propagated = False
        return session, client, task, propagated

    session, client, task, propagated = asyncio.run(scenario())
    assert propagated is True
    assert task.cancelled()
    assert client.cancelled == ["hello there friend"]
    assert session.inflight is None
    assert session.processing is False
    assert session.translations.is_empty()
