# duolog/live/session.py
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from duolog.app.logging_setup import log_event
from duolog.app.state import ListeningState, ListeningStateTracker
from duolog.contracts import RecognitionEnded, RecognitionError, RecognitionResult, SpeechEvent
from duolog.live.accumulator import apply_event
from duolog.live.gate import DEFAULT_DEBOUNCE_SEC, DEFAULT_MIN_CHARS, RequestGate
from duolog.live.lifecycle import AssistClient, RequestLifecycleManager
from duolog.live.state import PresentationState, SessionState


class AssistSession:
    """
    Live assist coordinator for one recognizer.

    Feed it speech events in arrival order with handle(); every state
    transition is published to on_change as a PresentationState snapshot.
    Must be driven from a running asyncio loop.
    """

    def __init__(
        self,
        client: AssistClient,
        *,
        source_lang: str = "en-US",
        min_chars: int = DEFAULT_MIN_CHARS,
        debounce_sec: float = DEFAULT_DEBOUNCE_SEC,
        on_change: Callable[[PresentationState], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.state = SessionState(source_lang=source_lang)
        self.tracker = ListeningStateTracker()
        self.on_change = on_change
        self.logger = logger
        self.lifecycle = RequestLifecycleManager(
            self.state,
            client,
            on_change=self._publish,
            logger=logger,
        )
        self.gate = RequestGate(
            self.state,
            self.lifecycle.submit,
            min_chars=min_chars,
            debounce_sec=debounce_sec,
            logger=logger,
        )

    @property
    def combined_text(self) -> str:
        return self.state.transcript.combined_text

    def snapshot(self) -> PresentationState:
        return self.state.snapshot(listening=self.tracker.is_listening)

    def start(self, source_lang: str | None = None) -> None:
        self.state.reset(source_lang)
        self.tracker.set_listening()
        log_event(self.logger, logging.INFO, "session_start", source_lang=self.state.source_lang)
        self._publish()

    def stop(self) -> None:
        """Cancel pending and in-flight work; the recognizer's end event still finalizes."""
        self.state.teardown()
        self.tracker.set_stopping()
        log_event(self.logger, logging.INFO, "session_stop", chars=len(self.combined_text))
        self._publish()

    def handle(self, event: SpeechEvent) -> None:
        if isinstance(event, RecognitionResult):
            self._on_result(event)
        elif isinstance(event, RecognitionError):
            self._on_error(event)
        elif isinstance(event, RecognitionEnded):
            self._on_end()
        else:
            raise TypeError(f"unsupported speech event: {event!r}")

    async def wait_idle(self) -> None:
        """Wait until no assist request is in flight (or pending on the debounce timer)."""
        while True:
            task = self.state.inflight
            if task is not None and not task.done():
                await asyncio.gather(task, return_exceptions=True)
                continue
            if self.state.timer is not None:
                await asyncio.sleep(max(self.gate.debounce_sec / 4, 0.01))
                continue
            return

    def _on_result(self, event: RecognitionResult) -> None:
        if self.tracker.state not in (ListeningState.LISTENING, ListeningState.STOPPING):
            return
        self.state.transcript = apply_event(self.state.transcript, event)
        combined = self.state.transcript.combined_text
        self._publish()
        if combined and self.tracker.is_listening:
            self.gate.consider(combined)

    def _on_error(self, event: RecognitionError) -> None:
        detail = f"Recognition error: {event.error}"
        log_event(self.logger, logging.WARNING, "recognition_error", error=event.error)
        self.state.error = detail
        self.tracker.set_error(detail)
        self.stop()

    def _on_end(self) -> None:
        self.tracker.set_ended()
        self.gate.finalize(self.state.transcript.settled_text)
        self._publish()

    def _publish(self) -> None:
        if self.on_change is not None:
            self.on_change(self.snapshot())
