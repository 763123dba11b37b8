from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from duolog.contracts import AssistResult, BilingualText
from duolog.live.accumulator import TranscriptState


@dataclass(frozen=True)
class PresentationState:
    combined_text: str = ""
    processing: bool = False
    error: str = ""
    translations: BilingualText = field(default_factory=BilingualText)
    suggested_reply: BilingualText = field(default_factory=BilingualText)
    listening: bool = False


@dataclass
class SessionState:
    """
    Mutable record for one listening session.

    Transcript fields are written by the accumulator step only; the timer,
    in-flight task and last_sent_text belong to the gate and lifecycle manager.
    """
    source_lang: str = "en-US"
    transcript: TranscriptState = field(default_factory=TranscriptState)
    last_sent_text: str = ""
    timer: asyncio.TimerHandle | None = None
    inflight: "asyncio.Task | None" = None
    processing: bool = False
    error: str = ""
    translations: BilingualText = field(default_factory=BilingualText)
    suggested_reply: BilingualText = field(default_factory=BilingualText)

    def cancel_timer(self) -> bool:
        if self.timer is None:
            return False
        self.timer.cancel()
        self.timer = None
        return True

    def cancel_inflight(self) -> bool:
        task = self.inflight
        self.inflight = None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def teardown(self) -> None:
        self.cancel_timer()
        self.cancel_inflight()
        self.processing = False

    def reset(self, source_lang: str | None = None) -> None:
        self.teardown()
        if source_lang is not None:
            self.source_lang = source_lang
        self.transcript = TranscriptState()
        self.last_sent_text = ""
        self.error = ""
        self.translations = BilingualText()
        self.suggested_reply = BilingualText()

    def apply_result(self, result: AssistResult) -> None:
        self.translations = result.translations
        self.suggested_reply = result.suggested_reply

    def snapshot(self, *, listening: bool = False) -> PresentationState:
        return PresentationState(
            combined_text=self.transcript.combined_text,
            processing=self.processing,
            error=self.error,
            translations=self.translations,
            suggested_reply=self.suggested_reply,
            listening=listening,
        )
