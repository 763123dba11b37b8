# duolog/live/accumulator.py
from __future__ import annotations

from dataclasses import dataclass, replace

from duolog.contracts import RecognitionResult


@dataclass(frozen=True)
class TranscriptState:
    settled_text: str = ""
    interim_text: str = ""

    @property
    def combined_text(self) -> str:
        return (self.settled_text + self.interim_text).strip()


def apply_event(state: TranscriptState, event: RecognitionResult) -> TranscriptState:
    """
    Merge one recognizer callback into the running transcript.

    Final chunks in the event window are appended to the settled text (each
    followed by one space). Interim chunks replace the previous interim text.
    """
    settled_chunk = ""
    interim = ""
    for chunk in list(event.results)[max(0, int(event.result_index)):]:
        text = chunk.transcript or ""
        if chunk.is_final:
            settled_chunk += text + " "
        else:
            interim += text
    return replace(state, settled_text=state.settled_text + settled_chunk, interim_text=interim)

