from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ListeningState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPING = "stopping"
    ERROR = "error"


@dataclass
class ListeningStateTracker:
    state: ListeningState = ListeningState.IDLE
    last_error: str | None = None

    @property
    def is_listening(self) -> bool:
        return self.state == ListeningState.LISTENING

    def set_listening(self) -> None:
        self.state = ListeningState.LISTENING
        self.last_error = None

    def set_stopping(self) -> None:
        if self.state == ListeningState.LISTENING:
            self.state = ListeningState.STOPPING

    def set_ended(self) -> None:
        if self.state != ListeningState.ERROR:
            self.state = ListeningState.IDLE

    def set_error(self, detail: str) -> None:
        self.state = ListeningState.ERROR
        self.last_error = detail
