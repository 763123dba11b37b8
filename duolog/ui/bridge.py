from __future__ import annotations

import queue
from typing import Any, Optional

from duolog.live.state import PresentationState


class PresentationBus:
    """
    Thread-safe handoff from the session loop -> UI thread.
    Session puts PresentationState snapshots. UI polls (non-blocking).
    """
    def __init__(self, maxsize: int = 100):
        self.q: "queue.Queue[PresentationState]" = queue.Queue(maxsize=maxsize)

    def push(self, state: PresentationState) -> None:
        try:
            self.q.put_nowait(state)
        except queue.Full:
            # drop oldest; snapshots are cumulative so the newest one wins
            try:
                _ = self.q.get_nowait()
            except queue.Empty:
                return
            try:
                self.q.put_nowait(state)
            except queue.Full:
                return

    def pop(self) -> Optional[PresentationState]:
        try:
            return self.q.get_nowait()
        except queue.Empty:
            return None


def drain_presentation_bus(bus: PresentationBus, view: Any, max_items: int) -> int:
    drained = 0
    while drained < max_items:
        state = bus.pop()
        if state is None:
            break
        view.render(state)
        drained += 1
    return drained
