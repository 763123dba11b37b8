from __future__ import annotations

from typing import Callable

from duolog.contracts import PRIMARY, SECONDARY, BilingualText
from duolog.live.state import PresentationState


def _pair_lines(title: str, text: BilingualText) -> list[str]:
    return [
        f"{title}:",
        f"  {PRIMARY.name}: {text.primary or '-'}",
        f"  {SECONDARY.name}: {text.secondary or '-'}",
    ]


def render_lines(state: PresentationState) -> list[str]:
    lines = [f"Transcript: {state.combined_text or ('(speak...)' if state.listening else '(idle)')}"]
    if state.error:
        lines.append(state.error)
    if state.processing:
        lines.append("Processing...")
        return lines
    if not state.translations.is_empty():
        lines.extend(_pair_lines("Translation", state.translations))
    if not state.suggested_reply.is_empty():
        lines.extend(_pair_lines("Predicted reply", state.suggested_reply))
    return lines


class ConsoleView:
    """Prints a block per snapshot, skipping snapshots identical to the last one shown."""

    def __init__(self, write: Callable[[str], None] = print) -> None:
        self.write = write
        self._last: PresentationState | None = None

    def render(self, state: PresentationState) -> None:
        if state == self._last:
            return
        self._last = state
        self.write("\n".join(render_lines(state)))
        self.write("")
