# duolog/live/gate.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from duolog.app.logging_setup import log_event
from duolog.live.state import SessionState

DEFAULT_MIN_CHARS = 12
DEFAULT_DEBOUNCE_SEC = 1.5


class RequestGate:
    """
    Send rules:
      1) Skip fragments shorter than min_chars (after strip).
      2) Skip text identical to the last text actually sent.
      3) Otherwise restart the debounce timer; the text is sent once speech
         has been quiet for debounce_sec.
    """
    def __init__(
        self,
        session: SessionState,
        send: Callable[[str], Any],
        *,
        min_chars: int = DEFAULT_MIN_CHARS,
        debounce_sec: float = DEFAULT_DEBOUNCE_SEC,
        logger: logging.Logger | None = None,
    ) -> None:
        if min_chars < 0:
            raise ValueError("min_chars must be >= 0")
        if debounce_sec < 0:
            raise ValueError("debounce_sec must be >= 0")
        self.session = session
        self.send = send
        self.min_chars = int(min_chars)
        self.debounce_sec = float(debounce_sec)
        self.logger = logger

    def consider(self, combined_text: str) -> bool:
        cleaned = (combined_text or "").strip()
        if len(cleaned) < self.min_chars:
            return False
        if cleaned == self.session.last_sent_text:
            return False

        self.session.cancel_timer()
        loop = asyncio.get_running_loop()
        self.session.timer = loop.call_later(self.debounce_sec, self._fire, cleaned)
        log_event(
            self.logger,
            logging.DEBUG,
            "assist_scheduled",
            chars=len(cleaned),
            delay_sec=self.debounce_sec,
        )
        return True

    def finalize(self, settled_text: str) -> bool:
        """End-of-session send: no length floor and no debounce."""
        self.session.cancel_timer()
        final_text = (settled_text or "").strip()
        if not final_text or final_text == self.session.last_sent_text:
            return False
        log_event(self.logger, logging.INFO, "session_end_finalize", chars=len(final_text))
        self._send_now(final_text)
        return True

    def _fire(self, text: str) -> None:
        self.session.timer = None
        self._send_now(text)

    def _send_now(self, text: str) -> None:
        self.session.last_sent_text = text
        self.send(text)
