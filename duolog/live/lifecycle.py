# duolog/live/lifecycle.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from duolog.app.diagnostics import format_user_error
from duolog.app.logging_setup import log_event
from duolog.contracts import AssistRequest, AssistResult
from duolog.errors import AssistError
from duolog.live.state import SessionState


class AssistClient(Protocol):
    async def assist(self, text: str, source_lang: str) -> AssistResult:
        ...


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class DispatchOutcome:
    status: OutcomeStatus
    request: AssistRequest
    result: AssistResult | None = None
    error: str = ""


class RequestLifecycleManager:
    """
    Owns the single in-flight assist slot of a session.

    A new submission cancels the previous task; the cancellation reaches the
    client's HTTP call. Only the task currently held in session.inflight may
    write presentation state.
    """

    def __init__(
        self,
        session: SessionState,
        client: AssistClient,
        *,
        on_change: Callable[[], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.session = session
        self.client = client
        self.on_change = on_change
        self.logger = logger

    def submit(self, text: str, source_lang: str | None = None) -> "asyncio.Task[DispatchOutcome]":
        request = AssistRequest(text=text, source_lang=source_lang or self.session.source_lang)
        return self._start(request)

    def _start(self, request: AssistRequest) -> "asyncio.Task[DispatchOutcome]":
        previous = self.session.inflight
        if self.session.cancel_inflight():
            log_event(
                self.logger,
                logging.INFO,
                "assist_superseded",
                task=previous.get_name() if previous is not None else "",
            )

        self.session.processing = True
        self.session.error = ""
        task = asyncio.get_running_loop().create_task(
            self._run(request),
            name=f"duolog-assist-{request.request_id[:8]}",
        )
        self.session.inflight = task
        log_event(
            self.logger,
            logging.INFO,
            "assist_dispatched",
            request_id=request.request_id,
            source_lang=request.source_lang,
            chars=len(request.text),
        )
        self._notify()
        return task

    async def dispatch(self, text: str, source_lang: str | None = None) -> DispatchOutcome:
        request = AssistRequest(text=text, source_lang=source_lang or self.session.source_lang)
        task = self._start(request)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # Superseded before the task got its first step.
            log_event(self.logger, logging.INFO, "assist_cancelled", request_id=request.request_id)
            return DispatchOutcome(OutcomeStatus.CANCELLED, request)

    def _is_current(self, task: "asyncio.Task | None") -> bool:
        return task is not None and self.session.inflight is task

    def _finish(self) -> None:
        self.session.inflight = None
        self.session.processing = False
        self._notify()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    async def _run(self, request: AssistRequest) -> DispatchOutcome:
        task = asyncio.current_task()
        t0 = time.perf_counter()
        try:
            result = await self.client.assist(request.text, request.source_lang)
        except asyncio.CancelledError:
            log_event(self.logger, logging.INFO, "assist_cancelled", request_id=request.request_id)
            if self._is_current(task):
                # Cancelled from outside (loop shutdown, caller); cancel_inflight clears the slot first.
                self.session.inflight = None
                self.session.processing = False
                self._notify()
                raise
            return DispatchOutcome(OutcomeStatus.CANCELLED, request)
        except AssistError as exc:
            message = format_user_error(exc.error, exc.details)
            log_event(
                self.logger,
                logging.WARNING,
                "assist_failed",
                request_id=request.request_id,
                status=exc.status,
                detail=message,
            )
            return self._fail(task, request, message)
        except Exception as exc:
            if self.logger is not None:
                self.logger.exception("assist_crashed", extra={"request_id": request.request_id})
            return self._fail(task, request, format_user_error(str(exc) or type(exc).__name__))

        dur_ms = (time.perf_counter() - t0) * 1000.0
        if not self._is_current(task):
            return DispatchOutcome(OutcomeStatus.CANCELLED, request, result=result)

        if result.warning:
            log_event(
                self.logger,
                logging.WARNING,
                "assist_degraded",
                request_id=request.request_id,
                warning=result.warning,
            )
        log_event(
            self.logger,
            logging.INFO,
            "assist_done",
            request_id=request.request_id,
            ms=round(dur_ms, 2),
        )
        self.session.apply_result(result)
        self._finish()
        return DispatchOutcome(OutcomeStatus.COMPLETED, request, result=result)

    def _fail(self, task: "asyncio.Task | None", request: AssistRequest, message: str) -> DispatchOutcome:
        if not self._is_current(task):
            return DispatchOutcome(OutcomeStatus.CANCELLED, request, error=message)
        self.session.error = message
        self._finish()
        return DispatchOutcome(OutcomeStatus.FAILED, request, error=message)
