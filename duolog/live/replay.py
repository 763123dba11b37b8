# duolog/live/replay.py
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from duolog.contracts import (
    RecognitionEnded,
    RecognitionError,
    RecognitionResult,
    SpeechEvent,
    TranscriptChunk,
)
from duolog.live.session import AssistSession


@dataclass(frozen=True)
class ReplayStep:
    wait_sec: float
    event: Optional[SpeechEvent] = None  # None = user pressed stop


def parse_step(payload: Any) -> ReplayStep:
    if not isinstance(payload, dict):
        raise ValueError("replay line must be a JSON object")
    kind = str(payload.get("type", "")).lower()
    wait_sec = max(0.0, float(payload.get("waitMs", 0)) / 1000.0)

    if kind == "result":
        raw_results = payload.get("results", [])
        if not isinstance(raw_results, list):
            raise ValueError("\"results\" must be a list")
        results = tuple(
            TranscriptChunk(transcript=str(r.get("transcript", "")), is_final=bool(r.get("isFinal", False)))
            for r in raw_results
            if isinstance(r, dict)
        )
        event = RecognitionResult(result_index=int(payload.get("resultIndex", 0)), results=results)
        return ReplayStep(wait_sec=wait_sec, event=event)
    if kind == "end":
        return ReplayStep(wait_sec=wait_sec, event=RecognitionEnded())
    if kind == "error":
        return ReplayStep(wait_sec=wait_sec, event=RecognitionError(error=str(payload.get("error", "unknown"))))
    if kind == "stop":
        return ReplayStep(wait_sec=wait_sec)
    raise ValueError(f"unknown replay event type: {kind!r}")


def load_steps(path: str | Path) -> List[ReplayStep]:
    steps: List[ReplayStep] = []
    with Path(path).open("r", encoding="utf-8-sig") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                steps.append(parse_step(json.loads(line)))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"{path}:{lineno}: {exc}") from exc
    return steps


async def run_replay(
    session: AssistSession,
    steps: Iterable[ReplayStep],
    *,
    speed: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> None:
    """Feed recorded recognizer steps through a fresh session, pacing them in wall time."""
    session.start()
    ended = False
    for step in steps:
        if step.wait_sec > 0:
            await sleep(step.wait_sec / max(speed, 1e-6))
        if step.event is None:
            session.stop()
            continue
        session.handle(step.event)
        if isinstance(step.event, RecognitionEnded):
            ended = True
    if not ended:
        # A recognizer always reports its end; recordings may omit it.
        session.handle(RecognitionEnded())
    await session.wait_idle()
