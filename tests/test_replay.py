from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from duolog.contracts import AssistResult, BilingualText, RecognitionEnded, RecognitionError, RecognitionResult
from duolog.live.replay import ReplayStep, load_steps, parse_step, run_replay
from duolog.live.session import AssistSession


class FakeClient:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def assist(self, text: str, source_lang: str) -> AssistResult:
        self.calls.append((text, source_lang))
        return AssistResult(translations=BilingualText(primary=text, secondary=""))


def test_parse_step_kinds() -> None:
    step = parse_step(
        {
            "type": "result",
            "resultIndex": 1,
            "waitMs": 250,
            "results": [{"transcript": "a", "isFinal": True}, {"transcript": "b"}],
        }
    )
    assert step.wait_sec == 0.25
    assert isinstance(step.event, RecognitionResult)
    assert step.event.result_index == 1
    assert [c.is_final for c in step.event.results] == [True, False]

    assert isinstance(parse_step({"type": "end"}).event, RecognitionEnded)
    err = parse_step({"type": "error", "error": "no-speech"}).event
    assert isinstance(err, RecognitionError) and err.error == "no-speech"
    assert parse_step({"type": "stop"}).event is None


def test_parse_step_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        parse_step({"type": "bogus"})
    with pytest.raises(ValueError):
        parse_step(["result"])


def test_load_steps_reports_line_number(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    path.write_text('{"type": "end"}\n\n{"type": "nope"}\n', encoding="utf-8")
    with pytest.raises(ValueError, match=":3:"):
        load_steps(path)


def test_run_replay_sends_final_utterance(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    lines = [
        {"type": "result", "resultIndex": 0, "results": [{"transcript": "hello there", "isFinal": False}]},
        {"type": "result", "resultIndex": 0, "results": [{"transcript": "hello there friend", "isFinal": True}]},
    ]
    path.write_text("\n".join(json.dumps(x) for x in lines), encoding="utf-8")

    async def scenario():
        client = FakeClient()
        session = AssistSession(client, source_lang="en-US", debounce_sec=10.0)
        await run_replay(session, load_steps(path))
        return client, session

    client, session = asyncio.run(scenario())
    # No explicit end line: the replay still finalizes the session.
    assert client.calls == [("hello there friend", "en-US")]
    assert session.snapshot().translations.primary == "hello there friend"


def test_run_replay_paces_with_speed() -> None:
    waits: list[float] = []

    async def fake_sleep(sec: float) -> None:
        waits.append(sec)

    async def scenario():
        session = AssistSession(FakeClient(), debounce_sec=10.0)
        steps = [ReplayStep(wait_sec=1.0, event=RecognitionEnded()), ReplayStep(wait_sec=0.0)]
        await run_replay(session, steps, speed=2.0, sleep=fake_sleep)

    asyncio.run(scenario())
    assert waits == [0.5]


def test_load_steps_reports_line_number_for_null_fields(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    path.write_text(
        '{"type": "result", "results": null}\n{"type": "result", "resultIndex": null, "results": []}\n',
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match=":1:"):
        load_steps(path)
    path.write_text('{"type": "result", "resultIndex": null, "results": []}\n', encoding="utf-8")
    with pytest.raises(ValueError, match=":1:"):
        load_steps(path)
