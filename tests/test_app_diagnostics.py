from __future__ import annotations

from duolog.app.diagnostics import format_user_error, hint_for_exception, summarize_exception


def test_summarize_exception_picks_last_meaningful_line() -> None:
    detail = (
        "Traceback (most recent call last):\n"
        '  File "x.py", line 1, in <module>\n'
        "    boom()\n"
        "RuntimeError: provider unreachable"
    )
    assert summarize_exception(detail) == "RuntimeError: provider unreachable"


def test_summarize_exception_truncates_long_line() -> None:
    out = summarize_exception("ValueError: " + ("x" * 500), max_len=60)
    assert out.startswith("ValueError: ")
    assert out.endswith("...")
    assert len(out) <= 60


def test_format_user_error_with_and_without_details() -> None:
    assert format_user_error("Failed to process assist request", "rate limited") == (
        "Error: Failed to process assist request | Details: rate limited"
    )
    assert format_user_error("Invalid response from server") == "Error: Invalid response from server"


def test_hint_for_missing_key() -> None:
    assert "NEBIUS_API_KEY" in hint_for_exception("Nebius API key not configured")


def test_hint_for_exception_default() -> None:
    assert hint_for_exception("RuntimeError: unknown") == "Check logs for full traceback."
