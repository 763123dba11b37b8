from __future__ import annotations


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    if not text:
        return "Unknown error."
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return "Unknown error."
    for ln in reversed(lines):
        if ln.startswith("File "):
            continue
        if ln.startswith("^"):
            continue
        if ln.startswith("Traceback "):
            continue
        out = ln
        break
    else:
        out = lines[-1]
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def format_user_error(error: str, details: str | None = None) -> str:
    """Single line shown to the user for a failed assist request."""
    summary = summarize_exception(error)
    if details:
        return f"Error: {summary} | Details: {summarize_exception(details)}"
    return f"Error: {summary}"


def hint_for_exception(summary: str) -> str:
    s = str(summary or "").lower()
    if "api key not configured" in s:
        return "Set NEBIUS_API_KEY in the environment or a .env file and restart the server."
    if "401" in s or "unauthorized" in s or "authentication" in s:
        return "The provider rejected the credential. Check NEBIUS_API_KEY."
    if "429" in s or "rate limit" in s:
        return "Provider rate limit reached. Keep speaking; the next pause retries."
    if "connect" in s or "unreachable" in s:
        return "Assist server unreachable. Start it with `duolog serve` or check server_url."
    return "Check logs for full traceback."
