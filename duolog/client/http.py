from __future__ import annotations

from typing import Any

import httpx

from duolog.contracts import AssistResult
from duolog.errors import ProviderError


def _error_fields(response: httpx.Response) -> tuple[str | None, str | None]:
    try:
        body = response.json()
    except ValueError:
        return None, None
    if not isinstance(body, dict):
        return None, None
    error = body.get("error") if isinstance(body.get("error"), str) else None
    details = body.get("details") if isinstance(body.get("details"), str) else None
    return error, details


class HttpAssistClient:
    """Posts settled text to a running assist server (POST /api/assist)."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_sec: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_sec,
            transport=transport,
        )

    async def assist(self, text: str, source_lang: str) -> AssistResult:
        try:
            response = await self._http.post("/api/assist", json={"text": text, "sourceLang": source_lang})
        except httpx.HTTPError as exc:
            raise ProviderError(None, str(exc) or type(exc).__name__, error="Assist server unreachable") from exc

        if response.is_error:
            error, details = _error_fields(response)
            raise ProviderError(
                response.status_code,
                details or "",
                error=error or f"Request failed with status code {response.status_code}",
            )

        try:
            body: Any = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict) or body.get("success") is not True:
            raise ProviderError(response.status_code, "", error="Invalid response from server")
        return AssistResult.from_payload(body, diagnostics=True)

    async def health(self) -> dict[str, Any]:
        response = await self._http.get("/api/health")
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "HttpAssistClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
