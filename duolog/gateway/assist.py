from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import openai
from openai import AsyncOpenAI

from duolog.contracts import AssistResult, language_for_locale
from duolog.errors import ConfigError, ProviderError, ValidationError
from duolog.gateway.prompt import build_messages

# Greedy on purpose: spans from the first "{" to the last "}". A reply with two
# separate JSON-looking fragments yields one unparsable span and degrades.
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

INVALID_JSON_WARNING = "Model did not return valid JSON"
MISSING_KEY_ERROR = "Nebius API key not configured"
MISSING_KEY_DETAILS = "Please add NEBIUS_API_KEY to your .env file and restart the server"


@dataclass(frozen=True)
class ProviderSettings:
    api_key: str | None = None
    base_url: str = "https://api.tokenfactory.nebius.com/v1/"
    model: str = "openai/gpt-oss-120b"
    temperature: float = 0.35
    max_tokens: int = 550
    timeout_sec: float = 60.0


def extract_json_text(content: str) -> str:
    match = _JSON_OBJECT.search(content)
    return match.group(0) if match else content


def parse_assist_reply(content: str) -> AssistResult:
    """Normalize free-form completion text into an AssistResult, never raising."""
    try:
        data = json.loads(extract_json_text(content))
    except (ValueError, RecursionError):
        return AssistResult(raw=content, warning=INVALID_JSON_WARNING)
    return AssistResult.from_payload(data)


def _completion_text(completion: Any) -> str:
    choices = getattr(completion, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) or ""


def _provider_message(exc: openai.APIError) -> str:
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        inner = body.get("error")
        if isinstance(inner, dict) and isinstance(inner.get("message"), str) and inner["message"]:
            return inner["message"]
        if isinstance(body.get("message"), str) and body["message"]:
            return body["message"]
    return getattr(exc, "message", None) or str(exc) or "Failed"


class AssistGateway:
    """
    Server-side assist call: prompt the completion provider and validate its
    reply into the bilingual schema.
    """

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        client: AsyncOpenAI | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.settings.api_key)

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_sec,
            )
        return self._client

    async def assist(self, text: Any, source_lang: Any) -> AssistResult:
        if not isinstance(text, str) or not text:
            raise ValidationError("Text is required")
        if not self.configured:
            raise ConfigError(MISSING_KEY_ERROR, MISSING_KEY_DETAILS)
        trimmed = text.strip()
        if not trimmed:
            raise ValidationError("Text is empty")

        language = language_for_locale(source_lang if isinstance(source_lang, str) else None)
        client = self._ensure_client()
        try:
            completion = await client.chat.completions.create(
                model=self.settings.model,
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens,
                messages=build_messages(trimmed, language),
            )
        except openai.APIStatusError as exc:
            self._log_provider_error(exc.status_code, _provider_message(exc))
            raise ProviderError(exc.status_code, _provider_message(exc)) from exc
        except openai.APIError as exc:
            self._log_provider_error(None, _provider_message(exc))
            raise ProviderError(None, _provider_message(exc)) from exc

        content = _completion_text(completion)
        result = parse_assist_reply(content)
        if result.warning and self.logger is not None:
            self.logger.warning("provider_reply_invalid", extra={"warning": result.warning, "raw_chars": len(content)})
        return result

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()

    def _log_provider_error(self, status: int | None, message: str) -> None:
        if self.logger is None:
            return
        self.logger.error("provider_error", extra={"status": 500 if status is None else status, "detail": message})
