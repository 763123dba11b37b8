from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union


@dataclass(frozen=True)
class Language:
    code: str
    name: str
    locale: str


PRIMARY = Language(code="en", name="English", locale="en-US")
SECONDARY = Language(code="ru", name="Russian", locale="ru-RU")


def language_for_locale(source_lang: str | None) -> Language:
    """Map a recognizer locale tag to one of the two supported languages.

    Only the primary locale is matched explicitly; anything else is treated as
    the secondary language.
    """
    if source_lang == PRIMARY.locale:
        return PRIMARY
    return SECONDARY


@dataclass(frozen=True)
class TranscriptChunk:
    transcript: str
    is_final: bool = False


# --- speech source events ---

@dataclass(frozen=True)
class RecognitionResult:
    """
    One recognizer callback. `results` is the recognizer's whole result list;
    only the window [result_index, len(results)) is new or revised.
    """
    result_index: int
    results: Sequence[TranscriptChunk]


@dataclass(frozen=True)
class RecognitionEnded:
    pass


@dataclass(frozen=True)
class RecognitionError:
    error: str


SpeechEvent = Union[RecognitionResult, RecognitionEnded, RecognitionError]


@dataclass(frozen=True)
class AssistRequest:
    text: str
    source_lang: str
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


def _text_field(payload: Any, key: str) -> str:
    if not isinstance(payload, Mapping):
        return ""
    value = payload.get(key)
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class BilingualText:
    primary: str = ""
    secondary: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "BilingualText":
        # Each language is coerced on its own; a bad field never drops the other.
        return cls(
            primary=_text_field(payload, PRIMARY.code),
            secondary=_text_field(payload, SECONDARY.code),
        )

    def to_dict(self) -> dict[str, str]:
        return {PRIMARY.code: self.primary, SECONDARY.code: self.secondary}

    def is_empty(self) -> bool:
        return not (self.primary or self.secondary)


@dataclass(frozen=True)
class AssistResult:
    translations: BilingualText = field(default_factory=BilingualText)
    suggested_reply: BilingualText = field(default_factory=BilingualText)
    warning: str | None = None
    raw: str | None = None

    @classmethod
    def from_payload(cls, payload: Any, *, diagnostics: bool = False) -> "AssistResult":
        """Build a result from a decoded body; warning/raw are only read when diagnostics=True."""
        if not isinstance(payload, Mapping):
            payload = {}
        warning = payload.get("warning") if diagnostics else None
        raw = payload.get("raw") if diagnostics else None
        return cls(
            translations=BilingualText.from_payload(payload.get("translations")),
            suggested_reply=BilingualText.from_payload(payload.get("suggestedReply")),
            warning=warning if isinstance(warning, str) else None,
            raw=raw if isinstance(raw, str) else None,
        )

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": True,
            "translations": self.translations.to_dict(),
            "suggestedReply": self.suggested_reply.to_dict(),
        }
        if self.raw is not None:
            body["raw"] = self.raw
        if self.warning is not None:
            body["warning"] = self.warning
        return body
