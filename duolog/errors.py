from __future__ import annotations

from typing import Any


class AssistError(Exception):
    """Base for failures reported to the caller of an assist request."""

    status: int = 500

    def __init__(self, error: str, details: str | None = None, *, status: int | None = None) -> None:
        super().__init__(error)
        self.error = error
        self.details = details
        if status is not None:
            self.status = int(status)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AssistError):
    status = 400


class ConfigError(AssistError):
    status = 500


class ProviderError(AssistError):
    def __init__(
        self,
        status: int | None,
        message: str,
        *,
        error: str = "Failed to process assist request",
    ) -> None:
        super().__init__(error, message, status=500 if status is None else status)
        self.message = message
