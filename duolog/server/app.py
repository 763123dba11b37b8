from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from duolog.errors import AssistError, ProviderError, ValidationError
from duolog.gateway.assist import AssistGateway


def create_app(
    gateway: AssistGateway,
    *,
    cors_origins: Sequence[str] = ("*",),
    logger: logging.Logger | None = None,
) -> FastAPI:
    app = FastAPI(title="duolog assist server")
    app.state.gateway = gateway
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AssistError)
    async def _assist_error(request: Request, exc: AssistError) -> JSONResponse:
        if logger is not None:
            logger.warning(
                "assist_rejected",
                extra={"status": exc.status, "error": exc.error, "path": request.url.path},
            )
        return JSONResponse(status_code=exc.status, content=exc.to_body())

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        if logger is not None:
            logger.error("assist_crashed", exc_info=exc, extra={"path": request.url.path})
        body = ProviderError(None, str(exc) or type(exc).__name__).to_body()
        return JSONResponse(status_code=500, content=body)

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "message": "Server is running"}

    @app.post("/api/assist")
    async def assist(request: Request) -> dict[str, Any]:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Request body must be JSON")
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")

        result = await gateway.assist(body.get("text"), body.get("sourceLang"))
        return result.to_body()

    return app
