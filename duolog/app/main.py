from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from duolog.app.config import load_api_key, provider_settings, resolve_args
from duolog.app.diagnostics import hint_for_exception
from duolog.app.logging_setup import setup_app_logger
from duolog.client.http import HttpAssistClient
from duolog.contracts import PRIMARY, SECONDARY
from duolog.errors import AssistError
from duolog.gateway.assist import AssistGateway
from duolog.live.replay import load_steps, run_replay
from duolog.live.session import AssistSession
from duolog.ui.bridge import PresentationBus, drain_presentation_bus
from duolog.ui.console import ConsoleView

_CHECK_SAMPLES = (
    ("Hello, how are you?", PRIMARY.locale),
    ("Привет, как дела?", SECONDARY.locale),
)


def _serve(args: Any, logger: logging.Logger) -> int:
    import uvicorn

    from duolog.server.app import create_app

    api_key = load_api_key(args.env_file)
    # Never log the key itself.
    logger.info("provider_config", extra={"key_configured": bool(api_key), "key_length": len(api_key or "")})
    gateway = AssistGateway(provider_settings(args, api_key), logger=logger)
    app = create_app(gateway, cors_origins=args.cors_origins, logger=logger)
    logger.info("server_start", extra={"host": str(args.host), "port": int(args.port)})
    print(f"Server running on http://{args.host}:{args.port}")
    if not api_key:
        print(hint_for_exception("api key not configured"))
    uvicorn.run(app, host=str(args.host), port=int(args.port))
    return 0


async def _replay(args: Any, logger: logging.Logger) -> int:
    steps = load_steps(args.events_path)
    if args.direct:
        client: Any = AssistGateway(provider_settings(args, load_api_key(args.env_file)), logger=logger)
    else:
        client = HttpAssistClient(str(args.server_url), timeout_sec=float(args.request_timeout_sec))

    bus = PresentationBus(maxsize=100)
    view = ConsoleView()
    session = AssistSession(
        client,
        source_lang=str(args.source_lang),
        min_chars=int(args.min_chars),
        debounce_sec=max(0, int(args.debounce_ms)) / 1000.0,
        on_change=bus.push,
        logger=logger,
    )

    async def _pump() -> None:
        while True:
            if args.print_console:
                drain_presentation_bus(bus, view, max_items=20)
            await asyncio.sleep(0.05)

    pump = asyncio.create_task(_pump())
    try:
        await run_replay(session, steps, speed=float(args.speed))
    finally:
        pump.cancel()
        await asyncio.gather(pump, return_exceptions=True)
        if args.print_console:
            drain_presentation_bus(bus, view, max_items=1000)
        await client.aclose()

    snapshot = session.snapshot()
    logger.info("replay_done", extra={"steps": len(steps), "error": snapshot.error})
    return 1 if snapshot.error else 0


async def _check(args: Any) -> int:
    failures = 0
    async with HttpAssistClient(str(args.server_url)) as client:
        print("1. Testing health endpoint...")
        try:
            print("   OK:", await client.health())
        except httpx.HTTPError as exc:
            failures += 1
            print("   FAILED:", exc)

        for i, (text, locale) in enumerate(_CHECK_SAMPLES, start=2):
            print(f"{i}. Testing assist with {locale} input...")
            try:
                result = await client.assist(text, locale)
            except AssistError as exc:
                failures += 1
                print("   FAILED:", exc.error, exc.details or "")
                print("   Hint:", hint_for_exception(exc.error))
                continue
            print(f"   {PRIMARY.name}: {result.translations.primary}")
            print(f"   {SECONDARY.name}: {result.translations.secondary}")
            if result.warning:
                print(f"   Warning: {result.warning}")
    return 1 if failures else 0


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger()
    logger.info("app_start", extra={"command": args.command, "config_path": str(args.config or ""), "argv": argv or []})

    if args.command == "serve":
        return _serve(args, logger)
    if args.command == "replay":
        print(f"Logs: {log_path}")
        return asyncio.run(_replay(args, logger))
    if args.command == "check":
        return asyncio.run(_check(args))
    raise SystemExit(f"unknown command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
