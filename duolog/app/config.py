from __future__ import annotations

import argparse
import copy
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from platformdirs import user_config_dir

from duolog.gateway.assist import ProviderSettings

API_KEY_ENV = "NEBIUS_API_KEY"

DEFAULTS: dict[str, Any] = {
    "host": "127.0.0.1",
    "port": 3001,
    "server_url": "http://127.0.0.1:3001",
    "provider_base_url": "https://api.tokenfactory.nebius.com/v1/",
    "model": "openai/gpt-oss-120b",
    "temperature": 0.35,
    "max_tokens": 550,
    "request_timeout_sec": 60.0,
    "source_lang": "en-US",
    "min_chars": 12,
    "debounce_ms": 1500,
    "cors_origins": ["*"],
    "print_console": True,
    "direct": False,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("duolog", "duolog"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in CONFIG_KEYS:
        if key in payload:
            out[key] = payload[key]
    return out


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    merged = copy.deepcopy(DEFAULTS)
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists()
    merged.update(_known_only(_load_json_dict(chosen)))
    return merged, chosen


def save_user_config(values: dict[str, Any], config_path: str | None = None) -> Path:
    path = Path(config_path) if config_path else ensure_user_config_exists()
    existing = _known_only(_load_json_dict(path)) if path.exists() else {}
    merged = copy.deepcopy(DEFAULTS)
    merged.update(existing)
    merged.update(_known_only(values))
    _write_json_dict(path, merged)
    return path


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or copy.deepcopy(DEFAULTS))
    return paths.config_path


def load_api_key(env_file: str | None = None) -> str | None:
    """Read the provider credential from the environment, after loading .env."""
    load_dotenv(env_file)
    key = (os.getenv(API_KEY_ENV) or "").strip()
    return key or None


def provider_settings(args: Any, api_key: str | None) -> ProviderSettings:
    return ProviderSettings(
        api_key=api_key,
        base_url=str(args.provider_base_url),
        model=str(args.model),
        temperature=float(args.temperature),
        max_tokens=int(args.max_tokens),
        timeout_sec=float(args.request_timeout_sec),
    )


def _add_provider_flags(p: argparse.ArgumentParser, defaults: dict[str, Any]) -> None:
    p.add_argument("--provider-base-url", default=defaults["provider_base_url"], help="OpenAI-compatible base URL")
    p.add_argument("--model", default=defaults["model"], help="completion model id")
    p.add_argument("--temperature", type=float, default=defaults["temperature"], help="sampling temperature")
    p.add_argument("--max-tokens", type=int, default=defaults["max_tokens"], help="max output tokens")
    p.add_argument(
        "--request-timeout-sec",
        type=float,
        default=defaults["request_timeout_sec"],
        help="transport timeout for one assist call",
    )


def _add_session_flags(p: argparse.ArgumentParser, defaults: dict[str, Any]) -> None:
    p.add_argument("--server-url", default=defaults["server_url"], help="assist server base URL")
    p.add_argument(
        "--source-lang",
        default=defaults["source_lang"],
        help="recognizer locale (en-US = English, anything else = Russian)",
    )
    p.add_argument("--min-chars", type=int, default=defaults["min_chars"], help="skip shorter fragments")
    p.add_argument("--debounce-ms", type=int, default=defaults["debounce_ms"], help="quiet time before sending")
    p.add_argument(
        "--print-console",
        action=argparse.BooleanOptionalAction,
        default=defaults["print_console"],
        help="print presentation updates to console",
    )


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="duolog")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--env-file", default=None, help=".env file holding NEBIUS_API_KEY")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the assist HTTP server")
    serve.add_argument("--host", default=defaults["host"], help="bind address")
    serve.add_argument("--port", type=int, default=defaults["port"], help="bind port")
    _add_provider_flags(serve, defaults)
    serve.set_defaults(cors_origins=list(defaults["cors_origins"]))

    replay = sub.add_parser("replay", help="replay recorded recognition events through a live session")
    replay.add_argument("events_path", help="JSON-lines file of recognition events")
    replay.add_argument(
        "--direct",
        action=argparse.BooleanOptionalAction,
        default=defaults["direct"],
        help="call the provider in-process instead of the assist server",
    )
    replay.add_argument("--speed", type=float, default=1.0, help="1.0 = recorded pace, 2.0 = 2x faster")
    _add_session_flags(replay, defaults)
    _add_provider_flags(replay, defaults)

    check = sub.add_parser("check", help="smoke-test a running assist server")
    check.add_argument("--server-url", default=defaults["server_url"], help="assist server base URL")
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = load_user_config(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    return parser.parse_args(argv)
