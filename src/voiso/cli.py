"""
Command-Line Interface for voiso.

Usage Examples:
    # Run the HTTP server
    voiso --serve --host 0.0.0.0 --port 8000

    # Insert the preset default voices (Chelsie, Ethan, Serena, Vivian)
    voiso --seed-defaults

    # Show where synthesis requests will be sent
    voiso --endpoint

    # Show a user's rolling quota
    voiso --quota 5f0c...

    # Validate and build a provider request without calling the provider
    voiso --dry-run --voice-id 7d1e... --text "Hello there" --language en --json

Environment Variables:
    VOISO_SETTINGS: Settings file (default config/settings.yaml)
    QWEN_API_URL / QWEN_API_KEY: Speech provider endpoint and key
    VOISO_DATABASE_URL: SQLAlchemy database URL
"""

from __future__ import annotations

import argparse
import json
import os
from typing import List, Optional
from uuid import uuid4

from voiso.core.config import ConfigValidationError, load_settings
from voiso.core.logging import configure_logging, get_logger, info, set_request_id
from voiso.provider.client import resolve_speech_endpoint
from voiso.services.errors import VoisoError


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="voiso voice-synthesis service")

    # Server
    parser.add_argument("--serve", action="store_true", help="Run the HTTP server with uvicorn")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host (with --serve)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (with --serve)")

    # Operations
    parser.add_argument("--seed-defaults", action="store_true",
                        help="Insert missing default preset voices")
    parser.add_argument("--endpoint", action="store_true",
                        help="Print the resolved speech provider endpoint")
    parser.add_argument("--quota", metavar="USER_ID", help="Print rolling quota usage for a user")

    # Dry run
    parser.add_argument("--dry-run", action="store_true",
                        help="Validate and build the provider request without dispatching")
    parser.add_argument("--voice-id", help="Voice to synthesize with (with --dry-run)")
    parser.add_argument("--text", help="Text to synthesize (with --dry-run)")
    parser.add_argument("--language", help="Language tag (with --dry-run)")
    parser.add_argument("--user-id", default="cli", help="Caller identity used for quota and ownership")

    parser.add_argument("--settings", help="Settings file (overrides VOISO_SETTINGS)")
    parser.add_argument("--json", action="store_true", help="Print JSON output")

    return parser.parse_args(argv)


def _print(payload: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(payload)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = _parse_args(argv)

    if args.serve:
        import uvicorn
        uvicorn.run("voiso.main:app", host=args.host, port=args.port)
        return 0

    configure_logging()
    log = get_logger("voiso.cli")
    set_request_id(str(uuid4())[:12])

    settings_path = args.settings or os.getenv("VOISO_SETTINGS", "config/settings.yaml")
    settings = load_settings(settings_path, missing_ok=True)

    if args.endpoint:
        _print({"ok": True, "endpoint": resolve_speech_endpoint(settings.provider_base_url)}, args.json)
        return 0

    from voiso.services.factory import build_services

    try:
        services = build_services(settings)
    except ConfigValidationError as e:
        print(f"Invalid configuration: {e}")
        return 2

    try:
        if args.seed_defaults:
            added = services.voices.seed_defaults()
            info(log, "seed_defaults", added=added)
            _print({"ok": True, "added": added}, args.json)
            return 0

        if args.quota:
            _print({"ok": True, "user_id": args.quota, **services.quota.usage(args.quota).to_dict()}, args.json)
            return 0

        if args.dry_run:
            if not args.voice_id or not args.text:
                raise SystemExit("--dry-run needs --voice-id and --text.")
            payload = {"voice_id": args.voice_id, "text": args.text}
            if args.language:
                payload["language"] = args.language
            try:
                request, provider_request = services.generation.prepare(args.user_id, payload)
            except VoisoError as e:
                _print({"ok": False, **e.to_dict()}, args.json)
                return 1
            info(log, "dry_run", voice_id=request.voice_id, task_type=provider_request.task_type)
            _print(
                {
                    "ok": True,
                    "dry_run": True,
                    "endpoint": services.provider.endpoint,
                    "request": provider_request.to_payload(),
                },
                args.json,
            )
            print("DRY_RUN_OK")
            return 0
    finally:
        services.close()

    print("Nothing to do. See --help.")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
