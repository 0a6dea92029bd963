from __future__ import annotations

import argparse
import asyncio
import os
from typing import Sequence

from dotenv import load_dotenv

from app import ServiceRuntime, create_app
from domain.errors import CaptureFailedError, NotReadyError, ValidationError
from domain.models import ServiceConfig
from domain.services import build_capture_request
from infra.config import EnvConfigProvider
from infra.runtime import StructuredLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="capture-service")
    parser.add_argument("--env-file", default=".env", help="Optional .env file to load first")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_p = sub.add_parser("serve", help="Run the HTTP capture service")
    serve_p.add_argument("--host", default=None)
    serve_p.add_argument("--port", type=int, default=None)

    capture_p = sub.add_parser("capture", help="Capture one URL and print the artifact path")
    capture_p.add_argument("url")
    capture_p.add_argument("--format", default="png", help='"png" (still) or "webp" (animated)')
    capture_p.add_argument("--length", default=None, help="Seconds of animation, 1-5")
    capture_p.add_argument("--nocache", action="store_true")

    sub.add_parser("sweep", help="Remove expired cache entries and their artifacts")
    sub.add_parser("check-config", help="Validate the environment configuration")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.env_file and os.path.isfile(args.env_file):
        load_dotenv(args.env_file)

    provider = EnvConfigProvider()
    errors = provider.validate()
    if errors:
        print("Config validation failed:")
        for err in errors:
            print(f"  - {err}")
        return 1
    config = provider.get_config()
    logger = StructuredLogger()

    if args.command == "check-config":
        _print_config(config)
        return 0

    if args.command == "serve":
        return _handle_serve(args, config, logger)

    if args.command == "capture":
        return asyncio.run(_handle_capture(args, config, logger))

    if args.command == "sweep":
        runtime = ServiceRuntime.from_config(config, logger=logger)
        try:
            removed = runtime.service.sweep_expired()
        finally:
            runtime.close_cache()
        print(f"removed {removed} expired entries")
        return 0

    raise SystemExit(f"Unsupported command: {args.command}")


def _handle_serve(args: argparse.Namespace, config: ServiceConfig, logger: StructuredLogger) -> int:
    import uvicorn

    runtime = ServiceRuntime.from_config(config, logger=logger)
    app = create_app(runtime, auth_token=config.auth_token)
    host = args.host or config.host
    port = args.port or config.port
    logger.info("listening", host=host, port=port, auth_enabled=bool(config.auth_token))
    uvicorn.run(app, host=host, port=port)
    return 0


async def _handle_capture(
    args: argparse.Namespace,
    config: ServiceConfig,
    logger: StructuredLogger,
) -> int:
    try:
        request = build_capture_request(
            args.url,
            args.format,
            args.length,
            "" if args.nocache else None,
        )
    except ValidationError as exc:
        print(f"invalid request: {exc}")
        return 1

    runtime = ServiceRuntime.from_config(config, logger=logger)
    try:
        if not await runtime.boot():
            print("renderer failed to start")
            return 1
        result = await runtime.require_ready().capture(request)
    except (CaptureFailedError, NotReadyError) as exc:
        print(f"capture failed: {exc}")
        return 1
    finally:
        await runtime.shutdown()
    origin = "cache" if result.from_cache else "render"
    print(f"{result.path} ({origin})")
    return 0


def _print_config(config: ServiceConfig) -> None:
    ttl = f"{config.cache_ttl_days} days" if config.cache_ttl_days else "never expires"
    print("Config OK")
    print(f"Storage: {config.storage_dir}")
    print(f"Cache: {config.cache_backend.value} at {config.resolved_cache_index_path} ({ttl})")
    print(f"Max concurrent captures: {config.max_concurrent_captures}")
    print(f"Auth: {'ON' if config.auth_token else 'OFF'}")
    print(f"Chrome: {config.chrome_path or 'bundled'}")


if __name__ == "__main__":
    raise SystemExit(main())
