"""CLI entrypoint for the county cases ingestion job."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from county_cases.common.config_loader import DEFAULT_CONFIG_PATH, Settings, load_settings
from county_cases.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from county_cases.common.errors import PipelineError
from county_cases.common.logging import build_logger, log_event
from county_cases.service.runtime import build_runtime

COMMANDS = ("run", "serve")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH))
    parser.add_argument("--overlay-config", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--no-notify", action="store_true")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--run-now", action="store_true")
    return parser.parse_args(argv)


def _load(args: argparse.Namespace) -> Settings:
    overlay = Path(args.overlay_config) if args.overlay_config else None
    return load_settings(Path(args.config), overlay_path=overlay)


def run_once(args: argparse.Namespace, settings: Settings) -> int:
    logger = build_logger(level=args.log_level or settings.log_level)
    runtime = build_runtime(settings, logger, notify=not args.no_notify)
    try:
        result = runtime.pipeline.run(run_id=args.run_id)
    finally:
        runtime.close()
    return EXIT_SUCCESS if result.ok else EXIT_PARTIAL


def serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from county_cases.service.app import create_app
    from county_cases.service.scheduler import build_scheduler

    logger = build_logger(level=args.log_level or settings.log_level)
    runtime = build_runtime(settings, logger, notify=not args.no_notify)
    scheduler = build_scheduler(runtime.pipeline, settings, run_now=args.run_now)

    host = args.host or settings.host
    port = args.port or settings.port
    log_event(logger, f"serving liveness on {host}:{port}, schedule '{settings.cron}'", event="SERVE_START", status="ok")
    try:
        uvicorn.run(create_app(scheduler), host=host, port=port, log_level="info")
    finally:
        runtime.close()
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    settings = _load(args)
    if args.command == "run":
        return run_once(args, settings)
    return serve(args, settings)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    logger = build_logger(level=args.log_level or "INFO")
    try:
        return run_command(args)
    except PipelineError as exc:
        log_event(logger, str(exc), event="STARTUP_FAIL", status="error", error_code=exc.error_code)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
