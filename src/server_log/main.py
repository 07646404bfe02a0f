# SPDX-License-Identifier: Apache-2.0
"""
Main entry point for the server-log inspection server.
"""

import argparse
import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from server_log import __version__
from server_log.config import (
    DEFAULT_BODY_LIMIT,
    RECORD_SINKS,
    Settings,
    create_default_config,
    get_config_file,
    load_settings,
)
from server_log.observer import RecordSink
from server_log.pipeline import InspectionPipeline


APP_DIR_NAME = "server-log"
LOG_FILE_NAME = "server.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_default_log_dir() -> str:
    """Per-user log directory: %LOCALAPPDATA% on Windows, ~/.local/share elsewhere."""
    if sys.platform == "win32":
        base_dir = os.environ.get(
            "LOCALAPPDATA", os.path.expanduser("~\\AppData\\Local")
        )
        return os.path.join(base_dir, APP_DIR_NAME, "logs")
    return os.path.expanduser(f"~/.local/share/{APP_DIR_NAME}/logs")


def setup_logging(log_level: str, log_dir: str | None = None) -> None:
    """Send operational logs to stdout and to a file rotated at midnight.

    Replaces any handlers already on the root logger. One rotated file is
    kept next to the current one.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for ``server.log`` (platform-specific default)
    """
    log_path = Path(os.path.expanduser(log_dir or get_default_log_dir()))
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / LOG_FILE_NAME

    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        TimedRotatingFileHandler(
            log_file, when="midnight", backupCount=1, encoding="utf-8"
        ),
    ]
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())
    root_logger.handlers = handlers

    logging.getLogger(__name__).info(f"Logging to {log_file}")


def create_app(
    settings: Settings | None = None,
    record_sink: Optional[RecordSink] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use; loaded from file and environment if omitted
        record_sink: Replaces the configured request record sink
    """
    if settings is None:
        settings = load_settings()

    log_dir = settings.log_dir if settings.log_dir else None
    setup_logging(settings.log_level, log_dir)

    # Every path belongs to the inspection pipeline, so no docs routes
    app = FastAPI(
        title="server-log",
        description="Logs every request's details and serves files from a web root",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = settings
    pipeline = InspectionPipeline(settings, sink=record_sink)
    app.state.pipeline = pipeline

    @app.middleware("http")
    async def inspect_requests(request: Request, call_next):
        """Answer every request from the pipeline; nothing downstream runs."""
        return await pipeline.handle(request)

    # Added last so it wraps the pipeline and decorates its responses
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods,
        allow_headers=settings.cors_headers,
    )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions without leaking details to the client."""
        logging.exception("Unhandled exception")
        return PlainTextResponse("Internal Server Error", status_code=500)

    return app


def run_foreground(settings: Settings) -> None:
    """Run server in foreground mode (blocking)."""
    app = create_app(settings)

    print(f"Listening on {settings.bind_addr}")
    print(f"Serving files from: {settings.static_root.resolve()}")
    print("Press Ctrl+C to stop\n")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="server-log",
        description="Server that logs all request details into stdout with headers and payload",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  server-log                                  # Listen on 0.0.0.0:5000, serve ./
  server-log --bind-addr 127.0.0.1:8080       # Custom address
  server-log --web-root ./public --fallback-file index.html
  BODY_LIMIT=65536 server-log                 # Settings also come from env vars
  server-log init-config                      # Write ~/.server-log/config.toml
        """.strip(),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Config file (default: {get_config_file()})",
    )
    parser.add_argument(
        "--bind-addr",
        default=None,
        help="Bind address (env BIND_ADDR, default: 0.0.0.0:5000)",
    )
    parser.add_argument(
        "--web-root",
        default=None,
        help="Path to web root (env WEB_ROOT, default: current directory)",
    )
    parser.add_argument(
        "--fallback-file",
        default=None,
        help="File under the web root served when a path has no match (env FALLBACK_FILE)",
    )
    parser.add_argument(
        "--no-confine",
        dest="confine_to_root",
        action="store_const",
        const=False,
        default=None,
        help="Allow paths that escape the web root (env CONFINE_TO_ROOT=false)",
    )
    parser.add_argument(
        "--body-limit",
        type=int,
        default=None,
        help=f"Largest accepted request body in bytes (env BODY_LIMIT, default: {DEFAULT_BODY_LIMIT})",
    )
    parser.add_argument(
        "--record-sink",
        default=None,
        choices=RECORD_SINKS,
        help="Where request records go (env RECORD_SINK, default: stdout)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (env LOG_LEVEL, default: INFO)",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Directory for log files (env LOG_DIR)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("init-config", help="Write a default config file")

    return parser


def main() -> None:
    """Main entry point with subcommand support."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command == "init-config":
        config_file = args.config or get_config_file()
        if create_default_config(config_file):
            print(f"Created default config file: {config_file}")
        else:
            print(f"Config file already exists: {config_file}")
        sys.exit(0)

    overrides = {
        "bind_addr": args.bind_addr,
        "web_root": args.web_root,
        "fallback_file": args.fallback_file,
        "confine_to_root": args.confine_to_root,
        "body_limit": args.body_limit,
        "record_sink": args.record_sink,
        "log_level": args.log_level,
        "log_dir": args.log_dir,
    }
    try:
        settings = load_settings(overrides, config_file=args.config)
    except (ValidationError, ValueError) as e:
        print(f"Error: invalid configuration\n{e}", file=sys.stderr)
        sys.exit(1)

    run_foreground(settings)


if __name__ == "__main__":
    main()
