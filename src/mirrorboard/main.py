#!/usr/bin/env python3
"""
mirrorboard - Main Entry Point

A modular information dashboard: modules render into screen regions and
talk to each other through notifications.

Usage:
    mirrorboard
    python -m mirrorboard.main --config config/config.json
    python -m mirrorboard.main --port 8081

The kernel and the web server share one asyncio event loop.
"""

import argparse
import asyncio
import logging
from typing import Optional

import uvicorn

from mirrorboard.core import EnvSettings, Kernel, load_config
from mirrorboard.web import SharedState, WebLogHandler, create_app, get_shared_state

log = logging.getLogger("mirrorboard")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s : %(levelname)-8s : (%(name)s) %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Suppress noisy third-party loggers
    logging.getLogger("sse_starlette").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)


def setup_web_logging() -> SharedState:
    """Set up web log handler to capture all logs for the web interface."""
    shared_state = get_shared_state()

    # Stores records for the web log stream, does not print
    logging.getLogger().addHandler(WebLogHandler(shared_state))
    return shared_state


async def run(kernel: Kernel, host: str, port: int, shared_state: SharedState) -> None:
    """Start the kernel and serve the page until the server exits."""
    app = create_app(kernel, shared_state)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)

    # A module that never finishes rendering must not keep the page offline
    startup = asyncio.create_task(kernel.start())
    log.info(f"Starting web server at http://{host}:{port}")
    try:
        await server.serve()
    finally:
        startup.cancel()
        kernel.stop()


def main(argv: Optional[list] = None) -> None:
    """Main entry point."""
    settings = EnvSettings()

    parser = argparse.ArgumentParser(description="mirrorboard - modular information dashboard")
    parser.add_argument(
        "--config",
        default=settings.config_path,
        help=f"Path to the JSON configuration (default: {settings.config_path})",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Web server host (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Web server port (default: {settings.port})",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Console log level before the configuration applies (default: {settings.log_level})",
    )
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    shared_state = setup_web_logging()

    log.info("=" * 50)
    log.info("mirrorboard Starting...")
    log.info("=" * 50)

    kernel = Kernel(load_config(args.config))

    try:
        asyncio.run(run(kernel, args.host, args.port, shared_state))
    except KeyboardInterrupt:
        log.info("Shutdown requested...")

    log.info("mirrorboard shutdown complete.")


if __name__ == "__main__":
    main()
