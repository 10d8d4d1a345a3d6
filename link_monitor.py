#!/usr/bin/env python3
"""
Link Monitor - headless network link monitor.

Pings a host continuously, runs periodic speedtests and keeps the results
in a local SQLite time-series store until stopped with SIGINT or SIGTERM.
"""
import argparse
import signal
import sys
import threading
from pathlib import Path

from app.controller import MonitorController
from app.dependencies import create_dependencies
from config import APP_NAME, APP_VERSION, STORAGE, get_logger, setup_logging

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="link-monitor", description=f"{APP_NAME} {APP_VERSION}")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path.home() / STORAGE.DATA_DIR_NAME,
        help="directory for the database, settings and logs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Entry point for the application."""
    args = parse_args(argv)

    setup_logging(data_dir=args.data_dir, debug=args.debug, console_output=True)
    logger.info(f"{APP_NAME} {APP_VERSION} starting...")

    shutdown = threading.Event()

    def signal_handler(signum, frame):
        """Handle SIGTERM/SIGINT by requesting a clean shutdown."""
        logger.info(f"Received signal {signum}, shutting down...")
        shutdown.set()

    # Register signal handlers for graceful shutdown
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    deps = create_dependencies(data_dir=args.data_dir)
    controller = MonitorController(deps)
    try:
        controller.start()
        while not shutdown.wait(1.0):
            pass
    except Exception as e:
        logger.critical(f"Application crashed: {e}", exc_info=True)
        raise
    finally:
        controller.stop()
        deps.event_bus.shutdown()
        logger.info(f"{APP_NAME} stopped")

    return 0


if __name__ == "__main__":
    sys.exit(main())
