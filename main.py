"""Entry point for the GELF UDP server."""

import logging
import signal
import sys
import threading

from gelf_reader.config import load_config
from gelf_reader.dashboard import create_dashboard_app, run_dashboard
from gelf_reader.server import GELFUDPServer


def main(argv=None):
    config = load_config(argv)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    server = GELFUDPServer(config, shutdown_event)

    if config.dashboard_enabled:
        app = create_dashboard_app(server.metrics, server.error_tracker)
        dash_thread = threading.Thread(
            target=run_dashboard, args=(app, config.dashboard_port), daemon=True,
        )
        dash_thread.start()
        logger.info("Dashboard running on port %d", config.dashboard_port)

    try:
        server.start()
    finally:
        server.stop()


if __name__ == "__main__":
    main()
