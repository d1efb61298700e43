"""
ETH Price Tracker — Entry point.
Configures logging, starts the tracker and its dashboard, handles shutdown.
"""

from __future__ import annotations
import asyncio
import os
import sys
import signal
from typing import Optional
import logging

from dotenv import load_dotenv

# Load .env file before anything else
load_dotenv()

from config import TrackerConfig
from core.tracker import Tracker
from dashboard import Dashboard

logger = logging.getLogger(__name__)


def setup_logging(config: TrackerConfig):
    """stdout + log file; the dashboard tails the file."""
    log_dir = os.path.dirname(config.dashboard.log_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(config.dashboard.log_path),
        ],
    )
    # aiohttp logs every request at INFO otherwise
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


async def main():
    """Entry point."""
    config = TrackerConfig.from_env()
    setup_logging(config)

    tracker = Tracker(config)
    dashboard = Dashboard(
        tracker,
        host=config.dashboard.host,
        port=config.dashboard.port,
        log_path=config.dashboard.log_path,
    )
    stopped = asyncio.Event()
    startup: Optional[asyncio.Task] = None
    loop = asyncio.get_running_loop()
    handled_signals = (signal.SIGINT, signal.SIGTERM) if sys.platform != "win32" else ()

    # Graceful shutdown handler
    def handle_signal(sig):
        logger.info(f"Received signal {sig}. Initiating shutdown...")
        stopped.set()

    for sig in handled_signals:
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))

    def on_startup_done(task: asyncio.Task):
        if not task.cancelled() and task.exception() is not None:
            logger.critical(f"Startup failed: {task.exception()}")
            stopped.set()

    try:
        await dashboard.start()
        # Startup runs as a task so a signal can interrupt a slow fetch
        startup = asyncio.create_task(tracker.start(), name="startup")
        startup.add_done_callback(on_startup_done)
        await stopped.wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Interrupted in main loop.")
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        for sig in handled_signals:
            loop.remove_signal_handler(sig)
        if startup is not None and not startup.done():
            startup.cancel()
            try:
                await startup
            except asyncio.CancelledError:
                pass
        # Dashboard first, so no request can reach a stopped tracker
        await dashboard.stop()
        await tracker.stop()


if __name__ == "__main__":
    asyncio.run(main())
