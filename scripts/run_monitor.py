"""Run the capacity monitor until interrupted."""

import asyncio
import logging
import signal
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from capacity_watch.config import get_settings
from capacity_watch.service import CapacityWatchService

logger = logging.getLogger(__name__)


async def main():
    """Start the scheduler and keep sweeping until SIGINT/SIGTERM."""
    # Load settings
    try:
        settings = get_settings()
    except Exception as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Failed to load settings: {e}")
        logger.error("Please ensure all required environment variables are set")
        sys.exit(1)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    resource_ids = ", ".join(settings.resource_types)
    logger.info(f"Watching resource types: {resource_ids}")
    logger.info(f"Regions: {', '.join(settings.regions_to_check) or 'all'}")
    logger.info(f"Check interval: {settings.check_interval_seconds:g} seconds")
    logger.info(f"Dry run mode: {settings.dry_run_mode}")

    service = CapacityWatchService.from_settings(settings)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    service.start()
    logger.info("Monitor started, waiting for sweeps...")
    try:
        await stop_event.wait()
    finally:
        logger.info("Monitor shutting down...")
        await service.shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
