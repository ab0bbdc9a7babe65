"""Script to run a single availability sweep and print the results."""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from capacity_watch.config import get_settings
from capacity_watch.service import CapacityWatchService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def main():
    """Run one sweep without starting the scheduler."""
    # Load settings
    try:
        settings = get_settings()
    except Exception as e:
        logger.error(f"Failed to load settings: {e}")
        logger.error("Please ensure all required environment variables are set")
        sys.exit(1)

    logger.info("Manual availability check")
    logger.info(f"Regions: {', '.join(settings.regions_to_check) or 'all'}")

    service = CapacityWatchService.from_settings(settings)
    try:
        outcome = await service.trigger_check()
    finally:
        await service.shutdown()

    logger.info("=" * 60)
    logger.info("Check completed")
    logger.info("=" * 60)
    logger.info(f"Result: {outcome}")
    for result in outcome.results.values():
        logger.info(f"  {result}")
        for region in result.regions or []:
            logger.info(f"    - {region.region}: {region.capacity}")
    if outcome.sweep_error:
        logger.error(f"Sweep error: {outcome.sweep_error}")
        sys.exit(1)


if __name__ == "__main__":
    print("=" * 60)
    print("GPU Capacity Watch - Manual Check")
    print("=" * 60)
    print()
    asyncio.run(main())
