"""Main entry point: load the engine and report what is due."""
import asyncio
import logging
import sys

from wordmaster.app import LearningEngine
from wordmaster.config import ensure_directories, settings
from wordmaster.logging_config import setup_logging
from wordmaster.monitoring import start_monitoring

logger = logging.getLogger(__name__)


async def main() -> None:
    """Start the engine and log the next session's words."""
    engine = LearningEngine()
    try:
        await engine.start()
        forecast = engine.scheduler.forecast()
        logger.info(f"Due now: {forecast['due_now']}, due this week: {forecast['due_this_week']}, "
                    f"never reviewed: {forecast['new']}")
        words = engine.select_for_session()
        logger.info(f"Next session: {', '.join(words)}")
        for recommendation in engine.recommendations():
            logger.info(f"[{recommendation['priority']}] {recommendation['message']}")
        for unlock in engine.get_unlocked_achievements():
            logger.info(f"Unlocked: {unlock.id} at {unlock.unlocked_at:%Y-%m-%d}")
    finally:
        engine.stop()


def run() -> None:
    """Run the report."""
    setup_logging("Starting WordMaster learning engine")
    ensure_directories()
    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(1)


if __name__ == "__main__":
    run()
