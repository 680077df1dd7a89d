"""Main entry point: loads the curriculum and reports progress per level."""
import asyncio
import logging
import sys

from vocamaster import __version__
from vocamaster.app import VocaMaster
from vocamaster.config import ensure_directories, settings
from vocamaster.errors import CurriculumError
from vocamaster.logging_config import setup_logging
from vocamaster.monitoring import start_monitoring

logger = logging.getLogger(__name__)


async def main() -> int:
    """Print the completion rate and remaining pool of every level."""
    app = VocaMaster()
    try:
        app.start()
    except CurriculumError as e:
        logger.error(f"Cannot load curriculum: {e}")
        return 1

    try:
        for level in app.word_pool.levels():
            remaining = app.goals.remaining_count(level)
            goal = app.goals.get_goal(level)
            logger.info(
                f"{level}: {app.tracker.completion_rate(level)}% of days completed, "
                f"{remaining} items left, {len(app.word_pool.all_items(level))} in pool"
                + (f", goal D-{app.goals.days_remaining(goal)}" if goal else "")
            )
        logger.info(f"Wrong-answer ledger: {len(app.ledger)} items")
    finally:
        await app.stop()
    return 0


if __name__ == "__main__":
    ensure_directories()
    setup_logging(f"Starting VocaMaster v{__version__} ...")
    if settings.monitoring.metrics_port:
        start_monitoring(settings.monitoring.metrics_port)
        logger.info(f"Metrics exported on port {settings.monitoring.metrics_port}")
    sys.exit(asyncio.run(main()))
