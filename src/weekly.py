"""Batch generation: one puzzle per day for the coming days."""

import logging
import random
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from src.output import puzzle_exists, save_puzzle
from src.puzzle import PuzzleGenerator

logger = logging.getLogger(__name__)


def puzzle_id_for_date(day: date) -> str:
    return f"puzzle-{day:%Y-%m-%d}"


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


async def generate_week(
    generator: PuzzleGenerator,
    topics: list[str],
    output_dir: Path,
    start: date | None = None,
    days: int = 7,
    rng: random.Random | None = None,
) -> list[Path]:
    """Generate and save puzzles for `days` consecutive dates starting at `start`.

    Dates that already have a saved puzzle are skipped. Topics are drawn at
    random without reuse; the pool refills once exhausted. A topic whose
    generation failed goes back into the pool.

    Returns:
        Paths of the puzzles saved by this run.
    """
    rng = rng or random.Random()
    start = start or today_utc()
    available = list(topics)
    saved: list[Path] = []

    for offset in range(days):
        target = start + timedelta(days=offset)
        puzzle_id = puzzle_id_for_date(target)
        logger.info("Processing day %d/%d: %s", offset + 1, days, puzzle_id)

        if puzzle_exists(output_dir, puzzle_id):
            logger.info("Puzzle %s already exists, skipping", puzzle_id)
            continue

        if not available:
            if not topics:
                logger.error("No topics configured, stopping")
                break
            logger.warning("Ran out of unique topics, reusing the full list")
            available = list(topics)

        topic = available.pop(rng.randrange(len(available)))
        logger.info("Selected topic for %s: %r", puzzle_id, topic)

        puzzle = await generator.assemble(topic)
        if puzzle is None:
            logger.error("Failed to generate puzzle for topic %r", topic)
            available.append(topic)
            continue

        saved.append(save_puzzle(puzzle, output_dir, puzzle_id))

    logger.info("Batch finished: %d puzzle(s) saved", len(saved))
    return saved
