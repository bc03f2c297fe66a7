"""Rich console output and JSON file save for generated puzzles."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.table import Table

from src.models import Puzzle

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def puzzle_path(output_dir: Path, puzzle_id: str) -> Path:
    return output_dir / f"{puzzle_id}.json"


def puzzle_exists(output_dir: Path, puzzle_id: str) -> bool:
    return puzzle_path(output_dir, puzzle_id).exists()


def print_puzzle(puzzle: Puzzle, title: str | None = None) -> None:
    """Render the question and its point table to the console."""
    table = Table(title=title or puzzle.question, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Answer", style="bold")
    table.add_column("Points", justify="right", style="green")
    for rank, answer in enumerate(puzzle.answers, start=1):
        table.add_row(str(rank), answer.answer, str(answer.points))
    if title:
        console.print(f"[italic]{puzzle.question}[/italic]")
    console.print(table)
    console.print(f"[dim]Topic: {puzzle.topic} | Total: {sum(a.points for a in puzzle.answers)}[/dim]")


def save_puzzle(puzzle: Puzzle, output_dir: Path, puzzle_id: str) -> Path:
    """Write the puzzle as JSON to <output_dir>/<puzzle_id>.json.

    The file carries the storage shape ({question, answers}) plus the
    puzzle id, topic and generation timestamp.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    payload = {
        "puzzle_id": puzzle_id,
        "topic": puzzle.topic,
        "generated_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        **puzzle.to_dict(),
    }
    filepath = puzzle_path(output_dir, puzzle_id)
    filepath.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Puzzle saved to: %s", filepath)
    return filepath
