"""Topic inbox: markdown files queued for puzzle generation."""

import shutil
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

import frontmatter


@dataclass
class TopicRequest:
    path: Path
    topic: str
    day: date | None = None
    question_model: str | None = None


def _parse_day(value: object, path: Path) -> date | None:
    # YAML already turns bare YYYY-MM-DD into a date; quoted values arrive as str.
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"{path.name}: invalid date {value!r}, expected YYYY-MM-DD") from exc


def pending_requests(inbox_dir: Path) -> list[Path]:
    """Topic files waiting in inbox_dir, oldest first. Creates the folder if missing."""
    inbox_dir.mkdir(parents=True, exist_ok=True)
    return sorted(inbox_dir.glob("*.md"), key=lambda p: p.stat().st_mtime)


def load_request(path: Path) -> TopicRequest:
    """Read a topic file.

    The body is the topic. Optional frontmatter keys: `date` (picks the
    puzzle id) and `question_model`.

    Raises:
        ValueError: If the body is empty or the date is malformed.
    """
    post = frontmatter.load(str(path))
    topic = post.content.strip()
    if not topic:
        raise ValueError(f"{path.name}: no topic in file body")
    model = post.metadata.get("question_model")
    return TopicRequest(
        path=path,
        topic=topic,
        day=_parse_day(post.metadata.get("date"), path),
        question_model=str(model) if model else None,
    )


def archive_request(path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move a processed topic file into archive_dir with a timestamp prefix."""
    archive_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%dT%H%M")
    dest = archive_dir / f"{'FAILED_' if failed else ''}{stamp}_{path.name}"
    shutil.move(str(path), str(dest))
    return dest
