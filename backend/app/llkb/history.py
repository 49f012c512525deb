"""
History Log - Append-only record of learning events

One JSON object per line in history/YYYY-MM-DD.jsonl (local date).
Lines are never rewritten; whole files are removed once they age past
the retention window.
"""

import json
import logging
import re
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import DEFAULT_HISTORY_RETENTION_DAYS
from .models import HistoryEvent
from .storage import HISTORY_DIRNAME

logger = logging.getLogger(__name__)

HISTORY_FILE_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})\.jsonl$")


def get_history_dir(llkb_root) -> Path:
    return Path(llkb_root) / HISTORY_DIRNAME


def format_date(day: Optional[date] = None) -> str:
    return (day or date.today()).strftime("%Y-%m-%d")


def get_history_file_path(llkb_root, day: Optional[date] = None) -> Path:
    return get_history_dir(llkb_root) / f"{format_date(day)}.jsonl"


def history_file_date(path: Path) -> Optional[date]:
    """Date encoded in a history filename, or None for foreign files."""
    match = HISTORY_FILE_PATTERN.match(path.name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), "%Y-%m-%d").date()
    except ValueError:
        return None


def list_history_files(llkb_root) -> List[Path]:
    """History files sorted oldest first."""
    history_dir = get_history_dir(llkb_root)
    if not history_dir.is_dir():
        return []
    return sorted(p for p in history_dir.glob("*.jsonl") if history_file_date(p) is not None)


def append_to_history(event: HistoryEvent, llkb_root) -> bool:
    """Append one event line to today's file; False if the write failed."""
    try:
        path = get_history_file_path(llkb_root)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(event.to_json_dict(), ensure_ascii=False) + "\n")
        return True
    except OSError as e:
        logger.warning(f"[HISTORY] Failed to append to history: {e}")
        return False


def read_history_file(path) -> List[Dict[str, Any]]:
    path = Path(path)
    if not path.is_file():
        return []

    events = []
    for line_no, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            events.append(json.loads(line))
        except json.JSONDecodeError:
            logger.warning(f"[HISTORY] Skipping malformed line {line_no} in {path}")
    return events


def read_today_history(llkb_root) -> List[Dict[str, Any]]:
    return read_history_file(get_history_file_path(llkb_root))


def count_today_events(llkb_root, event_type: Optional[str] = None,
                       where: Optional[Callable[[Dict[str, Any]], bool]] = None) -> int:
    count = 0
    for event in read_today_history(llkb_root):
        if event_type and event.get("event") != event_type:
            continue
        if where and not where(event):
            continue
        count += 1
    return count


def get_history_files_in_range(llkb_root, start: date, end: date) -> List[Path]:
    return [p for p in list_history_files(llkb_root) if start <= history_file_date(p) <= end]


def cleanup_old_history_files(llkb_root,
                              retention_days: int = DEFAULT_HISTORY_RETENTION_DAYS,
                              today: Optional[date] = None) -> Tuple[List[str], List[str]]:
    """
    Delete history files dated before today - retention_days.

    Returns (deleted paths, errors); a file that cannot be removed is
    reported and the rest are still processed.
    """
    cutoff = (today or date.today()) - timedelta(days=retention_days)
    deleted: List[str] = []
    errors: List[str] = []

    for path in list_history_files(llkb_root):
        if history_file_date(path) >= cutoff:
            continue
        try:
            path.unlink()
            deleted.append(str(path))
        except OSError as e:
            errors.append(f"Failed to delete {path.name}: {e}")

    if deleted:
        logger.info(f"[HISTORY] Removed {len(deleted)} history file(s) older than {retention_days} days")
    return deleted, errors
