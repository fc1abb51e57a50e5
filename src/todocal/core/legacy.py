"""Legacy local record parsing - no I/O dependencies.

The legacy record is a single JSON object with two keys:

    todos            {"YYYY-MM-DD": [{"id", "text", "createdAt", "recurrence"?}, ...]}
    todoCompletions  {"YYYY-MM-DD": ["<task id>", ...]}
"""

from dataclasses import dataclass
from datetime import date

from .dates import to_date_key
from .tasks import Recurrence, Task, validate_text

IMPORT_NAME = "legacy-local-records"


@dataclass
class ImportResult:
    """Outcome of a one-time legacy import."""

    success: bool
    tasks_count: int = 0
    completions_count: int = 0
    error: str | None = None
    skipped: bool = False


def parse_legacy_tasks(data: dict) -> list[Task]:
    """Flatten `todos` (grouped by creation day) into tasks, keeping their ids."""
    tasks = []
    for day_key, items in (data.get("todos") or {}).items():
        for item in items:
            tasks.append(
                Task(
                    id=str(item["id"]),
                    text=validate_text(item.get("text")),
                    created_at=to_date_key(item.get("createdAt") or day_key),
                    recurrence=Recurrence.parse(item.get("recurrence")),
                )
            )
    return tasks


def parse_legacy_completions(data: dict) -> list[tuple[str, date]]:
    """Flatten `todoCompletions` into `(task_id, day)` pairs."""
    pairs = []
    for day_key, ids in (data.get("todoCompletions") or {}).items():
        day = to_date_key(day_key)
        for task_id in ids:
            pairs.append((str(task_id), day))
    return pairs
