"""Pure task domain logic - no I/O dependencies."""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterator

from .dates import format_date_key, to_date_key
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class Recurrence(Enum):
    """How a task repeats after its anchor date."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, raw: "str | Recurrence | None") -> "Recurrence | None":
        """Parse a stored or user-supplied value. `None`, "" and "none" mean one-off."""
        if raw is None or isinstance(raw, Recurrence):
            return raw
        value = raw.strip().lower()
        if value in ("", "none", "once"):
            return None
        try:
            return cls(value)
        except ValueError as e:
            raise ValidationError(f"Unknown recurrence: {raw!r}") from e


@dataclass(frozen=True)
class Task:
    """A task definition. The anchor date `created_at` never changes."""

    id: str
    text: str
    created_at: date
    recurrence: Recurrence | None = None

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    @classmethod
    def new(
        cls,
        text: str,
        created_at: date | str,
        recurrence: "str | Recurrence | None" = None,
    ) -> "Task":
        """Build a task with a fresh id, validating the text first."""
        return cls(
            id=str(uuid.uuid4()),
            text=validate_text(text),
            created_at=to_date_key(created_at),
            recurrence=Recurrence.parse(recurrence),
        )

    @classmethod
    def from_record(cls, data: dict) -> "Task":
        """Create Task from a stored row (`todos` table shape)."""
        return cls(
            id=str(data["id"]),
            text=data["text"],
            created_at=to_date_key(data.get("created_at") or data["createdAt"]),
            recurrence=Recurrence.parse(data.get("recurrence")),
        )

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "created_at": format_date_key(self.created_at),
            "recurrence": self.recurrence.value if self.recurrence else None,
        }


def validate_text(text: str | None) -> str:
    """Strip task text; reject it when nothing is left."""
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError("Task text must not be empty")
    return cleaned


class TaskStore:
    """
    In-memory collection of task definitions keyed by id.

    Iteration follows insertion order, which is the order the day view keeps.
    """

    def __init__(self, tasks: list[Task] | None = None):
        self._tasks: dict[str, Task] = {}
        for task in tasks or []:
            self.insert(task)

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._tasks.values()))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def add(
        self,
        text: str,
        created_at: date | str,
        recurrence: "str | Recurrence | None" = None,
    ) -> Task:
        """Create and store a new task anchored on `created_at`."""
        task = Task.new(text, created_at, recurrence)
        self.insert(task)
        return task

    def insert(self, task: Task) -> None:
        """Store a task that already has an id (e.g. returned by a record store)."""
        self._tasks[task.id] = task
        logger.debug(f"Task stored id={task.id} recurrence={task.recurrence}")

    def get(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise NotFoundError(f"No task with id {task_id}") from None

    def remove(self, task_id: str) -> Task:
        """Remove every occurrence of a task by deleting its definition."""
        task = self.get(task_id)
        del self._tasks[task_id]
        return task
