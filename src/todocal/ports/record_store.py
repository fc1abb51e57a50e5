"""Record store interface."""

from datetime import date, datetime
from typing import Protocol

from todocal.core.sessions import TimeSession
from todocal.core.tasks import Recurrence, Task


class RecordStore(Protocol):
    """
    Interface for persisting tasks, completions and sessions.

    Implementations scope rows to the calling user and raise
    PersistenceError on any failure.
    """

    def list_tasks(self) -> list[Task]:
        """Fetch all task definitions."""
        ...

    def insert_task(self, text: str, created_at: date, recurrence: Recurrence | None = None) -> Task:
        """Persist a new task and return it with its assigned id."""
        ...

    def delete_task(self, task_id: str) -> None:
        """Delete a task definition and its completions."""
        ...

    def list_completions(self) -> list[tuple[str, date]]:
        """Fetch all `(task_id, day)` completion rows."""
        ...

    def insert_completion(self, task_id: str, day: date) -> None:
        ...

    def delete_completion(self, task_id: str, day: date) -> None:
        ...

    def list_sessions(self) -> list[TimeSession]:
        """Fetch all time sessions, open and closed."""
        ...

    def insert_session(self, task_id: str, day: date, start_time: datetime) -> TimeSession:
        """Persist a new open session and return it with its assigned id."""
        ...

    def update_session_close(self, session_id: str, end_time: datetime, duration_seconds: int) -> None:
        """Record the end of a session."""
        ...

    def delete_sessions(self, task_id: str) -> None:
        """Delete every session of a task."""
        ...

    def upsert_tasks(self, tasks: list[Task]) -> None:
        """Write tasks with their existing ids in one call."""
        ...

    def upsert_completions(self, pairs: list[tuple[str, date]]) -> None:
        """Write completion rows in one call, ignoring duplicates."""
        ...

    def has_import_run(self, name: str) -> bool:
        """Check whether a one-time import was already recorded."""
        ...

    def record_import_run(self, name: str) -> None:
        ...
