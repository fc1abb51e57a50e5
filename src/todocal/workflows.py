"""Workflow layer between the record store, the core and the CLI.

Every mutation runs in the same order: validate, call the record store, then
update the in-memory state. A store failure propagates before anything local
changes.
"""

import json
import logging
from datetime import date, datetime
from enum import Enum
from pathlib import Path

from .adapters import FileRecordStore, SupabaseRecordStore
from .config import DATA_DIR, Config
from .core.agenda import DaySummary
from .core.completions import CompletionIndex
from .core.dates import utc_now
from .core.errors import NotFoundError, PersistenceError, ValidationError
from .core.legacy import IMPORT_NAME, ImportResult, parse_legacy_completions, parse_legacy_tasks
from .core.occurrences import OccurrenceView, days_with_occurrences, resolve
from .core.sessions import SessionLedger, TimeSession
from .core.tasks import Recurrence, Task, TaskStore, validate_text
from .core.timer import TimerController
from .ports import RecordStore

logger = logging.getLogger(__name__)


class DeleteResult(Enum):
    """Outcome of a delete request."""

    DELETED = "deleted"
    CONFIRMATION_REQUIRED = "confirmation_required"
    NOT_FOUND = "not_found"


def get_store(config: Config) -> RecordStore:
    """Resolve the record store backend from config."""
    match config.backend:
        case "file" | "":
            path = Path(config.data_file).expanduser() if config.data_file else DATA_DIR / "todocal.json"
            return FileRecordStore(path)
        case "supabase":
            return SupabaseRecordStore(config)
    raise ValueError(f"Unknown BACKEND: {config.backend!r} (expected 'file' or 'supabase')")


def build_service(config: Config) -> "TodoService":
    """Create a service for the configured backend and load its records."""
    service = TodoService(get_store(config), cascade_sessions=config.cascade_sessions)
    service.load()
    return service


class TodoService:
    """
    Day view and mutations over one record store.

    Holds the in-memory TaskStore, CompletionIndex and SessionLedger; the
    local copies change only after the store confirms a write.
    """

    def __init__(self, store: RecordStore, cascade_sessions: bool = False):
        self.store = store
        self.cascade_sessions = cascade_sessions
        self.tasks = TaskStore()
        self.completions = CompletionIndex()
        self.sessions = SessionLedger()
        self.timer = TimerController(self.sessions)

    def load(self) -> None:
        """Fetch every record; local state is replaced only if all fetches succeed."""
        tasks = self.store.list_tasks()
        pairs = self.store.list_completions()
        sessions = self.store.list_sessions()

        self.tasks = TaskStore(tasks)
        self.completions = CompletionIndex.from_pairs(pairs)
        self.sessions = SessionLedger(sessions)
        self.timer = TimerController(self.sessions)
        logger.debug(
            f"Loaded {len(self.tasks)} tasks, {len(self.completions)} completions, "
            f"{len(self.sessions)} sessions"
        )

    # ============== Reads ==============

    def resolve(self, day: date, now: datetime | None = None) -> list[OccurrenceView]:
        """The day's task list - the only read path for a day."""
        return resolve(day, self.tasks, self.completions, self.sessions, now)

    def summary(self, day: date, now: datetime | None = None) -> DaySummary:
        return DaySummary(date=day, items=self.resolve(day, now))

    def month_markers(self, year: int, month: int) -> set[date]:
        return days_with_occurrences(year, month, self.tasks)

    # ============== Tasks ==============

    def add_task(self, text: str, day: date, recurrence: "str | Recurrence | None" = None) -> Task:
        """Create a task anchored on `day`."""
        text = validate_text(text)
        recurrence = Recurrence.parse(recurrence)
        task = self.store.insert_task(text, day, recurrence)
        self.tasks.insert(task)
        logger.info(f"Added task {task.id} on {day} recurrence={recurrence}")
        return task

    def delete_task(self, task_id: str, confirmed: bool = False) -> DeleteResult:
        """
        Delete a task and all of its occurrences.

        A recurring task is only deleted with `confirmed=True`; otherwise
        nothing changes and CONFIRMATION_REQUIRED is returned. Session
        cleanup runs only once the task itself is gone from the store.
        """
        try:
            task = self.tasks.get(task_id)
        except NotFoundError:
            logger.debug(f"Delete ignored, unknown task {task_id}")
            return DeleteResult.NOT_FOUND

        if task.is_recurring and not confirmed:
            return DeleteResult.CONFIRMATION_REQUIRED

        self.store.delete_task(task_id)
        self.tasks.remove(task_id)
        self.completions.remove_task(task_id)
        logger.info(f"Deleted task {task_id}")

        # A running timer on a deleted task would block every other timer.
        self.stop_timer(task_id)

        if self.cascade_sessions:
            self.store.delete_sessions(task_id)
            self.sessions.remove_task(task_id)
        return DeleteResult.DELETED

    # ============== Completions ==============

    def toggle_completion(self, day: date, task_id: str) -> bool | None:
        """Flip completion for a task on a day. Unknown ids are a no-op (None)."""
        if task_id not in self.tasks:
            logger.debug(f"Toggle ignored, unknown task {task_id}")
            return None

        if self.completions.is_complete(day, task_id):
            self.store.delete_completion(task_id, day)
        else:
            self.store.insert_completion(task_id, day)
        return self.completions.toggle(day, task_id)

    # ============== Timers ==============

    def start_timer(self, task_id: str, day: date, now: datetime | None = None) -> TimeSession:
        """Start timing a task, booked on `day`. Raises ConflictError if a timer runs."""
        self.tasks.get(task_id)
        self.timer.ensure_idle()
        session = self.store.insert_session(task_id, day, now or utc_now())
        return self.timer.track(session)

    def stop_timer(self, task_id: str, now: datetime | None = None) -> TimeSession | None:
        """Stop a task's timer. No-op (None) when it is not running."""
        closed = self.timer.closing(task_id, now)
        if closed is None:
            logger.debug(f"Stop ignored, no running timer for {task_id}")
            return None
        self.store.update_session_close(closed.id, closed.end_time, closed.duration_seconds)
        return self.timer.commit_close(closed)

    # ============== Legacy import ==============

    def import_legacy(self, path: Path | str) -> ImportResult:
        """
        Move a legacy local record into the store, once.

        Tasks and completions are each written in a single bulk call. The
        legacy file is removed only after both writes and the import marker
        succeed.
        """
        path = Path(path).expanduser()
        if not path.exists():
            return ImportResult(success=True, skipped=True)

        try:
            if self.store.has_import_run(IMPORT_NAME):
                logger.info(f"Legacy import already recorded, leaving {path} untouched")
                return ImportResult(success=True, skipped=True)

            data = json.loads(path.read_text())
            tasks = parse_legacy_tasks(data)
            pairs = parse_legacy_completions(data)

            self.store.upsert_tasks(tasks)
            self.store.upsert_completions(pairs)
            self.store.record_import_run(IMPORT_NAME)
        except (OSError, ValueError, KeyError, TypeError, AttributeError, ValidationError, PersistenceError) as e:
            logger.error(f"Legacy import failed: {e}")
            return ImportResult(success=False, error=str(e))

        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Imported, but could not remove {path}: {e}")
        self.load()
        logger.info(f"Imported {len(tasks)} tasks and {len(pairs)} completions from {path}")
        return ImportResult(success=True, tasks_count=len(tasks), completions_count=len(pairs))
