"""Functional core - pure business logic with no I/O."""

from .errors import TodoCalError, ValidationError, ConflictError, NotFoundError, PersistenceError
from .dates import to_date_key, format_date_key, utc_midnight
from .tasks import Task, TaskStore, Recurrence
from .completions import CompletionIndex
from .sessions import TimeSession, SessionLedger
from .timer import TimerController
from .occurrences import OccurrenceView, is_due, resolve, days_with_occurrences
from .agenda import DaySummary, format_duration, format_view_line

__all__ = [
    # Errors
    "TodoCalError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "PersistenceError",
    # Dates
    "to_date_key",
    "format_date_key",
    "utc_midnight",
    # Tasks
    "Task",
    "TaskStore",
    "Recurrence",
    # Completions
    "CompletionIndex",
    # Sessions
    "TimeSession",
    "SessionLedger",
    "TimerController",
    # Occurrences
    "OccurrenceView",
    "is_due",
    "resolve",
    "days_with_occurrences",
    # Agenda
    "DaySummary",
    "format_duration",
    "format_view_line",
]
