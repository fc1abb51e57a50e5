"""Recurrence expansion and time aggregation - no I/O dependencies."""

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from .completions import CompletionIndex
from .dates import same_month, utc_day_of_month, utc_midnight, utc_now, utc_weekday
from .sessions import TimeSession
from .tasks import Recurrence, Task


@dataclass(frozen=True)
class OccurrenceView:
    """A task as it appears on one day, with completion and time totals."""

    task: Task
    day: date
    completed: bool
    time_today: int = 0
    time_this_month: int = 0
    is_timer_active: bool = False
    active_session_id: str | None = None

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def text(self) -> str:
        return self.task.text

    @property
    def recurrence(self) -> Recurrence | None:
        return self.task.recurrence


def is_due(task: Task, day: date) -> bool:
    """
    Whether a task occurs on `day`.

    One-off tasks occur only on their anchor day. Recurring tasks never occur
    before the anchor; from then on daily always matches, weekly matches the
    anchor's weekday and monthly the anchor's day of month. Short months have
    no occurrence for a day they do not contain.
    """
    anchor = utc_midnight(task.created_at)
    target = utc_midnight(day)

    if task.recurrence is None:
        return anchor == target
    if anchor > target:
        return False

    match task.recurrence:
        case Recurrence.DAILY:
            return True
        case Recurrence.WEEKLY:
            return utc_weekday(task.created_at) == utc_weekday(day)
        case Recurrence.MONTHLY:
            return utc_day_of_month(task.created_at) == utc_day_of_month(day)
    return False


def _sessions_by_task(sessions: Iterable[TimeSession]) -> dict[str, list[TimeSession]]:
    grouped: dict[str, list[TimeSession]] = {}
    for session in sessions:
        grouped.setdefault(session.task_id, []).append(session)
    return grouped


def aggregate_time(
    sessions: list[TimeSession],
    day: date,
    now: datetime,
) -> tuple[int, int, TimeSession | None]:
    """
    Sum one task's sessions for a day and its month.

    Closed sessions count by `session_date`; the open session (if any) adds
    its live elapsed time to both totals whatever its own date.

    Returns: (time_today, time_this_month, open_session)
    """
    today = 0
    month = 0
    open_session = None
    for session in sessions:
        if session.is_open:
            open_session = session
            continue
        duration = session.duration_seconds or 0
        if session.session_date == day:
            today += duration
        if same_month(session.session_date, day):
            month += duration

    if open_session is not None:
        running = open_session.elapsed_seconds(now)
        today += running
        month += running
    return today, month, open_session


def resolve(
    day: date,
    tasks: Iterable[Task],
    completions: CompletionIndex,
    sessions: Iterable[TimeSession],
    now: datetime | None = None,
) -> list[OccurrenceView]:
    """
    Build the view records for every task due on `day`.

    Pure function - no I/O. Keeps the order of `tasks`; a task id is emitted
    at most once.
    """
    now = now or utc_now()
    by_task = _sessions_by_task(sessions)
    seen: set[str] = set()
    views = []

    for task in tasks:
        if task.id in seen or not is_due(task, day):
            continue
        seen.add(task.id)

        today, month, open_session = aggregate_time(by_task.get(task.id, []), day, now)
        views.append(
            OccurrenceView(
                task=task,
                day=day,
                completed=completions.is_complete(day, task.id),
                time_today=today,
                time_this_month=month,
                is_timer_active=open_session is not None,
                active_session_id=open_session.id if open_session else None,
            )
        )
    return views


def has_occurrence_on(day: date, tasks: Iterable[Task]) -> bool:
    """Whether any task occurs on `day`."""
    return any(is_due(t, day) for t in tasks)


def days_with_occurrences(year: int, month: int, tasks: Iterable[Task]) -> set[date]:
    """Days of a month that carry at least one occurrence (calendar markers)."""
    tasks = list(tasks)
    _, last = calendar.monthrange(year, month)
    days = (date(year, month, d) for d in range(1, last + 1))
    return {d for d in days if has_occurrence_on(d, tasks)}
