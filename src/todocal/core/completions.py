"""Per-day completion index - no I/O dependencies."""

from datetime import date
from typing import Iterable


class CompletionIndex:
    """
    Sparse mapping of day -> ids of tasks completed on that day.

    A day with no completed tasks is never kept as an empty set.
    """

    def __init__(self):
        self._days: dict[date, set[str]] = {}

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, date]]) -> "CompletionIndex":
        """Build from `(task_id, day)` rows as listed by a record store."""
        index = cls()
        for task_id, day in pairs:
            index.mark(day, task_id)
        return index

    def __len__(self) -> int:
        return sum(len(ids) for ids in self._days.values())

    def days(self) -> list[date]:
        return sorted(self._days)

    def pairs(self) -> list[tuple[str, date]]:
        return [(task_id, day) for day in self.days() for task_id in sorted(self._days[day])]

    def is_complete(self, day: date, task_id: str) -> bool:
        return task_id in self._days.get(day, ())

    def completed_ids(self, day: date) -> frozenset[str]:
        return frozenset(self._days.get(day, ()))

    def mark(self, day: date, task_id: str) -> None:
        self._days.setdefault(day, set()).add(task_id)

    def unmark(self, day: date, task_id: str) -> None:
        ids = self._days.get(day)
        if ids is None:
            return
        ids.discard(task_id)
        if not ids:
            del self._days[day]

    def toggle(self, day: date, task_id: str) -> bool:
        """Flip completion of a task on a day. Returns the new state."""
        if self.is_complete(day, task_id):
            self.unmark(day, task_id)
            return False
        self.mark(day, task_id)
        return True

    def remove_task(self, task_id: str) -> list[date]:
        """Drop a task id from every day. Returns the days it was removed from."""
        touched = [day for day, ids in self._days.items() if task_id in ids]
        for day in touched:
            self.unmark(day, task_id)
        return touched

    def snapshot(self) -> dict[date, frozenset[str]]:
        return {day: frozenset(ids) for day, ids in self._days.items()}
