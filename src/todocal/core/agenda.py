"""Pure day-summary assembly and formatting - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date

from .dates import format_date_key
from .occurrences import OccurrenceView


@dataclass
class DaySummary:
    """A resolved day ready for display."""

    date: date
    items: list[OccurrenceView]

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def completed(self) -> int:
        return sum(1 for item in self.items if item.completed)

    @property
    def progress(self) -> float:
        """Completed share in percent; 0 for an empty day."""
        if not self.items:
            return 0.0
        return self.completed / self.total * 100

    def status_line(self) -> str:
        if not self.items:
            return "No tasks for this day."
        return f"{self.completed} of {self.total} completed"


def format_duration(seconds: int) -> str:
    """Format seconds as `Xh Ym Zs`."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h {minutes}m {secs}s"


def format_view_line(item: OccurrenceView) -> str:
    """
    Format a single day item as one line.

    Pure function - no I/O.
    """
    check = "x" if item.completed else " "
    repeat = f" ({item.recurrence.value})" if item.recurrence else ""
    timer = " [running]" if item.is_timer_active else ""
    return (
        f"[{check}] {item.text}{repeat}{timer}  "
        f"today {format_duration(item.time_today)}, "
        f"month {format_duration(item.time_this_month)}  #{item.id[:8]}"
    )


def view_to_dict(item: OccurrenceView) -> dict:
    """JSON-ready form of a day item."""
    return {
        "id": item.id,
        "text": item.text,
        "created_at": format_date_key(item.task.created_at),
        "recurrence": item.recurrence.value if item.recurrence else None,
        "completed": item.completed,
        "time_today": item.time_today,
        "time_this_month": item.time_this_month,
        "is_timer_active": item.is_timer_active,
        "active_session_id": item.active_session_id,
    }
