"""Timed work sessions - no I/O dependencies."""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Iterator

from .dates import format_date_key, to_date_key, utc_now

logger = logging.getLogger(__name__)


def parse_timestamp(raw: str | datetime) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if isinstance(raw, str):
        raw = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if raw.tzinfo is None:
        raw = raw.replace(tzinfo=timezone.utc)
    return raw


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, never negative."""
    return max(0, int((end - start).total_seconds()))


@dataclass(frozen=True)
class TimeSession:
    """A timed work interval. Open while `end_time` is None."""

    id: str
    task_id: str
    session_date: date
    start_time: datetime
    end_time: datetime | None = None
    duration_seconds: int | None = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @classmethod
    def open(cls, task_id: str, session_date: date, start_time: datetime | None = None) -> "TimeSession":
        return cls(
            id=str(uuid.uuid4()),
            task_id=task_id,
            session_date=session_date,
            start_time=parse_timestamp(start_time or utc_now()),
        )

    def closed(self, end_time: datetime) -> "TimeSession":
        """Closed copy with the duration frozen at `end_time`."""
        end_time = parse_timestamp(end_time)
        return replace(
            self,
            end_time=end_time,
            duration_seconds=seconds_between(self.start_time, end_time),
        )

    def elapsed_seconds(self, now: datetime | None = None) -> int:
        """
        Seconds counted by this session as of `now`.

        Closed sessions report their frozen duration; open ones are measured
        live and nothing is stored.
        """
        if not self.is_open:
            return self.duration_seconds or 0
        return seconds_between(self.start_time, parse_timestamp(now or utc_now()))

    @classmethod
    def from_record(cls, data: dict) -> "TimeSession":
        """Create TimeSession from a stored row (`time_sessions` table shape)."""
        end = data.get("end_time")
        duration = data.get("duration_seconds")
        return cls(
            id=str(data["id"]),
            task_id=str(data["todo_id"]),
            session_date=to_date_key(data["session_date"]),
            start_time=parse_timestamp(data["start_time"]),
            end_time=parse_timestamp(end) if end else None,
            duration_seconds=int(duration) if duration is not None else None,
        )

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "todo_id": self.task_id,
            "session_date": format_date_key(self.session_date),
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": self.duration_seconds,
        }


class SessionLedger:
    """
    Append-only log of sessions per task.

    The only in-place change allowed is closing an open session.
    """

    def __init__(self, sessions: list[TimeSession] | None = None):
        self._sessions: dict[str, TimeSession] = {}
        for session in sessions or []:
            self.append(session)

    def __iter__(self) -> Iterator[TimeSession]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)

    def append(self, session: TimeSession) -> None:
        self._sessions[session.id] = session

    def open_sessions(self) -> list[TimeSession]:
        return [s for s in self._sessions.values() if s.is_open]

    def open_session_for(self, task_id: str) -> TimeSession | None:
        for session in self._sessions.values():
            if session.task_id == task_id and session.is_open:
                return session
        return None

    def replace_closed(self, session: TimeSession) -> None:
        """Swap an open session for its closed copy."""
        current = self._sessions.get(session.id)
        if current is None or not current.is_open:
            raise ValueError(f"Session {session.id} is not open")
        if session.is_open:
            raise ValueError(f"Session {session.id} has no end time")
        self._sessions[session.id] = session

    def remove_task(self, task_id: str) -> int:
        """Drop all sessions of a task. Returns how many were removed."""
        ids = [s.id for s in self._sessions.values() if s.task_id == task_id]
        for session_id in ids:
            del self._sessions[session_id]
        if ids:
            logger.debug(f"Dropped {len(ids)} sessions for task {task_id}")
        return len(ids)
