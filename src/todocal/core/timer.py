"""Single active timer state machine - no I/O dependencies."""

import logging
from datetime import date, datetime

from .dates import utc_now
from .errors import ConflictError
from .sessions import SessionLedger, TimeSession

logger = logging.getLogger(__name__)


class TimerController:
    """
    Start/stop transitions over a SessionLedger.

    Holds one optional reference to the running session; at most one timer
    runs across all tasks. Each transition is split in two so a caller can
    persist between the check and the local change:

        start: ensure_idle() -> (persist) -> track(session)
        stop:  closing(task_id) -> (persist) -> commit_close(session)
    """

    def __init__(self, ledger: SessionLedger):
        self.ledger = ledger
        self._active: TimeSession | None = None
        self._adopt_open_sessions()

    def _adopt_open_sessions(self) -> None:
        open_sessions = sorted(self.ledger.open_sessions(), key=lambda s: s.start_time)
        if len(open_sessions) > 1:
            logger.warning(
                f"Found {len(open_sessions)} open sessions; treating the latest as active"
            )
        self._active = open_sessions[-1] if open_sessions else None

    @property
    def active(self) -> TimeSession | None:
        return self._active

    def is_running(self, task_id: str) -> bool:
        return self.ledger.open_session_for(task_id) is not None

    def ensure_idle(self) -> None:
        """Raise ConflictError when any timer is running."""
        if self._active is not None:
            raise ConflictError(
                f"Another timer is active (task {self._active.task_id}); stop it first"
            )

    def track(self, session: TimeSession) -> TimeSession:
        """Record a freshly opened session as the active timer."""
        self.ensure_idle()
        if not session.is_open:
            raise ValueError("Only open sessions can be tracked as active")
        self.ledger.append(session)
        self._active = session
        logger.info(f"Timer started task={session.task_id} session={session.id}")
        return session

    def closing(self, task_id: str, now: datetime | None = None) -> TimeSession | None:
        """Closed copy of the task's open session, or None when it has none."""
        session = self.ledger.open_session_for(task_id)
        if session is None:
            return None
        return session.closed(now or utc_now())

    def commit_close(self, session: TimeSession) -> TimeSession:
        self.ledger.replace_closed(session)
        if self._active is not None and self._active.id == session.id:
            self._active = None
        logger.info(
            f"Timer stopped task={session.task_id} duration={session.duration_seconds}s"
        )
        return session

    def start(self, task_id: str, session_date: date, now: datetime | None = None) -> TimeSession:
        """Open a session for `task_id` on the caller's selected day."""
        self.ensure_idle()
        return self.track(TimeSession.open(task_id, session_date, now or utc_now()))

    def stop(self, task_id: str, now: datetime | None = None) -> TimeSession | None:
        """Close the task's open session. No-op when the task is not running."""
        session = self.closing(task_id, now)
        if session is None:
            return None
        return self.commit_close(session)
