"""Supabase (PostgREST) adapter - HTTP client for the hosted record store."""

import logging
from datetime import date, datetime

import requests

from todocal.config import Config, load_config
from todocal.core.dates import format_date_key, to_date_key
from todocal.core.errors import PersistenceError
from todocal.core.sessions import TimeSession, parse_timestamp
from todocal.core.tasks import Recurrence, Task, validate_text

logger = logging.getLogger(__name__)

TASKS_TABLE = "todos"
COMPLETIONS_TABLE = "todo_completions"
SESSIONS_TABLE = "time_sessions"
IMPORTS_TABLE = "app_imports"


class SupabaseRecordStore:
    """
    Supabase REST adapter.

    Implements RecordStore protocol. Rows are scoped to the user behind the
    access token by the server's row-level policies. No business logic -
    just I/O.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        if not self.config.supabase_url:
            raise PersistenceError("SUPABASE_URL not configured in todocal.conf")
        self._base = self.config.supabase_url.rstrip("/") + "/rest/v1"
        self._session = session or requests.Session()

    def _headers(self, prefer: str | None = None) -> dict:
        token = self.config.supabase_access_token or self.config.supabase_key
        headers = {
            "apikey": self.config.supabase_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        table: str,
        params: dict | None = None,
        json: list | dict | None = None,
        prefer: str | None = None,
    ) -> list:
        """Make an API request; every failure becomes PersistenceError."""
        try:
            resp = self._session.request(
                method,
                f"{self._base}/{table}",
                params=params,
                json=json,
                headers=self._headers(prefer),
                timeout=self.config.request_timeout,
            )
        except requests.Timeout as e:
            raise PersistenceError(
                f"{method} {table} timed out after {self.config.request_timeout}s"
            ) from e
        except requests.RequestException as e:
            raise PersistenceError(f"{method} {table} failed: {e}") from e

        if resp.status_code >= 400:
            raise PersistenceError(f"{method} {table} failed ({resp.status_code}): {resp.text}")
        if not resp.content:
            return []
        try:
            return resp.json()
        except ValueError as e:
            raise PersistenceError(f"{method} {table} returned invalid JSON") from e

    # Tasks

    def list_tasks(self) -> list[Task]:
        rows = self._request(
            "GET",
            TASKS_TABLE,
            params={"select": "id,text,created_at,recurrence", "order": "created_timestamp.asc"},
        )
        return [Task.from_record(r) for r in rows]

    def insert_task(self, text: str, created_at: date, recurrence: Recurrence | None = None) -> Task:
        rows = self._request(
            "POST",
            TASKS_TABLE,
            json={
                "text": validate_text(text),
                "created_at": format_date_key(created_at),
                "recurrence": recurrence.value if recurrence else None,
            },
            prefer="return=representation",
        )
        if not rows:
            raise PersistenceError("Insert into todos returned no row")
        return Task.from_record(rows[0])

    def delete_task(self, task_id: str) -> None:
        # Task row first: a failure then leaves both tables intact.
        self._request("DELETE", TASKS_TABLE, params={"id": f"eq.{task_id}"})
        self._request("DELETE", COMPLETIONS_TABLE, params={"todo_id": f"eq.{task_id}"})

    def upsert_tasks(self, tasks: list[Task]) -> None:
        if not tasks:
            return
        self._request(
            "POST",
            TASKS_TABLE,
            json=[t.to_record() for t in tasks],
            prefer="resolution=merge-duplicates",
        )

    # Completions

    def list_completions(self) -> list[tuple[str, date]]:
        rows = self._request("GET", COMPLETIONS_TABLE, params={"select": "todo_id,completion_date"})
        return [(str(r["todo_id"]), to_date_key(r["completion_date"])) for r in rows]

    def insert_completion(self, task_id: str, day: date) -> None:
        self._request(
            "POST",
            COMPLETIONS_TABLE,
            json={"todo_id": task_id, "completion_date": format_date_key(day)},
        )

    def delete_completion(self, task_id: str, day: date) -> None:
        self._request(
            "DELETE",
            COMPLETIONS_TABLE,
            params={"todo_id": f"eq.{task_id}", "completion_date": f"eq.{format_date_key(day)}"},
        )

    def upsert_completions(self, pairs: list[tuple[str, date]]) -> None:
        if not pairs:
            return
        self._request(
            "POST",
            COMPLETIONS_TABLE,
            params={"on_conflict": "todo_id,completion_date,user_id"},
            json=[{"todo_id": t, "completion_date": format_date_key(d)} for t, d in pairs],
            prefer="resolution=ignore-duplicates",
        )

    # Sessions

    def list_sessions(self) -> list[TimeSession]:
        rows = self._request(
            "GET",
            SESSIONS_TABLE,
            params={
                "select": "id,todo_id,session_date,start_time,end_time,duration_seconds",
                "order": "start_time.asc",
            },
        )
        return [TimeSession.from_record(r) for r in rows]

    def insert_session(self, task_id: str, day: date, start_time: datetime) -> TimeSession:
        rows = self._request(
            "POST",
            SESSIONS_TABLE,
            json={
                "todo_id": task_id,
                "session_date": format_date_key(day),
                "start_time": parse_timestamp(start_time).isoformat(),
            },
            prefer="return=representation",
        )
        if not rows:
            raise PersistenceError("Insert into time_sessions returned no row")
        return TimeSession.from_record(rows[0])

    def update_session_close(self, session_id: str, end_time: datetime, duration_seconds: int) -> None:
        self._request(
            "PATCH",
            SESSIONS_TABLE,
            params={"id": f"eq.{session_id}"},
            json={
                "end_time": parse_timestamp(end_time).isoformat(),
                "duration_seconds": int(duration_seconds),
            },
        )

    def delete_sessions(self, task_id: str) -> None:
        self._request("DELETE", SESSIONS_TABLE, params={"todo_id": f"eq.{task_id}"})

    # Import markers

    def has_import_run(self, name: str) -> bool:
        rows = self._request("GET", IMPORTS_TABLE, params={"select": "name", "name": f"eq.{name}"})
        return bool(rows)

    def record_import_run(self, name: str) -> None:
        self._request(
            "POST",
            IMPORTS_TABLE,
            json={"name": name},
            prefer="resolution=ignore-duplicates",
        )
