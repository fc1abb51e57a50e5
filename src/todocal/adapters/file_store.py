"""File-based record store adapter."""

import json
import logging
import uuid
from datetime import date, datetime
from pathlib import Path

from todocal.core.dates import format_date_key, to_date_key
from todocal.core.errors import PersistenceError
from todocal.core.sessions import TimeSession, parse_timestamp
from todocal.core.tasks import Recurrence, Task

logger = logging.getLogger(__name__)


def _empty() -> dict:
    return {"todos": [], "todo_completions": [], "time_sessions": [], "imports": []}


class FileRecordStore:
    """
    JSON file record store.

    Implements RecordStore protocol. The whole document is read on every call
    and written back through a temp file, so a failed write leaves the
    previous contents in place.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def _read(self) -> dict:
        if not self.path.exists():
            return _empty()
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        doc = _empty()
        doc.update(data)
        return doc

    def _write(self, doc: dict) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(doc, indent=2))
            tmp.replace(self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e

    # Tasks

    def list_tasks(self) -> list[Task]:
        return [Task.from_record(row) for row in self._read()["todos"]]

    def insert_task(self, text: str, created_at: date, recurrence: Recurrence | None = None) -> Task:
        task = Task.new(text, created_at, recurrence)
        doc = self._read()
        doc["todos"].append(task.to_record())
        self._write(doc)
        return task

    def delete_task(self, task_id: str) -> None:
        doc = self._read()
        doc["todos"] = [r for r in doc["todos"] if r["id"] != task_id]
        doc["todo_completions"] = [r for r in doc["todo_completions"] if r["todo_id"] != task_id]
        self._write(doc)

    def upsert_tasks(self, tasks: list[Task]) -> None:
        doc = self._read()
        rows = {r["id"]: r for r in doc["todos"]}
        for task in tasks:
            rows[task.id] = task.to_record()
        doc["todos"] = list(rows.values())
        self._write(doc)

    # Completions

    def list_completions(self) -> list[tuple[str, date]]:
        return [
            (r["todo_id"], to_date_key(r["completion_date"]))
            for r in self._read()["todo_completions"]
        ]

    def insert_completion(self, task_id: str, day: date) -> None:
        self.upsert_completions([(task_id, day)])

    def delete_completion(self, task_id: str, day: date) -> None:
        key = format_date_key(day)
        doc = self._read()
        doc["todo_completions"] = [
            r
            for r in doc["todo_completions"]
            if not (r["todo_id"] == task_id and r["completion_date"] == key)
        ]
        self._write(doc)

    def upsert_completions(self, pairs: list[tuple[str, date]]) -> None:
        doc = self._read()
        existing = {(r["todo_id"], r["completion_date"]) for r in doc["todo_completions"]}
        for task_id, day in pairs:
            key = (task_id, format_date_key(day))
            if key in existing:
                continue
            existing.add(key)
            doc["todo_completions"].append({"todo_id": key[0], "completion_date": key[1]})
        self._write(doc)

    # Sessions

    def list_sessions(self) -> list[TimeSession]:
        return [TimeSession.from_record(r) for r in self._read()["time_sessions"]]

    def insert_session(self, task_id: str, day: date, start_time: datetime) -> TimeSession:
        session = TimeSession(
            id=str(uuid.uuid4()),
            task_id=task_id,
            session_date=day,
            start_time=parse_timestamp(start_time),
        )
        doc = self._read()
        doc["time_sessions"].append(session.to_record())
        self._write(doc)
        return session

    def update_session_close(self, session_id: str, end_time: datetime, duration_seconds: int) -> None:
        doc = self._read()
        for row in doc["time_sessions"]:
            if row["id"] == session_id:
                row["end_time"] = parse_timestamp(end_time).isoformat()
                row["duration_seconds"] = int(duration_seconds)
                break
        else:
            raise PersistenceError(f"No session with id {session_id}")
        self._write(doc)

    def delete_sessions(self, task_id: str) -> None:
        doc = self._read()
        doc["time_sessions"] = [r for r in doc["time_sessions"] if r["todo_id"] != task_id]
        self._write(doc)

    # Import markers

    def has_import_run(self, name: str) -> bool:
        return name in self._read()["imports"]

    def record_import_run(self, name: str) -> None:
        doc = self._read()
        if name not in doc["imports"]:
            doc["imports"].append(name)
            self._write(doc)
