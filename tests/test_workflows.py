"""Tests for the workflow layer."""

import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from todocal.adapters.file_store import FileRecordStore
from todocal.adapters.supabase_rest import SupabaseRecordStore
from todocal.config import DATA_DIR, Config
from todocal.core.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from todocal.core.legacy import IMPORT_NAME
from todocal.core.sessions import TimeSession
from todocal.core.tasks import Recurrence, Task
from todocal.workflows import DeleteResult, TodoService, build_service, get_store


@pytest.fixture
def day():
    return date(2024, 1, 15)


@pytest.fixture
def now():
    return datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    return FileRecordStore(tmp_path / "todocal.json")


@pytest.fixture
def service(store):
    svc = TodoService(store)
    svc.load()
    return svc


def snapshot(service: TodoService):
    return (
        [t for t in service.tasks],
        service.completions.snapshot(),
        [s for s in service.sessions],
        service.timer.active,
    )


class TestGetStore:
    def test_file_backend_uses_configured_path(self, tmp_path):
        store = get_store(Config(data_file=str(tmp_path / "x.json")))
        assert isinstance(store, FileRecordStore)
        assert store.path == tmp_path / "x.json"

    def test_file_backend_default_path(self):
        store = get_store(Config())
        assert store.path == DATA_DIR / "todocal.json"

    def test_supabase_backend(self):
        config = Config(backend="supabase", supabase_url="https://x.supabase.co", supabase_key="k")
        assert isinstance(get_store(config), SupabaseRecordStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown BACKEND"):
            get_store(Config(backend="sqlite"))

    def test_build_service_loads(self, tmp_path, day):
        path = tmp_path / "x.json"
        FileRecordStore(path).insert_task("Saved", day)
        service = build_service(Config(data_file=str(path), cascade_sessions=True))
        assert [t.text for t in service.tasks] == ["Saved"]
        assert service.cascade_sessions is True


class TestAddTask:
    def test_add_persists_and_resolves(self, service, store, day, now):
        task = service.add_task("  Stretch ", day, "daily")

        assert task.text == "Stretch"
        assert store.list_tasks() == [task]
        views = service.resolve(day + timedelta(days=3), now)
        assert [v.id for v in views] == [task.id]

    def test_empty_text_rejected_before_store_call(self, day):
        store = MagicMock()
        service = TodoService(store)
        with pytest.raises(ValidationError):
            service.add_task("   ", day)
        store.insert_task.assert_not_called()

    def test_bad_recurrence_rejected_before_store_call(self, day):
        store = MagicMock()
        with pytest.raises(ValidationError):
            TodoService(store).add_task("x", day, "hourly")
        store.insert_task.assert_not_called()

    def test_store_failure_leaves_state_unchanged(self, day):
        store = MagicMock()
        store.insert_task.side_effect = PersistenceError("down")
        service = TodoService(store)
        with pytest.raises(PersistenceError):
            service.add_task("x", day)
        assert len(service.tasks) == 0


class TestToggleCompletion:
    def test_toggle_roundtrip(self, service, store, day, now):
        task = service.add_task("Read", day)

        assert service.toggle_completion(day, task.id) is True
        assert store.list_completions() == [(task.id, day)]
        assert service.resolve(day, now)[0].completed is True

        assert service.toggle_completion(day, task.id) is False
        assert store.list_completions() == []
        assert service.completions.snapshot() == {}

    def test_unknown_task_is_noop(self, service, day):
        assert service.toggle_completion(day, "missing") is None
        assert service.completions.snapshot() == {}

    def test_store_failure_leaves_index_unchanged(self, service, store, day):
        task = service.add_task("Read", day)
        service.store = MagicMock()
        service.store.insert_completion.side_effect = PersistenceError("down")
        with pytest.raises(PersistenceError):
            service.toggle_completion(day, task.id)
        assert not service.completions.is_complete(day, task.id)


class TestTimers:
    def test_start_stop_records_duration(self, service, store, day, now):
        task = service.add_task("Write", day)

        session = service.start_timer(task.id, day, now)
        assert service.resolve(day, now + timedelta(seconds=30))[0].time_today == 30

        closed = service.stop_timer(task.id, now + timedelta(seconds=125))

        assert closed.id == session.id
        assert closed.duration_seconds == 125
        (stored,) = store.list_sessions()
        assert stored.duration_seconds == 125
        assert service.timer.active is None

    def test_session_booked_on_selected_day(self, service, day, now):
        task = service.add_task("Write", day, "daily")
        selected = day + timedelta(days=2)
        session = service.start_timer(task.id, selected, now)
        assert session.session_date == selected

    def test_second_timer_conflicts(self, service, store, day, now):
        a = service.add_task("A", day)
        b = service.add_task("B", day)
        service.start_timer(a.id, day, now)

        with pytest.raises(ConflictError):
            service.start_timer(b.id, day, now)
        assert len(store.list_sessions()) == 1

        service.stop_timer(a.id, now + timedelta(seconds=1))
        service.start_timer(b.id, day, now + timedelta(seconds=2))
        assert service.timer.active.task_id == b.id

    def test_stop_without_timer_is_noop(self, service, store, day):
        task = service.add_task("A", day)
        assert service.stop_timer(task.id) is None
        assert service.stop_timer("missing") is None
        assert store.list_sessions() == []

    def test_start_unknown_task(self, service, day):
        with pytest.raises(NotFoundError):
            service.start_timer("missing", day)

    def test_running_timer_survives_reload(self, store, day, now):
        first = TodoService(store)
        first.load()
        task = first.add_task("A", day)
        first.start_timer(task.id, day, now)

        second = TodoService(store)
        second.load()
        assert second.timer.active.task_id == task.id
        with pytest.raises(ConflictError):
            second.start_timer(task.id, day, now)

    def test_stop_store_failure_keeps_timer_running(self, service, day, now):
        task = service.add_task("A", day)
        service.start_timer(task.id, day, now)
        service.store = MagicMock()
        service.store.update_session_close.side_effect = PersistenceError("down")

        with pytest.raises(PersistenceError):
            service.stop_timer(task.id, now + timedelta(seconds=5))
        assert service.timer.is_running(task.id)


class TestDeleteTask:
    def test_delete_one_off(self, service, store, day):
        task = service.add_task("Once", day)
        service.toggle_completion(day, task.id)

        assert service.delete_task(task.id) is DeleteResult.DELETED
        assert task.id not in service.tasks
        assert service.completions.snapshot() == {}
        assert store.list_tasks() == []
        assert store.list_completions() == []

    def test_recurring_requires_confirmation(self, service, store, day, now):
        task = service.add_task("Daily", day, Recurrence.DAILY)
        service.toggle_completion(day, task.id)
        service.start_timer(task.id, day, now)
        service.stop_timer(task.id, now + timedelta(seconds=10))
        before = snapshot(service)

        assert service.delete_task(task.id) is DeleteResult.CONFIRMATION_REQUIRED

        assert snapshot(service) == before
        assert store.list_tasks() == [task]
        assert len(store.list_completions()) == 1
        assert len(store.list_sessions()) == 1

    def test_recurring_confirmed(self, service, day):
        task = service.add_task("Daily", day, Recurrence.DAILY)
        assert service.delete_task(task.id, confirmed=True) is DeleteResult.DELETED
        assert service.resolve(day) == []

    def test_unknown(self, service):
        assert service.delete_task("missing") is DeleteResult.NOT_FOUND

    def test_sessions_retained_by_default(self, service, store, day, now):
        task = service.add_task("A", day)
        service.start_timer(task.id, day, now)

        service.delete_task(task.id)

        (session,) = store.list_sessions()
        assert session.duration_seconds is not None
        assert service.timer.active is None
        assert len(service.sessions) == 1

    def test_sessions_cascade_when_configured(self, store, day, now):
        service = TodoService(store, cascade_sessions=True)
        service.load()
        task = service.add_task("A", day)
        service.start_timer(task.id, day, now)
        service.stop_timer(task.id, now + timedelta(seconds=3))

        service.delete_task(task.id)

        assert store.list_sessions() == []
        assert len(service.sessions) == 0

    def test_store_failure_leaves_state_unchanged(self, service, day):
        task = service.add_task("A", day)
        service.store = MagicMock()
        service.store.delete_task.side_effect = PersistenceError("down")
        with pytest.raises(PersistenceError):
            service.delete_task(task.id)
        assert task.id in service.tasks

    @pytest.mark.parametrize("cascade", [False, True])
    def test_store_failure_keeps_running_timer_and_sessions(self, store, day, now, cascade):
        service = TodoService(store, cascade_sessions=cascade)
        service.load()
        task = service.add_task("A", day)
        session = service.start_timer(task.id, day, now)
        service.toggle_completion(day, task.id)

        with patch.object(store, "delete_task", side_effect=PersistenceError("down")):
            with pytest.raises(PersistenceError):
                service.delete_task(task.id)

        assert task.id in service.tasks
        assert service.completions.is_complete(day, task.id)
        assert service.timer.active == session
        assert list(service.sessions) == [session]
        assert store.list_sessions() == [session]

    def test_running_timer_closed_after_task_removed(self, day, now):
        store = MagicMock()
        store.insert_task.return_value = Task.new("A", day)
        store.insert_session.side_effect = lambda task_id, d, start: TimeSession.open(task_id, d, start)
        service = TodoService(store)
        task = service.add_task("A", day)
        service.start_timer(task.id, day, now)

        service.delete_task(task.id)

        names = [c[0] for c in store.method_calls]
        assert names.index("delete_task") < names.index("update_session_close")
        assert service.timer.active is None


class TestSummaryAndMarkers:
    def test_summary(self, service, day, now):
        a = service.add_task("A", day)
        service.add_task("B", day)
        service.toggle_completion(day, a.id)
        summary = service.summary(day, now)
        assert summary.status_line() == "1 of 2 completed"

    def test_month_markers(self, service, day):
        service.add_task("Weekly", day, "weekly")
        assert date(2024, 1, 22) in service.month_markers(2024, 1)
        assert date(2024, 1, 8) not in service.month_markers(2024, 1)


class TestImportLegacy:
    @pytest.fixture
    def legacy_file(self, tmp_path):
        path = tmp_path / "legacy.json"
        path.write_text(
            json.dumps(
                {
                    "todos": {
                        "2024-01-15": [
                            {"id": "t1", "text": "Gym", "createdAt": "2024-01-15", "recurrence": "weekly"},
                            {"id": "t2", "text": "Call mom", "createdAt": "2024-01-15"},
                        ]
                    },
                    "todoCompletions": {"2024-01-15": ["t1", "t2"], "2024-01-22": ["t1"]},
                }
            )
        )
        return path

    def test_imports_and_removes_file(self, service, store, legacy_file):
        result = service.import_legacy(legacy_file)

        assert result.success is True
        assert result.tasks_count == 2
        assert result.completions_count == 3
        assert not legacy_file.exists()
        assert store.has_import_run(IMPORT_NAME)
        assert [t.id for t in service.tasks] == ["t1", "t2"]
        assert service.completions.is_complete(date(2024, 1, 22), "t1")

    def test_missing_file_is_skipped(self, service, tmp_path):
        result = service.import_legacy(tmp_path / "none.json")
        assert result.success is True
        assert result.skipped is True

    def test_already_imported_is_skipped(self, service, store, legacy_file):
        store.record_import_run(IMPORT_NAME)
        result = service.import_legacy(legacy_file)
        assert result.skipped is True
        assert legacy_file.exists()
        assert store.list_tasks() == []

    def test_failure_keeps_legacy_file(self, legacy_file):
        store = MagicMock()
        store.has_import_run.return_value = False
        store.upsert_completions.side_effect = PersistenceError("down")
        service = TodoService(store)

        result = service.import_legacy(legacy_file)

        assert result.success is False
        assert result.error == "down"
        assert legacy_file.exists()
        store.record_import_run.assert_not_called()

    def test_undeletable_legacy_file_still_succeeds(self, service, store, legacy_file):
        with patch.object(Path, "unlink", side_effect=PermissionError("read-only")):
            result = service.import_legacy(legacy_file)

        assert result.success is True
        assert result.tasks_count == 2
        assert store.has_import_run(IMPORT_NAME)
        assert len(service.tasks) == 2

    def test_invalid_json(self, service, tmp_path):
        path = tmp_path / "legacy.json"
        path.write_text("{broken")
        result = service.import_legacy(path)
        assert result.success is False
        assert path.exists()
