"""todocal CLI - daily task calendar."""

import calendar
import json
import logging
import sys
import time
from datetime import date
from pathlib import Path

import click

from .config import load_config
from .core.agenda import DaySummary, format_duration, format_view_line, view_to_dict
from .core.dates import format_date_key, to_date_key, today_key
from .core.errors import TodoCalError
from .workflows import DeleteResult, TodoService, build_service

REPEAT_CHOICES = ["none", "daily", "weekly", "monthly"]


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _service() -> TodoService:
    try:
        return build_service(load_config())
    except (TodoCalError, ValueError) as e:
        _fail(str(e))


def _day(value: str | None) -> date:
    return to_date_key(value) if value else today_key()


def _task_id(service: TodoService, ref: str) -> str:
    """Expand a short id prefix to a full task id. Unknown refs pass through."""
    matches = [t.id for t in service.tasks if t.id.startswith(ref)]
    if len(matches) > 1:
        _fail(f"Ambiguous task id '{ref}' ({len(matches)} matches)")
    return matches[0] if matches else ref


def _show_summary(summary: DaySummary, as_json: bool) -> None:
    """Shared day display logic."""
    if as_json:
        click.echo(
            json.dumps(
                {
                    "date": format_date_key(summary.date),
                    "completed": summary.completed,
                    "total": summary.total,
                    "items": [view_to_dict(i) for i in summary.items],
                },
                indent=2,
            )
        )
        return

    click.echo(f"### {summary.date.strftime('%A, %B %d')}")
    click.echo(summary.status_line())
    for item in summary.items:
        click.echo(f"  {format_view_line(item)}")


@click.group()
@click.version_option(package_name="todocal")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """todocal - daily tasks, recurrence and time tracking."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@main.command("list")
@click.option("--date", "-d", "target_date", default=None,
              help="Date to view (YYYY-MM-DD), defaults to today")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_cmd(target_date: str | None, as_json: bool):
    """List the tasks due on a day."""
    try:
        day = _day(target_date)
        service = _service()
        _show_summary(service.summary(day), as_json)
    except TodoCalError as e:
        _fail(str(e))


@main.command()
@click.argument("text")
@click.option("--repeat", "-r", type=click.Choice(REPEAT_CHOICES), default="none",
              help="Recurrence (default: once)")
@click.option("--date", "-d", "target_date", default=None,
              help="Creation day (YYYY-MM-DD), defaults to today")
def add(text: str, repeat: str, target_date: str | None):
    """Add a task."""
    try:
        day = _day(target_date)
        service = _service()
        task = service.add_task(text, day, repeat)
    except TodoCalError as e:
        _fail(str(e))
    suffix = f", repeats {task.recurrence.value}" if task.recurrence else ""
    click.echo(f"Added '{task.text}' on {format_date_key(task.created_at)}{suffix} #{task.id[:8]}")


@main.command()
@click.argument("task_ref")
@click.option("--date", "-d", "target_date", default=None,
              help="Day of the occurrence (YYYY-MM-DD), defaults to today")
def done(task_ref: str, target_date: str | None):
    """Toggle a task's completion for a day."""
    try:
        day = _day(target_date)
        service = _service()
        state = service.toggle_completion(day, _task_id(service, task_ref))
    except TodoCalError as e:
        _fail(str(e))
    if state is None:
        click.echo(f"No task matching '{task_ref}'.")
    else:
        click.echo(f"Marked {'done' if state else 'not done'} for {format_date_key(day)}.")


@main.command()
@click.argument("task_ref")
@click.option("--yes", "-y", is_flag=True, help="Delete recurring tasks without asking")
def delete(task_ref: str, yes: bool):
    """Delete a task and all of its occurrences."""
    try:
        service = _service()
        task_id = _task_id(service, task_ref)
        result = service.delete_task(task_id, confirmed=yes)
        if result is DeleteResult.CONFIRMATION_REQUIRED:
            if not click.confirm(
                "This is a recurring task. Delete this task and all its occurrences?"
            ):
                click.echo("Kept.")
                return
            result = service.delete_task(task_id, confirmed=True)
    except TodoCalError as e:
        _fail(str(e))

    if result is DeleteResult.NOT_FOUND:
        click.echo(f"No task matching '{task_ref}'.")
    else:
        click.echo("Deleted.")


@main.command()
@click.argument("task_ref")
@click.option("--date", "-d", "target_date", default=None,
              help="Day the time is booked on (YYYY-MM-DD), defaults to today")
def start(task_ref: str, target_date: str | None):
    """Start the timer for a task."""
    try:
        day = _day(target_date)
        service = _service()
        session = service.start_timer(_task_id(service, task_ref), day)
    except TodoCalError as e:
        _fail(str(e))
    task = service.tasks.get(session.task_id)
    click.echo(f"Timer started for '{task.text}' ({format_date_key(session.session_date)}).")


@main.command()
@click.argument("task_ref")
def stop(task_ref: str):
    """Stop the timer for a task."""
    try:
        service = _service()
        session = service.stop_timer(_task_id(service, task_ref))
    except TodoCalError as e:
        _fail(str(e))
    if session is None:
        click.echo("No timer running for that task.")
    else:
        click.echo(f"Timer stopped after {format_duration(session.duration_seconds or 0)}.")


@main.command()
@click.option("--month", "-m", "target_month", default=None,
              help="Month to show (YYYY-MM), defaults to this month")
def month(target_month: str | None):
    """Show a month with the days that have tasks marked."""
    try:
        first = to_date_key(f"{target_month}-01") if target_month else today_key().replace(day=1)
        service = _service()
    except TodoCalError as e:
        _fail(str(e))

    marked = service.month_markers(first.year, first.month)
    click.echo(first.strftime("%B %Y"))
    click.echo(" ".join(f"{d:>3}" for d in ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]))
    for week in calendar.Calendar(firstweekday=6).monthdatescalendar(first.year, first.month):
        cells = []
        for d in week:
            if d.month != first.month:
                cells.append("   ")
            else:
                cells.append(f"{d.day:>2}{'*' if d in marked else ' '}")
        click.echo(" ".join(cells))


@main.command()
@click.option("--date", "-d", "target_date", default=None,
              help="Date to view (YYYY-MM-DD), defaults to today")
@click.option("--interval", default=1.0, show_default=True, help="Refresh interval in seconds")
def watch(target_date: str | None, interval: float):
    """Show a day and refresh running timers until Ctrl+C."""
    try:
        day = _day(target_date)
        service = _service()
        while True:
            click.clear()
            _show_summary(service.summary(day), as_json=False)
            time.sleep(interval)
    except TodoCalError as e:
        _fail(str(e))
    except KeyboardInterrupt:
        click.echo()


@main.command("import-legacy")
@click.argument("path", required=False, type=click.Path(path_type=Path))
def import_legacy(path: Path | None):
    """Import a legacy local record (todos + completions) once."""
    config = load_config()
    path = path or (Path(config.legacy_file) if config.legacy_file else None)
    if path is None:
        _fail("No legacy file given and LEGACY_FILE not set in todocal.conf")

    service = _service()
    result = service.import_legacy(path)
    if not result.success:
        _fail(f"Import failed: {result.error}")
    if result.skipped:
        click.echo("Nothing to import.")
    else:
        click.echo(f"Imported {result.tasks_count} tasks and {result.completions_count} completions.")


if __name__ == "__main__":
    main()
