"""View and stats commands - derived views over an exported task list."""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from protask.models import (
    DateRange,
    SortDirection,
    SortKey,
    StatusFilter,
    Task,
    ViewSpec,
)
from protask.services.aggregation import compute_stats
from protask.services.config_service import get_config_service
from protask.services.view_pipeline import apply_view
from protask.utils.logger import get_logger
from protask.utils.ui.formatters import format_stats, format_tasks, format_warning

from .decorators import AppError, command_wrapper

_DATE_FORMATS = ["%Y-%m-%d"]


def load_tasks(path: Path) -> dict[str, Task]:
    """Load an exported task list.

    The file holds either a JSON list of task documents or an object with a
    "tasks" list. Each document needs an "id"; malformed entries are skipped.

    Raises:
        AppError: If the file cannot be read or is not a task export
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise AppError(f"Cannot read task export {path}: {e}") from e

    documents = raw.get("tasks", []) if isinstance(raw, dict) else raw
    if not isinstance(documents, list):
        raise AppError(f"{path} is not a task export")

    logger = get_logger("export")
    tasks: dict[str, Task] = {}
    skipped = 0
    for doc in documents:
        if not isinstance(doc, dict) or not doc.get("id"):
            skipped += 1
            continue
        doc_id = str(doc["id"])
        try:
            tasks[doc_id] = Task.from_document(doc_id, doc)
        except ValidationError as e:
            logger.warning("skipping malformed task %s: %d error(s)", doc_id, e.error_count())
            skipped += 1
    if skipped:
        format_warning(f"Skipped {skipped} malformed task record(s)")
    return tasks


@command_wrapper
def view_tasks(
    file: Path = typer.Argument(..., help="JSON export of task records"),
    status: Optional[StatusFilter] = typer.Option(None, "--status", help="Status filter"),
    category: Optional[str] = typer.Option(None, "--category", help="Exact category"),
    uncategorized: bool = typer.Option(False, "--uncategorized", help="Only tasks without a category"),
    search: str = typer.Option("", "--search", "-s", help="Search title/description"),
    date_range: DateRange = typer.Option(DateRange.ALL, "--date-range", help="Due date window"),
    start: Optional[datetime] = typer.Option(None, "--start", formats=_DATE_FORMATS, help="Custom window start"),
    end: Optional[datetime] = typer.Option(None, "--end", formats=_DATE_FORMATS, help="Custom window end"),
    sort: Optional[SortKey] = typer.Option(None, "--sort", help="Sort key"),
    order: Optional[SortDirection] = typer.Option(None, "--order", help="Sort direction"),
    output: str = typer.Option("table", "--output", "-o", help="Output format (table, json, yaml)"),
) -> None:
    """Show the filtered, ordered task view."""
    if uncategorized and category:
        raise AppError("Use either --category or --uncategorized, not both")

    defaults = get_config_service().config.view
    spec = ViewSpec(
        status_filter=status or defaults.status_filter,
        category_filter="" if uncategorized else category,
        search_text=search,
        date_range=date_range,
        start_date=start.date() if start else None,
        end_date=end.date() if end else None,
        sort_key=sort or defaults.sort_key,
        sort_direction=order or defaults.sort_direction,
    )
    tasks = load_tasks(file)
    format_tasks(apply_view(tasks, spec), output)


@command_wrapper
def show_stats(
    file: Path = typer.Argument(..., help="JSON export of task records"),
    output: str = typer.Option("table", "--output", "-o", help="Output format (table, json, yaml)"),
) -> None:
    """Show dashboard statistics for the task list."""
    format_stats(compute_stats(load_tasks(file)), output)
