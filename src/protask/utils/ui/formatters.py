"""Output formatters for different formats."""

from __future__ import annotations

import json
from datetime import date
from typing import Any

import yaml
from rich.table import Table

from protask.models import DashboardStats, Priority, Task
from protask.services.view_pipeline import is_overdue
from protask.utils.ui.console import get_console

console = get_console()

PRIORITY_COLORS = {
    Priority.HIGH: "red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "green",
}


def format_output(data: Any, output_format: str = "table") -> None:
    """Format and display plain data (dicts/lists) based on format."""
    if output_format == "json":
        print(json.dumps(data, indent=2, default=str))
    elif output_format == "yaml":
        print(yaml.dump(data, default_flow_style=False, sort_keys=False))
    elif isinstance(data, dict):
        format_dict_table(data)
    else:
        console.print(data)


def format_dict_table(data: dict[str, Any], prefix: str = "") -> None:
    """Render a (possibly nested) dict as a two-column key/value table."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Key")
    table.add_column("Value")
    for key, value in _flatten(data, prefix):
        table.add_row(key, str(value))
    console.print(table)


def _flatten(data: dict[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    rows: list[tuple[str, Any]] = []
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            rows.extend(_flatten(value, f"{full_key}."))
        else:
            rows.append((full_key, value))
    return rows


def format_tasks(tasks: list[Task], output_format: str = "table", today: date | None = None) -> None:
    """Display an ordered task view."""
    if output_format in ("json", "yaml"):
        format_output([t.model_dump(mode="json") for t in tasks], output_format)
        return

    if not tasks:
        console.print("[yellow]No tasks match the current view[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Priority")
    table.add_column("Due")
    table.add_column("Status")

    for task in tasks:
        color = PRIORITY_COLORS.get(task.priority, "white")
        due = task.due_date or "-"
        if is_overdue(task, today):
            due = f"[bold red]{due} (overdue)[/bold red]"
        title = f"[strike dim]{task.title}[/strike dim]" if task.is_completed else task.title
        table.add_row(
            task.id,
            title,
            task.category or "Uncategorized",
            f"[{color}]{task.priority.value}[/{color}]",
            due,
            "✓ Completed" if task.is_completed else "○ Pending",
        )
    console.print(table)


def get_progress_bar(percentage: float, width: int = 20) -> str:
    """Render a progress bar using block characters."""
    filled = int(min(max(percentage, 0), 100) / 100 * width)
    return "█" * filled + "░" * (width - filled)


def format_stats(stats: DashboardStats, output_format: str = "table") -> None:
    """Display dashboard statistics."""
    if output_format in ("json", "yaml"):
        format_output(stats.model_dump(mode="json"), output_format)
        return

    console.print(f"\n[bold cyan]Total tasks:[/bold cyan] {stats.total_count}")
    console.print(
        f"[bold cyan]Completion:[/bold cyan] {get_progress_bar(stats.completion_percentage)} "
        f"{stats.completion_percentage}%\n"
    )

    for title, counts in (
        ("Status", stats.counts_by_status),
        ("Priority", stats.counts_by_priority),
        ("Category", stats.counts_by_category),
    ):
        table = Table(title=f"By {title.lower()}", show_header=True, header_style="bold cyan")
        table.add_column(title)
        table.add_column("Tasks", justify="right")
        for key, count in sorted(counts.items()):
            table.add_row(key or "Uncategorized", str(count))
        console.print(table)


def format_error(message: str) -> None:
    """Format and display an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def format_success(message: str) -> None:
    """Format and display a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def format_warning(message: str) -> None:
    """Format and display a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")
