"""View pipeline - filtered and ordered views over the canonical set.

Everything here is a pure function of its arguments. ``today`` is a
parameter so results do not depend on the wall clock unless the caller
leaves it out.

Filters run in a fixed order (status, category, search, date range) and the
result is then stable-sorted. Incomplete tasks always come before completed
ones; the chosen sort key only orders tasks within those two groups.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from functools import cmp_to_key

from protask.models import (
    DateRange,
    Priority,
    SortDirection,
    SortKey,
    StatusFilter,
    Task,
    TaskStatus,
    ViewSpec,
)
from protask.utils.dates import timestamp_or_zero

PRIORITY_RANK = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}

TaskCollection = Mapping[str, Task] | Iterable[Task]


def _as_list(tasks: TaskCollection) -> list[Task]:
    if isinstance(tasks, Mapping):
        return list(tasks.values())
    return list(tasks)


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def filter_by_status(tasks: list[Task], status_filter: StatusFilter) -> list[Task]:
    if status_filter is StatusFilter.ALL:
        return tasks
    wanted = TaskStatus(status_filter.value)
    return [t for t in tasks if t.status is wanted]


def filter_by_category(tasks: list[Task], category: str | None) -> list[Task]:
    if category is None:
        return tasks
    return [t for t in tasks if t.category == category]


def filter_by_search(tasks: list[Task], query: str) -> list[Task]:
    """Case-insensitive substring match on title or description."""
    if not query:
        return tasks
    needle = query.lower()
    return [
        t
        for t in tasks
        if needle in t.title.lower()
        or (t.description is not None and needle in t.description.lower())
    ]


def filter_by_date_range(
    tasks: list[Task],
    mode: DateRange,
    today: date,
    start: date | None = None,
    end: date | None = None,
) -> list[Task]:
    """Keep tasks whose due date falls in the window.

    Tasks without a usable due date never match a window other than All.
    Past only keeps tasks that are still pending.
    """
    if mode is DateRange.ALL:
        return tasks

    result = []
    for task in tasks:
        due = task.due
        if due is None:
            continue
        if mode is DateRange.TODAY:
            keep = due == today
        elif mode is DateRange.PAST:
            keep = due < today and not task.is_completed
        else:
            keep = (start is None or due >= start) and (end is None or due <= end)
        if keep:
            result.append(task)
    return result


def compare_tasks(a: Task, b: Task, key: SortKey, direction: SortDirection) -> int:
    """Three-way comparison used by ``sort_tasks``.

    The direction flips the key comparison only. Completed tasks stay after
    pending ones, and under dueDate tasks without a date stay last.
    """
    if a.is_completed != b.is_completed:
        return 1 if a.is_completed else -1

    if key is SortKey.DUE_DATE:
        due_a, due_b = a.due, b.due
        if due_a is None or due_b is None:
            if due_a is None and due_b is None:
                return 0
            return 1 if due_a is None else -1
        value = _sign((due_a - due_b).days)
    elif key is SortKey.PRIORITY:
        # High first under ascending
        value = _sign(PRIORITY_RANK[b.priority] - PRIORITY_RANK[a.priority])
    else:
        # Newest first under ascending
        value = _sign(timestamp_or_zero(b.created_at) - timestamp_or_zero(a.created_at))

    return value if direction is SortDirection.ASC else -value


def sort_tasks(
    tasks: list[Task],
    key: SortKey = SortKey.DUE_DATE,
    direction: SortDirection = SortDirection.ASC,
) -> list[Task]:
    """Stable sort; ties keep their input order."""
    return sorted(tasks, key=cmp_to_key(lambda a, b: compare_tasks(a, b, key, direction)))


def apply_view(
    tasks: TaskCollection,
    spec: ViewSpec | None = None,
    *,
    today: date | None = None,
) -> list[Task]:
    """Filter and order tasks according to a view specification.

    Args:
        tasks: Canonical set (mapping of id to task) or any iterable of tasks
        spec: View specification; defaults to ``ViewSpec()``
        today: Reference date for the Today and Past windows

    Returns:
        A new list; the input is never modified
    """
    spec = spec or ViewSpec()
    today = today or date.today()

    result = _as_list(tasks)
    result = filter_by_status(result, spec.status_filter)
    result = filter_by_category(result, spec.category_filter)
    result = filter_by_search(result, spec.search_text)
    result = filter_by_date_range(
        result, spec.date_range, today, spec.start_date, spec.end_date
    )
    return sort_tasks(result, spec.sort_key, spec.sort_direction)


def unique_categories(tasks: TaskCollection) -> list[str]:
    """Sorted distinct non-empty categories."""
    return sorted({t.category for t in _as_list(tasks) if t.category})


def is_overdue(task: Task, today: date | None = None) -> bool:
    """True when the task is still pending and its due date has passed."""
    due = task.due
    if due is None or task.is_completed:
        return False
    return due < (today or date.today())
