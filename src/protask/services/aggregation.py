"""Aggregation engine - dashboard statistics over the canonical set."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping

from protask.models import DashboardStats, Task


def completion_percentage(completed: int, total: int) -> int:
    """Percentage of completed tasks, rounded half up; 0 for an empty set."""
    if total <= 0:
        return 0
    # Integer form of floor(100 * completed / total + 0.5)
    return (200 * completed + total) // (2 * total)


def compute_stats(tasks: Mapping[str, Task] | Iterable[Task]) -> DashboardStats:
    """Count tasks by status, priority and category.

    Keys are the raw values; uncategorized tasks count under "".
    """
    records = list(tasks.values()) if isinstance(tasks, Mapping) else list(tasks)

    by_status = Counter(t.status.value for t in records)
    by_priority = Counter(t.priority.value for t in records)
    by_category = Counter(t.category for t in records)
    completed = sum(1 for t in records if t.is_completed)

    return DashboardStats(
        counts_by_status=dict(by_status),
        counts_by_priority=dict(by_priority),
        counts_by_category=dict(by_category),
        completion_percentage=completion_percentage(completed, len(records)),
        total_count=len(records),
    )
