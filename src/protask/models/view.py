"""View specification and dashboard models."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StatusFilter(str, Enum):
    ALL = "All"
    PENDING = "Pending"
    COMPLETED = "Completed"


class DateRange(str, Enum):
    ALL = "All"
    TODAY = "Today"
    PAST = "Past"
    CUSTOM = "Custom"


class SortKey(str, Enum):
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    CREATED_AT = "createdAt"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ViewSpec(BaseModel):
    """Filters, search text and ordering applied to the canonical set.

    Attributes:
        status_filter: Keep all, only pending or only completed tasks
        category_filter: Exact category to keep; None keeps every category
        search_text: Case-insensitive substring matched on title/description
        date_range: Due-date window mode
        start_date: Lower bound for the Custom window (inclusive)
        end_date: Upper bound for the Custom window (inclusive)
        sort_key: Secondary ordering key
        sort_direction: Ascending or descending
    """

    model_config = ConfigDict(frozen=True)

    status_filter: StatusFilter = StatusFilter.ALL
    category_filter: str | None = None
    search_text: str = ""
    date_range: DateRange = DateRange.ALL
    start_date: date | None = None
    end_date: date | None = None
    sort_key: SortKey = SortKey.DUE_DATE
    sort_direction: SortDirection = SortDirection.ASC


class DashboardStats(BaseModel):
    """Summary counts over the canonical set.

    Counts only hold keys that were observed; missing keys mean zero.
    """

    counts_by_status: dict[str, int] = Field(default_factory=dict)
    counts_by_priority: dict[str, int] = Field(default_factory=dict)
    counts_by_category: dict[str, int] = Field(default_factory=dict)
    completion_percentage: int = Field(default=0, ge=0, le=100)
    total_count: int = Field(default=0, ge=0)
