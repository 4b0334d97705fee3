"""ProTask domain models.

This package contains Pydantic models that represent the core domain entities
of ProTask: identities, task records, view specifications and dashboard
statistics, along with the exception hierarchy.
"""

from .config_models import AppConfig, LoggingConfig, ViewDefaults
from .core import (
    AuthUser,
    Identity,
    Priority,
    Profile,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)
from .view import (
    DashboardStats,
    DateRange,
    SortDirection,
    SortKey,
    StatusFilter,
    ViewSpec,
)

__all__ = [
    # Identity models
    "AuthUser",
    "Identity",
    "Profile",
    # Task models
    "Priority",
    "Task",
    "TaskCreate",
    "TaskStatus",
    "TaskUpdate",
    # View models
    "DashboardStats",
    "DateRange",
    "SortDirection",
    "SortKey",
    "StatusFilter",
    "ViewSpec",
    # Config models
    "AppConfig",
    "LoggingConfig",
    "ViewDefaults",
]
