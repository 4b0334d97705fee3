"""Services module for ProTask - business logic layer."""

from .aggregation import compute_stats
from .app_context import AppContext
from .mutation_gateway import MutationGateway
from .session_service import SessionController, SessionState
from .task_store import TaskStore
from .view_pipeline import apply_view, is_overdue, unique_categories

__all__ = [
    "AppContext",
    "MutationGateway",
    "SessionController",
    "SessionState",
    "TaskStore",
    "apply_view",
    "compute_stats",
    "is_overdue",
    "unique_categories",
]
