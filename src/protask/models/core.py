"""Task and identity data models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from protask.utils.dates import parse_due_date


class Priority(str, Enum):
    """Task priority levels."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TaskStatus(str, Enum):
    """Task completion status."""

    PENDING = "Pending"
    COMPLETED = "Completed"

    def toggled(self) -> TaskStatus:
        """Return the opposite status."""
        if self is TaskStatus.COMPLETED:
            return TaskStatus.PENDING
        return TaskStatus.COMPLETED


def _normalize_due_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str) and not value.strip():
        return None
    return value


class AuthUser(BaseModel):
    """Account as reported by the identity provider.

    Attributes:
        uid: Provider-assigned account identifier
        email: Account email, if any
        display_name: Provider-side display name, if any
    """

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str | None = None
    display_name: str | None = None


class Identity(BaseModel):
    """The signed-in user as seen by the rest of the application.

    Attributes:
        id: Partition key for the user's data
        display_name: Name shown in the UI
        email: Account email, if any
    """

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str | None = None
    email: str | None = None


class Profile(BaseModel):
    """Persisted profile record for an identity."""

    display_name: str | None = None
    email: str | None = None
    created_at: datetime | None = None


class Task(BaseModel):
    """Task record as held in the canonical set.

    Attributes:
        id: Store-assigned identifier, unique per owner
        title: Task title
        description: Optional detailed description
        category: Free-form label, "" when uncategorized
        priority: Priority level
        due_date: Due date in ISO ``YYYY-MM-DD`` form
        status: Completion status
        created_at: Server-assigned creation timestamp
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str | None = None
    category: str = ""
    priority: Priority = Priority.MEDIUM
    due_date: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _category_none_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date_to_str(cls, v: Any) -> Any:
        return _normalize_due_date(v)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority_default(cls, v: Any) -> Any:
        return Priority.MEDIUM if v in (None, "") else v

    @field_validator("status", mode="before")
    @classmethod
    def _status_default(cls, v: Any) -> Any:
        return TaskStatus.PENDING if v in (None, "") else v

    @property
    def due(self) -> date | None:
        """Parsed due date, or None when absent or unparseable."""
        return parse_due_date(self.due_date)

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> Task:
        """Build a task from a raw store document.

        Raises:
            pydantic.ValidationError: If the document cannot be interpreted
        """
        payload = {k: v for k, v in data.items() if k != "id"}
        return cls(id=doc_id, **payload)


class TaskCreate(BaseModel):
    """Model for creating a new task.

    Attributes:
        title: Task title (required, non-blank)
        description: Optional detailed description
        category: Optional label
        priority: Priority level (default Medium)
        due_date: Optional due date
    """

    title: str
    description: str | None = None
    category: str = ""
    priority: Priority = Priority.MEDIUM
    due_date: str | None = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("title cannot be empty")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def _category_none_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date_to_str(cls, v: Any) -> Any:
        return _normalize_due_date(v)


class TaskUpdate(BaseModel):
    """Model for updating an existing task.

    All fields are optional - only provided fields will be updated.
    Status and creation time are not editable here.
    """

    title: str | None = None
    description: str | None = None
    category: str | None = None
    priority: Priority | None = None
    due_date: str | None = Field(default=None)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("title cannot be empty")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date_to_str(cls, v: Any) -> Any:
        return _normalize_due_date(v)
