"""Tests for the task, identity and view models."""

from __future__ import annotations

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from protask.models import (
    AppConfig,
    DashboardStats,
    Identity,
    LoggingConfig,
    Priority,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
    ViewSpec,
)


class TestTask:
    def test_defaults(self):
        task = Task(id="t1", title="Write report")

        assert task.category == ""
        assert task.priority is Priority.MEDIUM
        assert task.status is TaskStatus.PENDING
        assert task.due_date is None
        assert task.due is None
        assert task.created_at is None
        assert not task.is_completed

    def test_from_document_ignores_embedded_id(self):
        task = Task.from_document(
            "doc-1", {"id": "spoofed", "title": "A", "status": "Completed"}
        )

        assert task.id == "doc-1"
        assert task.is_completed

    def test_empty_values_fall_back_to_defaults(self):
        task = Task(id="t1", title="A", category=None, priority="", status=None, due_date="  ")

        assert task.category == ""
        assert task.priority is Priority.MEDIUM
        assert task.status is TaskStatus.PENDING
        assert task.due_date is None

    def test_due_date_objects_are_normalized(self):
        assert Task(id="t", title="A", due_date=date(2024, 3, 15)).due_date == "2024-03-15"
        assert (
            Task(id="t", title="A", due_date=datetime(2024, 3, 15, 9, 0)).due_date
            == "2024-03-15"
        )

    def test_unparseable_due_date_kept_but_parsed_as_missing(self):
        task = Task(id="t", title="A", due_date="someday")

        assert task.due_date == "someday"
        assert task.due is None

    def test_unknown_priority_rejected(self):
        with pytest.raises(ValidationError):
            Task(id="t", title="A", priority="Urgent")

    def test_frozen(self):
        task = Task(id="t", title="A")
        with pytest.raises(ValidationError):
            task.title = "B"


def test_status_toggled():
    assert TaskStatus.PENDING.toggled() is TaskStatus.COMPLETED
    assert TaskStatus.COMPLETED.toggled() is TaskStatus.PENDING


class TestTaskCreate:
    def test_requires_non_blank_title(self):
        with pytest.raises(ValidationError):
            TaskCreate(title="   ")

    def test_dump_has_no_status_or_created_at(self):
        data = TaskCreate(title="A", category=None, due_date=date(2024, 1, 2)).model_dump(
            mode="json"
        )

        assert data == {
            "title": "A",
            "description": None,
            "category": "",
            "priority": "Medium",
            "due_date": "2024-01-02",
        }


class TestTaskUpdate:
    def test_only_set_fields_are_dumped(self):
        data = TaskUpdate(title="B", priority="High").model_dump(
            mode="json", exclude_unset=True
        )
        assert data == {"title": "B", "priority": "High"}

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            TaskUpdate(title="")

    def test_clearing_due_date_is_explicit(self):
        data = TaskUpdate(due_date="").model_dump(mode="json", exclude_unset=True)
        assert data == {"due_date": None}


def test_identity_requires_display_name():
    with pytest.raises(ValidationError):
        Identity(id="u1")


def test_view_spec_is_hashable():
    assert hash(ViewSpec()) == hash(ViewSpec())
    assert ViewSpec(search_text="a") != ViewSpec()


def test_dashboard_stats_bounds():
    with pytest.raises(ValidationError):
        DashboardStats(completion_percentage=101)


class TestConfigModels:
    def test_defaults(self):
        config = AppConfig()

        assert config.app_id == "protask"
        assert config.logging.level == "INFO"
        assert config.view.to_view_spec() == ViewSpec()

    @pytest.mark.parametrize("app_id", ["", "  ", "a/b"])
    def test_bad_app_id(self, app_id):
        with pytest.raises(ValidationError):
            AppConfig(app_id=app_id)

    def test_log_level_validated(self):
        assert LoggingConfig(level="warning").level == "WARNING"
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")
