"""Shared test fixtures and configuration.

Provides infrastructure to isolate tests from the real filesystem and wires
the in-memory collaborators into ready-to-use services.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from protask.adapters.memory import InMemoryDocumentStore, InMemoryIdentityProvider
from protask.models import Task
from protask.repositories.repository import StoragePaths
from protask.services.app_context import AppContext


# ---------------------------------------------------------------------------
# Filesystem isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_logger(tmp_path):
    """Send log output to tmp_path and reset the logger singleton."""
    import protask.utils.logger as logger_mod

    logger_mod._logger = None
    logging.getLogger("protask").handlers.clear()
    with patch("protask.utils.logger.user_log_dir", return_value=str(tmp_path / "logs")):
        yield
    logging.getLogger("protask").handlers.clear()
    logger_mod._logger = None


@pytest.fixture()
def tmp_config(tmp_path):
    """Provide a real ConfigService backed by a temporary directory.

    Also clears the lru_cache so each test gets a fresh service instance.
    """
    from protask.services.config_service import ConfigService, get_config_service

    get_config_service.cache_clear()
    with patch(
        "protask.services.config_service.user_config_dir",
        return_value=str(tmp_path / "config"),
    ):
        svc = ConfigService()
        yield svc
    get_config_service.cache_clear()


# ---------------------------------------------------------------------------
# Collaborators and services
# ---------------------------------------------------------------------------

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture()
def provider() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(clock=lambda: FIXED_NOW)


@pytest.fixture()
def paths() -> StoragePaths:
    return StoragePaths()


@pytest.fixture()
def app(provider, store) -> AppContext:
    """AppContext over the in-memory collaborators; call ``await app.start()``."""
    return AppContext(provider, store)


def make_task(task_id: str, **fields) -> Task:
    """Build a task with sensible defaults for pipeline tests."""
    fields.setdefault("title", f"Task {task_id}")
    return Task(id=task_id, **fields)


@pytest.fixture()
def task_factory():
    return make_task
