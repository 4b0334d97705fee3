"""Mutation gateway - task writes forwarded to the document store.

The gateway never touches the canonical set. A successful write shows up
through the task store's own subscription, like any other remote change.
"""

from __future__ import annotations

from typing import Any

from protask.models import TaskCreate, TaskStatus, TaskUpdate
from protask.models.exceptions import MutationError, StoreError, TaskNotFoundError
from protask.repositories.repository import SERVER_TIMESTAMP, DocumentStore, StoragePaths
from protask.services.session_service import SessionController
from protask.services.task_store import TaskStore
from protask.utils.logger import get_logger


class MutationGateway:
    """Validates task intents and writes them for the signed-in identity."""

    def __init__(
        self,
        session: SessionController,
        task_store: TaskStore,
        store: DocumentStore,
        paths: StoragePaths | None = None,
    ):
        """Initialize the gateway.

        Args:
            session: Source of the current identity
            task_store: Canonical set, read by toggle_status
            store: Document store receiving the writes
            paths: Per-identity path layout
        """
        self.session = session
        self.task_store = task_store
        self.store = store
        self.paths = paths or StoragePaths()
        self.logger = get_logger("mutations")

    async def create_task(self, fields: TaskCreate | dict[str, Any]) -> str:
        """Create a task and return its store-assigned id.

        Raises:
            AuthRequiredError: If no session is active
            pydantic.ValidationError: If the fields are invalid
            MutationError: If the store rejects the write
        """
        identity = self.session.require_identity()
        task_data = (
            fields if isinstance(fields, TaskCreate) else TaskCreate.model_validate(fields)
        )

        data: dict[str, Any] = task_data.model_dump(mode="json")
        data["status"] = TaskStatus.PENDING.value
        data["created_at"] = SERVER_TIMESTAMP

        try:
            task_id = await self.store.add(self.paths.tasks_collection(identity.id), data)
        except StoreError as e:
            self.logger.error("create failed: %s", e)
            raise MutationError(f"Could not create task: {e}") from e
        self.logger.info("task created: %s", task_id)
        return task_id

    async def update_task(self, task_id: str, fields: TaskUpdate | dict[str, Any]) -> None:
        """Update the editable fields of a task.

        Only provided fields are sent, so status and creation time are kept.

        Raises:
            AuthRequiredError: If no session is active
            pydantic.ValidationError: If the fields are invalid
            MutationError: If the store rejects the write
        """
        identity = self.session.require_identity()
        updates = (
            fields if isinstance(fields, TaskUpdate) else TaskUpdate.model_validate(fields)
        )
        data = updates.model_dump(mode="json", exclude_unset=True)
        if not data:
            return

        try:
            await self.store.update(self.paths.task_document(identity.id, task_id), data)
        except StoreError as e:
            self.logger.error("update of %s failed: %s", task_id, e)
            raise MutationError(f"Could not update task: {e}") from e
        self.logger.info("task updated: %s", task_id)

    async def toggle_status(self, task_id: str) -> TaskStatus:
        """Flip a task between Pending and Completed.

        The current status is read from the canonical set.

        Returns:
            The status that was written

        Raises:
            AuthRequiredError: If no session is active
            TaskNotFoundError: If the task is not in the canonical set
            MutationError: If the store rejects the write
        """
        identity = self.session.require_identity()
        task = self.task_store.tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")

        new_status = task.status.toggled()
        try:
            await self.store.update(
                self.paths.task_document(identity.id, task_id),
                {"status": new_status.value},
            )
        except StoreError as e:
            self.logger.error("status toggle of %s failed: %s", task_id, e)
            raise MutationError(f"Could not update task status: {e}") from e
        self.logger.info("task %s toggled to %s", task_id, new_status.value)
        return new_status

    async def delete_task(self, task_id: str) -> None:
        """Delete a task. Confirmation is the caller's business.

        Raises:
            AuthRequiredError: If no session is active
            MutationError: If the store rejects the delete
        """
        identity = self.session.require_identity()
        try:
            await self.store.delete(self.paths.task_document(identity.id, task_id))
        except StoreError as e:
            self.logger.error("delete of %s failed: %s", task_id, e)
            raise MutationError(f"Could not delete task: {e}") from e
        self.logger.info("task deleted: %s", task_id)
