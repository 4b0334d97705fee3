"""Task store - the canonical set of task records for the signed-in identity.

The store follows the session: it subscribes to the identity's task
collection when a session starts and tears the subscription down when it
ends. Every snapshot replaces the whole set at once; consumers only ever see
a complete old mapping or a complete new one.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from pydantic import ValidationError

from protask.models import Identity, Task
from protask.models.exceptions import SubscriptionError
from protask.repositories.repository import (
    Document,
    DocumentStore,
    StoragePaths,
    Unsubscribe,
)
from protask.services.session_service import SessionController
from protask.utils.logger import get_logger

TaskListener = Callable[[Mapping[str, Task]], None]

_EMPTY: Mapping[str, Task] = MappingProxyType({})


@dataclass
class _Subscription:
    """Token tying snapshot callbacks to the identity they were issued for."""

    owner_id: str
    unsubscribe: Unsubscribe | None = None
    active: bool = True


class TaskStore:
    """Owns the canonical set for the current identity."""

    def __init__(self, store: DocumentStore, paths: StoragePaths | None = None):
        """Initialize the task store.

        Args:
            store: Document store to subscribe to
            paths: Per-identity path layout
        """
        self.store = store
        self.paths = paths or StoragePaths()
        self.logger = get_logger("task_store")

        self._subscription: _Subscription | None = None
        self._tasks: Mapping[str, Task] | None = None
        self._version = 0
        self._listeners: list[TaskListener] = []
        self._detach: Callable[[], None] | None = None
        self.last_error: SubscriptionError | None = None

    @property
    def tasks(self) -> Mapping[str, Task]:
        """Read-only mapping of task id to task; empty when torn down."""
        return self._tasks if self._tasks is not None else _EMPTY

    @property
    def version(self) -> int:
        """Counter bumped every time the canonical set is replaced."""
        return self._version

    @property
    def owner_id(self) -> str | None:
        sub = self._subscription
        return sub.owner_id if sub is not None else None

    @property
    def is_active(self) -> bool:
        return self._subscription is not None

    def add_listener(self, listener: TaskListener) -> Callable[[], None]:
        """Register a callback invoked with the new mapping after each change."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def attach(self, session: SessionController) -> None:
        """Follow a session controller's identity."""
        if self._detach is not None:
            self._detach()
        self._detach = session.add_listener(self.on_identity_change)
        self.on_identity_change(session.identity)

    def detach(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
        self.on_identity_change(None)

    def on_identity_change(self, identity: Identity | None) -> None:
        """Switch the subscription to match ``identity``."""
        current = self._subscription
        if identity is not None and current is not None and current.owner_id == identity.id:
            return
        if identity is None and current is None:
            return

        self._teardown()
        if identity is not None:
            self._subscribe(identity.id)

    def _teardown(self) -> None:
        sub = self._subscription
        if sub is None:
            return
        sub.active = False
        self._subscription = None
        if sub.unsubscribe is not None:
            sub.unsubscribe()
        self._replace(None)
        self.logger.info("unsubscribed from tasks of %s", sub.owner_id)

    def _subscribe(self, owner_id: str) -> None:
        sub = _Subscription(owner_id=owner_id)
        self._subscription = sub
        self.last_error = None
        self._replace({})

        collection = self.paths.tasks_collection(owner_id)
        try:
            sub.unsubscribe = self.store.subscribe(
                collection,
                lambda docs: self._apply_snapshot(sub, docs),
                lambda error: self._on_error(sub, error),
            )
        except Exception as e:
            self._on_error(sub, e)
            return
        if not sub.active:
            # The subscription failed synchronously; release it too.
            if sub.unsubscribe is not None:
                sub.unsubscribe()
            return
        self.logger.info("subscribed to %s", collection)

    def _apply_snapshot(self, sub: _Subscription, documents: list[Document]) -> None:
        if not sub.active or sub is not self._subscription:
            self.logger.debug("dropping stale snapshot for %s", sub.owner_id)
            return

        tasks: dict[str, Task] = {}
        for doc in documents:
            try:
                tasks[doc.id] = Task.from_document(doc.id, doc.data)
            except ValidationError as e:
                self.logger.warning(
                    "skipping malformed task %s: %d error(s)", doc.id, e.error_count()
                )
        self._replace(tasks)

    def _on_error(self, sub: _Subscription, error: Exception) -> None:
        if sub is not self._subscription:
            return
        sub.active = False
        self.last_error = SubscriptionError(str(error))
        self.logger.error("task subscription failed for %s: %s", sub.owner_id, error)
        self._replace({})

    def _replace(self, tasks: dict[str, Task] | None) -> None:
        self._tasks = MappingProxyType(tasks) if tasks is not None else None
        self._version += 1
        snapshot = self.tasks
        for listener in list(self._listeners):
            listener(snapshot)
