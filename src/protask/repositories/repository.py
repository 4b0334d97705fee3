"""Collaborator ports for ProTask.

This module defines the abstract base classes (interfaces) for the two remote
collaborators the core depends on, following the hexagonal architecture
(Ports & Adapters) pattern: an identity provider and a document store.

Neither port says anything about transport. Adapters translate their own
failures into ``ProviderError`` / ``StoreError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from protask.models import AuthUser

Unsubscribe = Callable[[], None]
SessionCallback = Callable[[AuthUser | None], None]


class _ServerTimestamp:
    """Sentinel replaced by the store with its own clock on write."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class Document:
    """One document of a snapshot."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)


SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]


class IdentityProvider(ABC):
    """Abstract base class for the remote authentication provider."""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> AuthUser:
        """Register a new account and sign it in.

        Raises:
            ProviderError: e.g. "email-already-in-use", "weak-password",
                "invalid-email"
        """

    @abstractmethod
    async def log_in(self, email: str, password: str) -> AuthUser:
        """Sign in with email and password.

        Raises:
            ProviderError: e.g. "invalid-credential", "invalid-email"
        """

    @abstractmethod
    async def sign_out(self) -> None:
        """End the provider-side session."""

    @abstractmethod
    async def request_reset(self, email: str) -> None:
        """Send a password reset message for the given address."""

    @abstractmethod
    async def update_profile(self, display_name: str) -> None:
        """Update the signed-in account's display name."""

    @abstractmethod
    def on_session_change(self, callback: SessionCallback) -> Unsubscribe:
        """Register a session observer.

        The callback is invoked with the current user (or None) once on
        registration and again on every sign-in, sign-out or session loss.

        Returns:
            A callable that removes the observer
        """


class DocumentStore(ABC):
    """Abstract base class for the remote document store.

    Paths are slash-separated; collection paths have an odd number of
    segments, document paths an even number.
    """

    @abstractmethod
    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Observe a collection.

        ``on_snapshot`` receives the complete current membership of the
        collection on every change, never deltas.

        Returns:
            A callable that cancels the subscription
        """

    @abstractmethod
    async def get(self, path: str) -> dict[str, Any] | None:
        """Read one document, None if it does not exist."""

    @abstractmethod
    async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        """Create or replace a document; ``merge`` keeps unspecified fields."""

    @abstractmethod
    async def add(self, collection_path: str, data: dict[str, Any]) -> str:
        """Create a document with a store-assigned id and return the id."""

    @abstractmethod
    async def update(self, path: str, data: dict[str, Any]) -> None:
        """Update fields of an existing document.

        Raises:
            StoreError: If the document does not exist
        """

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a document."""


@dataclass(frozen=True)
class StoragePaths:
    """Per-identity path layout inside the document store."""

    app_id: str = "protask"

    def user_root(self, uid: str) -> str:
        return f"artifacts/{self.app_id}/users/{uid}"

    def tasks_collection(self, uid: str) -> str:
        return f"{self.user_root(uid)}/tasks"

    def task_document(self, uid: str, task_id: str) -> str:
        return f"{self.tasks_collection(uid)}/{task_id}"

    def profile_document(self, uid: str) -> str:
        return f"{self.user_root(uid)}/profile/data"
