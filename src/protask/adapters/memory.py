"""In-memory adapters - collaborator implementations held in process memory.

These back the test-suite and the offline CLI. They honour the same contracts
as a hosted backend: full-membership snapshots on every change, server-side
timestamps, merge writes and provider error codes.
"""

from __future__ import annotations

import asyncio
import copy
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from protask.models import AuthUser
from protask.models.exceptions import ProviderError, StoreError
from protask.repositories.repository import (
    SERVER_TIMESTAMP,
    Document,
    DocumentStore,
    ErrorCallback,
    IdentityProvider,
    SessionCallback,
    SnapshotCallback,
    Unsubscribe,
)
from protask.utils.logger import get_logger

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


class _FailureInjection:
    """One-shot failure injection shared by both fakes."""

    def __init__(self) -> None:
        self._failures: dict[str, Exception] = {}
        self.gate: asyncio.Event | None = None

    def inject_failure(self, operation: str, error: Exception) -> None:
        """Make the next call of ``operation`` raise ``error``."""
        self._failures[operation] = error

    def _check(self, operation: str) -> None:
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    async def _io(self, operation: str) -> None:
        # Yield to the loop so callers observe real suspension points.
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        self._check(operation)


@dataclass
class _Account:
    uid: str
    email: str
    password: str
    display_name: str | None = None

    def to_user(self) -> AuthUser:
        return AuthUser(uid=self.uid, email=self.email, display_name=self.display_name)


class InMemoryIdentityProvider(_FailureInjection, IdentityProvider):
    """Email/password identity provider kept in a dict."""

    def __init__(self) -> None:
        super().__init__()
        self._accounts: dict[str, _Account] = {}
        self._current: _Account | None = None
        self._observers: list[SessionCallback] = []
        self.reset_requests: list[str] = []
        self.logger = get_logger("adapters.identity")

    @property
    def current_user(self) -> AuthUser | None:
        return self._current.to_user() if self._current else None

    def _notify(self) -> None:
        user = self.current_user
        for callback in list(self._observers):
            callback(user)

    @staticmethod
    def _validate_email(email: str) -> str:
        if not email or not _EMAIL_RE.match(email.strip()):
            raise ProviderError("invalid-email", "The email address is badly formatted.")
        return email.strip().lower()

    def add_account(
        self, email: str, password: str, display_name: str | None = None
    ) -> AuthUser:
        """Register an account without signing in (out-of-band creation)."""
        key = self._validate_email(email)
        account = _Account(
            uid=uuid.uuid4().hex,
            email=email.strip(),
            password=password,
            display_name=display_name,
        )
        self._accounts[key] = account
        return account.to_user()

    async def sign_up(self, email: str, password: str) -> AuthUser:
        await self._io("sign_up")
        key = self._validate_email(email)
        if key in self._accounts:
            raise ProviderError(
                "email-already-in-use", "The email address is already in use."
            )
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ProviderError(
                "weak-password",
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters.",
            )
        account = _Account(uid=uuid.uuid4().hex, email=email.strip(), password=password)
        self._accounts[key] = account
        self._current = account
        self.logger.debug("account created: %s", account.uid)
        self._notify()
        return account.to_user()

    async def log_in(self, email: str, password: str) -> AuthUser:
        await self._io("log_in")
        key = self._validate_email(email)
        account = self._accounts.get(key)
        if account is None or account.password != password:
            raise ProviderError("invalid-credential", "Invalid login credentials.")
        self._current = account
        self._notify()
        return account.to_user()

    async def sign_out(self) -> None:
        await self._io("sign_out")
        if self._current is None:
            return
        self._current = None
        self._notify()

    async def request_reset(self, email: str) -> None:
        await self._io("request_reset")
        key = self._validate_email(email)
        if key not in self._accounts:
            raise ProviderError("user-not-found", "There is no user for this email.")
        self.reset_requests.append(self._accounts[key].email)

    async def update_profile(self, display_name: str) -> None:
        await self._io("update_profile")
        if self._current is None:
            raise ProviderError("no-current-user", "No user is signed in.")
        self._current.display_name = display_name

    def on_session_change(self, callback: SessionCallback) -> Unsubscribe:
        self._observers.append(callback)
        callback(self.current_user)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def expire_session(self) -> None:
        """Drop the current session as if the provider revoked it."""
        self._current = None
        self._notify()


@dataclass
class _Subscriber:
    collection: str
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback | None


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


class InMemoryDocumentStore(_FailureInjection, DocumentStore):
    """Document store keyed by slash-separated document paths."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        super().__init__()
        self._docs: dict[str, dict[str, Any]] = {}
        self._subscribers: list[_Subscriber] = []
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = get_logger("adapters.store")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _resolve(self, data: dict[str, Any]) -> dict[str, Any]:
        now = self._clock()
        return {
            key: (now if value is SERVER_TIMESTAMP else copy.deepcopy(value))
            for key, value in data.items()
        }

    def snapshot(self, collection_path: str) -> list[Document]:
        """Current membership of a collection."""
        return [
            Document(id=path.rsplit("/", 1)[-1], data=copy.deepcopy(data))
            for path, data in self._docs.items()
            if _parent(path) == collection_path
        ]

    def _notify(self, collection_path: str) -> None:
        for sub in list(self._subscribers):
            if sub.collection == collection_path and sub in self._subscribers:
                sub.on_snapshot(self.snapshot(collection_path))

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        try:
            self._check("subscribe")
        except Exception as e:
            if on_error is None:
                raise
            on_error(e)
            return lambda: None

        sub = _Subscriber(collection_path, on_snapshot, on_error)
        self._subscribers.append(sub)
        on_snapshot(self.snapshot(collection_path))

        def unsubscribe() -> None:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

        return unsubscribe

    def fail_subscriptions(self, collection_path: str, error: Exception) -> None:
        """Report ``error`` to every live subscriber of a collection and drop them."""
        for sub in list(self._subscribers):
            if sub.collection == collection_path:
                self._subscribers.remove(sub)
                if sub.on_error is not None:
                    sub.on_error(error)

    async def get(self, path: str) -> dict[str, Any] | None:
        await self._io("get")
        data = self._docs.get(path)
        return copy.deepcopy(data) if data is not None else None

    async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        await self._io("set")
        resolved = self._resolve(data)
        if merge and path in self._docs:
            self._docs[path] = {**self._docs[path], **resolved}
        else:
            self._docs[path] = resolved
        self._notify(_parent(path))

    async def add(self, collection_path: str, data: dict[str, Any]) -> str:
        await self._io("add")
        doc_id = uuid.uuid4().hex[:20]
        self._docs[f"{collection_path}/{doc_id}"] = self._resolve(data)
        self._notify(collection_path)
        return doc_id

    async def update(self, path: str, data: dict[str, Any]) -> None:
        await self._io("update")
        if path not in self._docs:
            raise StoreError(f"No document to update: {path}")
        self._docs[path] = {**self._docs[path], **self._resolve(data)}
        self._notify(_parent(path))

    async def delete(self, path: str) -> None:
        await self._io("delete")
        if self._docs.pop(path, None) is not None:
            self._notify(_parent(path))
