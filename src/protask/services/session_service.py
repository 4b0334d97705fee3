"""Session controller - authentication lifecycle and current identity.

The controller is the only owner of the current ``Identity``. Other components
observe it through listeners, which are called synchronously on every
transition into or out of the authenticated state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import ValidationError

from protask.models import AuthUser, Identity, Profile
from protask.models.exceptions import (
    AuthRequiredError,
    CredentialError,
    CredentialReason,
    ProfileUpdateError,
    ProviderError,
    StoreError,
    UnknownAuthError,
)
from protask.repositories.repository import (
    SERVER_TIMESTAMP,
    DocumentStore,
    IdentityProvider,
    StoragePaths,
    Unsubscribe,
)
from protask.utils.logger import get_logger

IdentityListener = Callable[[Identity | None], None]

_SIGN_UP_ERRORS = {
    "email-already-in-use": (
        CredentialReason.ALREADY_REGISTERED,
        "This email is already registered. Please log in or use a different email.",
    ),
    "weak-password": (
        CredentialReason.WEAK_PASSWORD,
        "Password should be at least 6 characters.",
    ),
    "invalid-email": (
        CredentialReason.MALFORMED_EMAIL,
        "Please enter a valid email address.",
    ),
}

_INVALID_LOGIN = (
    CredentialReason.INVALID_CREDENTIALS,
    'Invalid email or password. Please check your credentials or use "Forgot Password?".',
)

_LOG_IN_ERRORS = {
    "invalid-credential": _INVALID_LOGIN,
    "user-not-found": _INVALID_LOGIN,
    "wrong-password": _INVALID_LOGIN,
    "invalid-email": _SIGN_UP_ERRORS["invalid-email"],
}


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


def _map_provider_error(
    error: ProviderError, table: dict[str, tuple[CredentialReason, str]]
) -> Exception:
    if error.code in table:
        reason, message = table[error.code]
        return CredentialError(reason, message)
    return UnknownAuthError(str(error))


class SessionController:
    """Tracks who is signed in and keeps their profile record in shape."""

    def __init__(
        self,
        provider: IdentityProvider,
        store: DocumentStore,
        paths: StoragePaths | None = None,
    ):
        """Initialize the session controller.

        Args:
            provider: Identity provider used for every auth call
            store: Document store holding the profile records
            paths: Per-identity path layout
        """
        self.provider = provider
        self.store = store
        self.paths = paths or StoragePaths()
        self.logger = get_logger("session")

        self._state = SessionState.UNAUTHENTICATED
        self._identity: Identity | None = None
        self._listeners: list[IdentityListener] = []
        self._generation = 0
        self._attempt_in_flight = False
        self._pending_entry: asyncio.Task | None = None
        self._provider_unsubscribe: Unsubscribe | None = None
        self.last_error: Exception | None = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED and self._identity is not None

    def require_identity(self) -> Identity:
        """Return the current identity or raise AuthRequiredError."""
        identity = self._identity
        if self._state is not SessionState.AUTHENTICATED or identity is None:
            raise AuthRequiredError("Please log in or sign up to continue.")
        return identity

    def add_listener(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a callback for identity changes.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        identity = self._identity
        for listener in list(self._listeners):
            listener(identity)

    # ------------------------------------------------------------------
    # Provider session observation
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Observe the provider session and settle the initial state."""
        if self._provider_unsubscribe is None:
            self._provider_unsubscribe = self.provider.on_session_change(
                self._on_provider_session
            )
        if self._pending_entry is not None:
            await self._pending_entry

    def close(self) -> None:
        """Stop observing the provider and end the local session."""
        if self._provider_unsubscribe is not None:
            self._provider_unsubscribe()
            self._provider_unsubscribe = None
        if self._pending_entry is not None and not self._pending_entry.done():
            self._pending_entry.cancel()
        self._leave()

    def _on_provider_session(self, user: AuthUser | None) -> None:
        if user is None:
            if self._identity is not None or self._state is not SessionState.UNAUTHENTICATED:
                self.logger.info("provider session ended")
                self._leave()
            return

        # Explicit sign-up/log-in enters the session itself.
        if self._attempt_in_flight:
            return
        if self._identity is not None and self._identity.id == user.uid:
            return
        if self._identity is not None:
            self.logger.info("provider switched accounts")
            self._leave()

        loop = asyncio.get_running_loop()
        self._pending_entry = loop.create_task(self._restore(user))

    async def _restore(self, user: AuthUser) -> None:
        try:
            await self._enter(user)
        finally:
            self._pending_entry = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _enter(self, user: AuthUser, display_name: str | None = None) -> bool:
        """Resolve the profile and become authenticated as ``user``.

        Returns:
            False if the session changed while the profile was resolving
        """
        self._generation += 1
        generation = self._generation
        self._state = SessionState.AUTHENTICATING

        resolved = await self._resolve_display_name(user, display_name)
        if generation != self._generation:
            self.logger.debug("discarding stale session entry for %s", user.uid)
            return False

        self._identity = Identity(id=user.uid, display_name=resolved, email=user.email)
        self._state = SessionState.AUTHENTICATED
        self.last_error = None
        self.logger.info("session started for %s", user.uid)
        self._notify()
        return True

    def _leave(self) -> None:
        self._generation += 1
        was_signed_in = self._identity is not None
        self._identity = None
        self._state = SessionState.UNAUTHENTICATED
        if was_signed_in:
            self.logger.info("session ended")
            self._notify()

    async def _resolve_display_name(
        self, user: AuthUser, requested: str | None
    ) -> str:
        """Read or create the profile record and return the name to show.

        Profile failures are logged and never block authentication.
        """
        fallback = user.email or "User"
        path = self.paths.profile_document(user.uid)
        try:
            existing = await self.store.get(path)
        except StoreError as e:
            self.logger.warning("profile read failed for %s: %s", user.uid, e)
            return requested or fallback

        profile: Profile | None = None
        if existing is not None:
            try:
                profile = Profile.model_validate(existing)
            except ValidationError as e:
                self.logger.warning(
                    "unreadable profile for %s: %d error(s)", user.uid, e.error_count()
                )

        if profile is not None and requested is None:
            return profile.display_name or fallback

        name = requested or fallback
        data: dict[str, Any] = {"display_name": name, "email": user.email}
        if profile is None or profile.created_at is None:
            data["created_at"] = SERVER_TIMESTAMP
        try:
            await self.store.set(path, data, merge=True)
        except StoreError as e:
            self.logger.warning("profile write failed for %s: %s", user.uid, e)
        return name

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _begin_attempt(self) -> int:
        self._attempt_in_flight = True
        self._state = SessionState.AUTHENTICATING
        self.last_error = None
        return self._generation

    async def _abandon_attempt(self, user: AuthUser) -> None:
        """Undo a provider sign-in that resolved after the session ended."""
        self.logger.info("discarding sign-in for %s, session ended meanwhile", user.uid)
        try:
            await self.provider.sign_out()
        except ProviderError as e:
            self.logger.warning("could not sign out abandoned session: %s", e)
        raise AuthRequiredError("The session ended while signing in.")

    def _fail_attempt(self, error: Exception) -> None:
        self.last_error = error
        if self._identity is None:
            self._state = SessionState.UNAUTHENTICATED
        else:
            self._state = SessionState.AUTHENTICATED

    async def sign_up(self, email: str, password: str, display_name: str) -> Identity:
        """Register a new account and start a session for it.

        Raises:
            CredentialError: Email taken, weak password or malformed email
            UnknownAuthError: Any other provider failure
            AuthRequiredError: If the session was ended while the provider call ran
        """
        generation = self._begin_attempt()
        try:
            try:
                user = await self.provider.sign_up(email, password)
            except ProviderError as e:
                error = _map_provider_error(e, _SIGN_UP_ERRORS)
                self.logger.warning("sign-up failed: %s", e.code)
                self._fail_attempt(error)
                raise error from e

            if generation != self._generation:
                await self._abandon_attempt(user)

            name = display_name.strip() if display_name and display_name.strip() else None
            await self._enter(user, display_name=name)
        finally:
            self._attempt_in_flight = False
        return self.require_identity()

    async def log_in(self, email: str, password: str) -> Identity:
        """Sign in with email and password.

        Raises:
            CredentialError: Invalid credentials or malformed email
            UnknownAuthError: Any other provider failure
            AuthRequiredError: If the session was ended while the provider call ran
        """
        generation = self._begin_attempt()
        try:
            try:
                user = await self.provider.log_in(email, password)
            except ProviderError as e:
                error = _map_provider_error(e, _LOG_IN_ERRORS)
                self.logger.warning("log-in failed: %s", e.code)
                self._fail_attempt(error)
                raise error from e

            if generation != self._generation:
                await self._abandon_attempt(user)

            await self._enter(user)
        finally:
            self._attempt_in_flight = False
        return self.require_identity()

    async def request_password_reset(self, email: str) -> None:
        """Ask the provider to send a reset email.

        Raises:
            UnknownAuthError: If the provider rejects the request
        """
        try:
            await self.provider.request_reset(email)
        except ProviderError as e:
            self.logger.warning("password reset failed: %s", e.code)
            raise UnknownAuthError(str(e)) from e

    async def log_out(self) -> None:
        """End the session.

        Listeners see the identity disappear before the provider is called.

        Raises:
            UnknownAuthError: If the provider sign-out fails
        """
        self._leave()
        try:
            await self.provider.sign_out()
        except ProviderError as e:
            self.logger.error("provider sign-out failed: %s", e)
            raise UnknownAuthError(str(e)) from e

    async def update_display_name(self, new_name: str) -> Identity:
        """Change the display name on the provider and in the profile record.

        Raises:
            AuthRequiredError: If no session is active
            ProfileUpdateError: On a blank name or any remote failure
        """
        identity = self.require_identity()
        name = (new_name or "").strip()
        if not name:
            raise ProfileUpdateError("Display name cannot be empty.")

        generation = self._generation
        try:
            await self.provider.update_profile(name)
        except ProviderError as e:
            self.logger.error("provider profile update failed: %s", e)
            raise ProfileUpdateError(str(e)) from e

        try:
            await self.store.update(
                self.paths.profile_document(identity.id), {"display_name": name}
            )
        except StoreError as e:
            self.logger.error("profile record update failed: %s", e)
            await self._revert_provider_name(identity.display_name)
            raise ProfileUpdateError(str(e)) from e

        if generation != self._generation:
            raise AuthRequiredError("The session ended while updating the profile.")

        self._identity = identity.model_copy(update={"display_name": name})
        self._notify()
        return self._identity

    async def _revert_provider_name(self, previous: str) -> None:
        try:
            await self.provider.update_profile(previous)
        except ProviderError as e:
            self.logger.warning("could not restore provider display name: %s", e)
