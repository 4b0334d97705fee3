"""Unit tests for the session controller."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from protask.models import AuthUser
from protask.models.exceptions import (
    AuthRequiredError,
    CredentialError,
    CredentialReason,
    ProfileUpdateError,
    ProviderError,
    StoreError,
    UnknownAuthError,
)
from protask.services.session_service import SessionController, SessionState

from conftest import FIXED_NOW

EMAIL = "alice@example.com"
PASSWORD = "secret1"


@pytest.fixture()
def session(provider, store, paths) -> SessionController:
    return SessionController(provider, store, paths)


async def _settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Sign-up
# ---------------------------------------------------------------------------


class TestSignUp:
    @pytest.mark.asyncio
    async def test_creates_identity_and_profile(self, session, store, paths):
        await session.start()

        identity = await session.sign_up(EMAIL, PASSWORD, "Alice")

        assert session.state is SessionState.AUTHENTICATED
        assert identity.display_name == "Alice"
        assert identity.email == EMAIL
        profile = await store.get(paths.profile_document(identity.id))
        assert profile == {
            "display_name": "Alice",
            "email": EMAIL,
            "created_at": FIXED_NOW,
        }

    @pytest.mark.asyncio
    async def test_blank_display_name_falls_back_to_email(self, session):
        identity = await session.sign_up(EMAIL, PASSWORD, "   ")
        assert identity.display_name == EMAIL

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("email", "password", "reason"),
        [
            ("taken@example.com", PASSWORD, CredentialReason.ALREADY_REGISTERED),
            (EMAIL, "123", CredentialReason.WEAK_PASSWORD),
            ("not-an-email", PASSWORD, CredentialReason.MALFORMED_EMAIL),
        ],
    )
    async def test_credential_errors(self, session, provider, email, password, reason):
        provider.add_account("taken@example.com", PASSWORD)

        with pytest.raises(CredentialError) as exc_info:
            await session.sign_up(email, password, "Alice")

        assert exc_info.value.reason is reason
        assert str(exc_info.value)
        assert session.state is SessionState.UNAUTHENTICATED
        assert session.last_error is exc_info.value

    @pytest.mark.asyncio
    async def test_unknown_provider_error(self, session, provider):
        provider.inject_failure("sign_up", ProviderError("network-request-failed"))

        with pytest.raises(UnknownAuthError):
            await session.sign_up(EMAIL, PASSWORD, "Alice")
        assert session.identity is None

    @pytest.mark.asyncio
    async def test_failed_attempt_does_not_block_retry(self, session):
        with pytest.raises(CredentialError):
            await session.sign_up(EMAIL, "123", "Alice")

        identity = await session.sign_up(EMAIL, PASSWORD, "Alice")

        assert identity.display_name == "Alice"
        assert session.last_error is None

    @pytest.mark.asyncio
    async def test_profile_write_failure_does_not_block(self, session, store):
        store.inject_failure("set", StoreError("unavailable"))

        identity = await session.sign_up(EMAIL, PASSWORD, "Alice")

        assert identity.display_name == "Alice"
        assert session.is_authenticated


# ---------------------------------------------------------------------------
# Log-in
# ---------------------------------------------------------------------------


class TestLogIn:
    @pytest.mark.asyncio
    async def test_out_of_band_account_gets_profile_from_email(
        self, session, provider, store, paths
    ):
        user = provider.add_account(EMAIL, PASSWORD)

        identity = await session.log_in(EMAIL, PASSWORD)

        assert identity.id == user.uid
        assert identity.display_name == EMAIL
        profile = await store.get(paths.profile_document(user.uid))
        assert profile["display_name"] == EMAIL
        assert profile["created_at"] == FIXED_NOW

    @pytest.mark.asyncio
    async def test_existing_profile_is_used_and_left_alone(
        self, session, provider, store, paths
    ):
        user = provider.add_account(EMAIL, PASSWORD)
        created = datetime(2020, 1, 1, tzinfo=UTC)
        await store.set(
            paths.profile_document(user.uid),
            {"display_name": "Old Name", "email": EMAIL, "created_at": created},
        )

        identity = await session.log_in(EMAIL, PASSWORD)

        assert identity.display_name == "Old Name"
        profile = await store.get(paths.profile_document(user.uid))
        assert profile["created_at"] == created

    @pytest.mark.asyncio
    async def test_profile_merge_never_overwrites_created_at(
        self, session, provider, store, paths
    ):
        user = provider.add_account(EMAIL, PASSWORD)
        created = datetime(2020, 1, 1, tzinfo=UTC)
        await store.set(
            paths.profile_document(user.uid),
            {"display_name": "Old Name", "email": EMAIL, "created_at": created},
        )

        await session._enter(user, display_name="New Name")

        profile = await store.get(paths.profile_document(user.uid))
        assert profile["display_name"] == "New Name"
        assert profile["created_at"] == created

    @pytest.mark.asyncio
    async def test_unreadable_profile_is_rewritten(self, session, provider, store, paths):
        user = provider.add_account(EMAIL, PASSWORD)
        await store.set(paths.profile_document(user.uid), {"created_at": "last tuesday"})

        identity = await session.log_in(EMAIL, PASSWORD)

        assert identity.display_name == EMAIL
        profile = await store.get(paths.profile_document(user.uid))
        assert profile["created_at"] == FIXED_NOW

    @pytest.mark.asyncio
    async def test_wrong_password(self, session, provider):
        provider.add_account(EMAIL, PASSWORD)

        with pytest.raises(CredentialError) as exc_info:
            await session.log_in(EMAIL, "wrong-pass")

        assert exc_info.value.reason is CredentialReason.INVALID_CREDENTIALS
        assert session.state is SessionState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_unknown_account_is_invalid_credentials(self, session):
        with pytest.raises(CredentialError) as exc_info:
            await session.log_in("ghost@example.com", PASSWORD)
        assert exc_info.value.reason is CredentialReason.INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_malformed_email(self, session):
        with pytest.raises(CredentialError) as exc_info:
            await session.log_in("ghost", PASSWORD)
        assert exc_info.value.reason is CredentialReason.MALFORMED_EMAIL

    @pytest.mark.asyncio
    async def test_unknown_provider_error(self, session, provider):
        provider.add_account(EMAIL, PASSWORD)
        provider.inject_failure("log_in", ProviderError("internal-error"))

        with pytest.raises(UnknownAuthError):
            await session.log_in(EMAIL, PASSWORD)


# ---------------------------------------------------------------------------
# Provider session observation
# ---------------------------------------------------------------------------


class TestProviderSession:
    @pytest.mark.asyncio
    async def test_start_restores_existing_provider_session(self, session, provider):
        provider.add_account(EMAIL, PASSWORD)
        await provider.log_in(EMAIL, PASSWORD)

        await session.start()

        assert session.is_authenticated
        assert session.identity.email == EMAIL

    @pytest.mark.asyncio
    async def test_start_without_session_stays_unauthenticated(self, session):
        await session.start()
        assert session.state is SessionState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_session_loss_ends_session(self, session, provider):
        await session.start()
        await session.sign_up(EMAIL, PASSWORD, "Alice")
        seen = []
        session.add_listener(seen.append)

        provider.expire_session()

        assert session.state is SessionState.UNAUTHENTICATED
        assert seen == [None]

    @pytest.mark.asyncio
    async def test_login_notifies_listeners_once(self, session):
        await session.start()
        seen = []
        session.add_listener(seen.append)

        await session.sign_up(EMAIL, PASSWORD, "Alice")
        await _settle()

        assert len(seen) == 1
        assert seen[0].display_name == "Alice"

    @pytest.mark.asyncio
    async def test_logout_during_profile_lookup_discards_entry(
        self, session, provider, store
    ):
        provider.add_account(EMAIL, PASSWORD)
        store.gate = asyncio.Event()

        attempt = asyncio.create_task(session.log_in(EMAIL, PASSWORD))
        await _settle()
        assert session.state is SessionState.AUTHENTICATING

        await session.log_out()
        store.gate.set()

        with pytest.raises(AuthRequiredError):
            await attempt
        assert session.identity is None
        assert session.state is SessionState.UNAUTHENTICATED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "args"),
        [
            ("log_in", (EMAIL, PASSWORD)),
            ("sign_up", ("new@example.com", PASSWORD, "New")),
        ],
    )
    async def test_logout_during_provider_call_discards_sign_in(
        self, app, provider, store, method, args
    ):
        provider.add_account(EMAIL, PASSWORD)
        await app.start()
        provider.gate = asyncio.Event()

        attempt = asyncio.create_task(getattr(app.session, method)(*args))
        await _settle()
        assert app.session.state is SessionState.AUTHENTICATING

        leaving = asyncio.create_task(app.session.log_out())
        await _settle()
        assert app.session.state is SessionState.UNAUTHENTICATED

        provider.gate.set()
        with pytest.raises(AuthRequiredError):
            await attempt
        await leaving

        assert app.session.identity is None
        assert app.session.state is SessionState.UNAUTHENTICATED
        assert provider.current_user is None
        assert not app.task_store.is_active
        assert store.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_close_stops_observing(self, session, provider):
        await session.start()
        session.close()

        provider.add_account(EMAIL, PASSWORD)
        await provider.log_in(EMAIL, PASSWORD)
        await _settle()

        assert session.identity is None


# ---------------------------------------------------------------------------
# Log-out and password reset
# ---------------------------------------------------------------------------


class TestLogOut:
    @pytest.mark.asyncio
    async def test_log_out(self, session, provider):
        await session.sign_up(EMAIL, PASSWORD, "Alice")

        await session.log_out()

        assert session.state is SessionState.UNAUTHENTICATED
        assert session.identity is None
        assert provider.current_user is None

    @pytest.mark.asyncio
    async def test_local_session_ends_even_if_provider_fails(self, session, provider):
        await session.sign_up(EMAIL, PASSWORD, "Alice")
        provider.inject_failure("sign_out", ProviderError("network-request-failed"))

        with pytest.raises(UnknownAuthError):
            await session.log_out()

        assert session.identity is None

    @pytest.mark.asyncio
    async def test_password_reset_is_silent(self, session, provider):
        provider.add_account(EMAIL, PASSWORD)

        await session.request_password_reset(EMAIL)

        assert provider.reset_requests == [EMAIL]
        assert session.state is SessionState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_password_reset_failure(self, session):
        with pytest.raises(UnknownAuthError):
            await session.request_password_reset("ghost@example.com")


# ---------------------------------------------------------------------------
# Display name
# ---------------------------------------------------------------------------


class TestUpdateDisplayName:
    @pytest.mark.asyncio
    async def test_requires_session(self, session):
        with pytest.raises(AuthRequiredError):
            await session.update_display_name("Bob")

    @pytest.mark.asyncio
    async def test_updates_provider_and_profile(self, session, provider, store, paths):
        identity = await session.sign_up(EMAIL, PASSWORD, "Alice")

        updated = await session.update_display_name("  Bob ")

        assert updated.display_name == "Bob"
        assert session.identity.display_name == "Bob"
        assert provider.current_user.display_name == "Bob"
        profile = await store.get(paths.profile_document(identity.id))
        assert profile["display_name"] == "Bob"
        assert profile["created_at"] == FIXED_NOW

    @pytest.mark.asyncio
    async def test_blank_name_rejected_without_remote_calls(self, session, provider):
        await session.sign_up(EMAIL, PASSWORD, "Alice")

        with pytest.raises(ProfileUpdateError):
            await session.update_display_name("  ")

        assert provider.current_user.display_name is None

    @pytest.mark.asyncio
    async def test_provider_failure_keeps_old_name(self, session, provider):
        await session.sign_up(EMAIL, PASSWORD, "Alice")
        provider.inject_failure("update_profile", ProviderError("internal-error"))

        with pytest.raises(ProfileUpdateError):
            await session.update_display_name("Bob")

        assert session.identity.display_name == "Alice"

    @pytest.mark.asyncio
    async def test_profile_failure_keeps_old_name_and_reverts_provider(
        self, session, provider, store
    ):
        await session.sign_up(EMAIL, PASSWORD, "Alice")
        store.inject_failure("update", StoreError("unavailable"))

        with pytest.raises(ProfileUpdateError):
            await session.update_display_name("Bob")

        assert session.identity.display_name == "Alice"
        assert provider.current_user.display_name == "Alice"

    @pytest.mark.asyncio
    async def test_rename_notifies_listeners_with_same_id(self, session):
        identity = await session.sign_up(EMAIL, PASSWORD, "Alice")
        seen = []
        session.add_listener(seen.append)

        await session.update_display_name("Bob")

        assert [i.id for i in seen] == [identity.id]


def test_require_identity_when_signed_out(provider, store):
    session = SessionController(provider, store)
    with pytest.raises(AuthRequiredError):
        session.require_identity()


def test_auth_user_is_immutable():
    user = AuthUser(uid="u1", email=EMAIL)
    with pytest.raises(Exception):
        user.uid = "u2"
