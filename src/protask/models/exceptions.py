"""Custom exceptions for ProTask."""

from __future__ import annotations

from enum import Enum


class ProTaskError(Exception):
    """Base exception for all ProTask errors."""


class AuthError(ProTaskError):
    """Base class for session and authentication failures."""


class CredentialReason(str, Enum):
    ALREADY_REGISTERED = "already-registered"
    WEAK_PASSWORD = "weak-password"
    MALFORMED_EMAIL = "malformed-email"
    INVALID_CREDENTIALS = "invalid-credentials"


class CredentialError(AuthError):
    """Raised for user-fixable credential problems.

    The message is meant to be shown to the user as-is.
    """

    def __init__(self, reason: CredentialReason, message: str):
        super().__init__(message)
        self.reason = reason


class UnknownAuthError(AuthError):
    """Raised when the identity provider fails for an unexpected reason."""


class ProfileUpdateError(AuthError):
    """Raised when the display name could not be updated."""


class AuthRequiredError(AuthError):
    """Raised when an operation needs an authenticated session."""


class SubscriptionError(ProTaskError):
    """Raised when the task collection subscription could not be established."""


class MutationError(ProTaskError):
    """Raised when a task write is rejected by the store."""


class TaskNotFoundError(MutationError):
    """Raised when a task id is not present in the canonical set."""


class ProviderError(Exception):
    """Failure reported by an identity provider.

    Attributes:
        code: Provider error code (e.g. "weak-password")
    """

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


class StoreError(Exception):
    """Failure reported by a document store."""
