"""Collaborator interfaces for ProTask.

This package contains abstract base classes (ABCs) that define the contracts
for the remote identity provider and document store. These are the "Ports" in
the Hexagonal Architecture.

Implementations (Adapters) are in:
- protask.adapters.memory (in-process reference backend)
"""

from .repository import (
    SERVER_TIMESTAMP,
    Document,
    DocumentStore,
    IdentityProvider,
    StoragePaths,
    Unsubscribe,
)

__all__ = [
    "SERVER_TIMESTAMP",
    "Document",
    "DocumentStore",
    "IdentityProvider",
    "StoragePaths",
    "Unsubscribe",
]
