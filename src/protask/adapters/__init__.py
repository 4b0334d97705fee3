"""Adapters module - collaborator implementations.

This package contains concrete implementations (adapters) for the ports in
protask.repositories:
- memory: In-process identity provider and document store
"""

from .memory import InMemoryDocumentStore, InMemoryIdentityProvider

__all__ = [
    "InMemoryDocumentStore",
    "InMemoryIdentityProvider",
]
