"""ProTask - client-side task synchronization and derived views."""

__version__ = "0.1.0"
