"""
External Collaborator Ports

Interfaces the core consumes. Concrete implementations are injected; the core
never reaches for ambient singletons.

BOUNDARY ENFORCEMENT:
=====================
- The remote store is the single source of truth for all durable state
- The identity provider is read-only from the core's perspective
- The image lookup is unreliable by contract and never blocks primary flow
"""

from __future__ import annotations
from typing import Any, Callable, Mapping, Optional

from .items import MediaKind, User


SnapshotCallback = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class RemoteCollectionStore:
    """
    Abstract push-based remote store.

    Snapshots are whole-value, replace-style: every callback receives the
    complete current value at the subscribed path (or None when empty).
    """

    def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        """Subscribe to full snapshots at path. Returns an unsubscribe function."""
        raise NotImplementedError

    async def write(self, path: str, value: Any) -> None:
        """Replace the value at path."""
        raise NotImplementedError

    async def append(self, path: str, keyed_value: Mapping[str, Any]) -> None:
        """Merge keyed children under path without touching siblings."""
        raise NotImplementedError

    async def push(self, path: str, value: Any) -> str:
        """Create a child under path with a store-generated key and return it."""
        raise NotImplementedError

    async def remove(self, path: str) -> None:
        """Delete the value at path."""
        raise NotImplementedError


class IdentityProvider:
    """Read-only view of who is currently signed in."""

    @property
    def current_user(self) -> Optional[User]:
        raise NotImplementedError


class StaticIdentityProvider(IdentityProvider):
    """Identity provider backed by a caller-controlled value."""

    def __init__(self, user: Optional[User] = None):
        self._user = user

    @property
    def current_user(self) -> Optional[User]:
        return self._user

    def set_user(self, user: Optional[User]) -> None:
        self._user = user


class ImageLookup:
    """Best-effort metadata lookup used to decorate items with an image."""

    async def fetch_image(self, title: str, media_kind: MediaKind) -> Optional[str]:
        """Return an image URL or None. Implementations should not raise."""
        raise NotImplementedError
