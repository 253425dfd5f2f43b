"""
Collection Storage Layer

RESPONSIBILITY: Reference implementation of the remote collection store port
ALLOWED INPUTS: Path-addressed writes, appends, pushes, removals
OUTPUTS: Whole-value snapshots pushed to subscribers

SEMANTICS:
==========
- Data is a tree of nested dicts addressed by '/'-separated paths
- subscribe() delivers the current value immediately, then again after every
  mutation at, above, or below the subscribed path
- Empty containers collapse to None, as in the hosted store
- Subscribers receive deep copies; they can never mutate store state

Suitable for tests, demos and offline development.
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Tuple
import asyncio
import copy
import itertools

from ..contracts.ports import RemoteCollectionStore, SnapshotCallback, Unsubscribe


def split_path(path: str) -> Tuple[str, ...]:
    return tuple(part for part in path.strip("/").split("/") if part)


def _is_related(a: Tuple[str, ...], b: Tuple[str, ...]) -> bool:
    shorter = min(len(a), len(b))
    return a[:shorter] == b[:shorter]


class StoreWriteError(Exception):
    """Raised by the in-memory store when a write is configured to fail."""
    pass


class InMemoryCollectionStore(RemoteCollectionStore):
    """
    In-memory push-based store.

    GUARANTEES:
    ===========
    1. Every mutation is applied atomically before subscribers are notified
    2. Subscribers are notified in subscription order
    3. A failed write leaves the tree untouched and notifies nobody
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._root: Dict[str, Any] = copy.deepcopy(dict(initial)) if initial else {}
        self._subscriptions: Dict[int, Tuple[Tuple[str, ...], SnapshotCallback]] = {}
        self._subscription_ids = itertools.count(1)
        self._push_ids = itertools.count(1)

        # Test hooks
        self._pending_failures: List[BaseException] = []
        self._latency_seconds: float = 0.0
        self._write_log: List[Tuple[str, str]] = []

    # =========================================================================
    # READS
    # =========================================================================

    def get(self, path: str) -> Any:
        """Current value at path (deep copy), or None."""
        node: Any = self._root
        for part in split_path(path):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node) if node != {} else None

    def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        parts = split_path(path)
        subscription_id = next(self._subscription_ids)
        self._subscriptions[subscription_id] = (parts, on_snapshot)

        def unsubscribe() -> None:
            self._subscriptions.pop(subscription_id, None)

        on_snapshot(self.get(path))
        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def write_log(self) -> List[Tuple[str, str]]:
        """(operation, path) for every write that reached the store."""
        return list(self._write_log)

    # =========================================================================
    # WRITES
    # =========================================================================

    async def write(self, path: str, value: Any) -> None:
        await self._before_write("write", path)
        parts = split_path(path)
        if value is None:
            self._delete(parts)
        else:
            self._set(parts, copy.deepcopy(value))
        self._notify(parts)

    async def append(self, path: str, keyed_value: Mapping[str, Any]) -> None:
        await self._before_write("append", path)
        parts = split_path(path)
        for key, value in keyed_value.items():
            child = parts + split_path(str(key))
            if value is None:
                self._delete(child)
            else:
                self._set(child, copy.deepcopy(value))
        self._notify(parts)

    async def push(self, path: str, value: Any) -> str:
        await self._before_write("push", path)
        key = f"item{next(self._push_ids):06d}"
        parts = split_path(path) + (key,)
        self._set(parts, copy.deepcopy(value))
        self._notify(parts)
        return key

    async def remove(self, path: str) -> None:
        await self._before_write("remove", path)
        parts = split_path(path)
        self._delete(parts)
        self._notify(parts)

    # =========================================================================
    # FAULT INJECTION
    # =========================================================================

    def fail_next_write(self, error: Optional[BaseException] = None) -> None:
        """Make the next mutating call raise instead of applying."""
        self._pending_failures.append(error or StoreWriteError("write rejected"))

    def set_latency(self, seconds: float) -> None:
        """Delay every mutating call by the given number of seconds."""
        self._latency_seconds = seconds

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _before_write(self, operation: str, path: str) -> None:
        if self._latency_seconds:
            await asyncio.sleep(self._latency_seconds)
        if self._pending_failures:
            raise self._pending_failures.pop(0)
        self._write_log.append((operation, path))

    def _set(self, parts: Tuple[str, ...], value: Any) -> None:
        if not parts:
            if not isinstance(value, dict):
                raise StoreWriteError("root value must be a mapping")
            self._root = value
            return
        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[parts[-1]] = value

    def _delete(self, parts: Tuple[str, ...]) -> None:
        if not parts:
            self._root = {}
            return
        trail: List[Tuple[Dict[str, Any], str]] = []
        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                return
            trail.append((node, part))
            node = child
        node.pop(parts[-1], None)

        # Collapse containers left empty by the removal
        while trail and node == {}:
            parent, key = trail.pop()
            parent.pop(key, None)
            node = parent

    def _notify(self, changed: Tuple[str, ...]) -> None:
        for subscription_id, (parts, callback) in list(self._subscriptions.items()):
            # Skip subscribers removed by an earlier callback in this pass
            if subscription_id not in self._subscriptions:
                continue
            if _is_related(parts, changed):
                callback(self.get("/".join(parts)))
