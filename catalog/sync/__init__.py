"""
Collection Synchronization Layer

RESPONSIBILITY: Own the authoritative, locally usable view of the remote collection
ALLOWED INPUTS: Whole-collection snapshots pushed by the remote store
OUTPUTS: Ordered tuples of CatalogItem delivered to an update callback

WHAT THIS LAYER MUST NOT DO:
============================
- Reconstruct diffs (every snapshot is total and authoritative)
- Wait for decoration before delivering a snapshot
- Surface decoration failures as errors
- Deliver anything after unsubscription

RECONCILIATION:
===============
1. Snapshot arrives -> reshape raw records into CatalogItem (single boundary)
2. Re-apply images already resolved during this subscription
3. Deliver the items immediately
4. Fire one lookup per undecorated item (never duplicated while in flight)
5. A lookup that resolves after its item left the collection, or after
   unsubscription, is dropped (generation counter + membership check)
"""

from __future__ import annotations
from dataclasses import dataclass
from numbers import Real
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple
import asyncio

from ..config import RatingScaleConfig, SyncConfig
from ..contracts.events import AuditEventType
from ..contracts.items import (
    AgeRating, CatalogItem, Category, Language, MediaKind, RatingEvent
)
from ..contracts.ports import ImageLookup, RemoteCollectionStore
from ..decoration import NullImageLookup
from ..observability import ObservabilityEngine, resolve_observability


UpdateCallback = Callable[[Tuple[CatalogItem, ...]], None]


# =============================================================================
# RESHAPE (loosely-typed payload -> CatalogItem)
# =============================================================================

class RecordShapeError(ValueError):
    """A raw record cannot be mapped onto CatalogItem."""
    pass


@dataclass(frozen=True)
class ReshapedSnapshot:
    items: Tuple[CatalogItem, ...]
    skipped: Tuple[Tuple[str, str], ...]  # (item_id, reason)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _normalize_number(value: Real):
    as_float = float(value)
    return int(as_float) if as_float.is_integer() else as_float


def _require(raw: Mapping[str, Any], key: str) -> Any:
    if key not in raw or raw[key] is None:
        raise RecordShapeError(f"missing field '{key}'")
    return raw[key]


def _enum(enum_type, raw: Mapping[str, Any], key: str):
    value = _require(raw, key)
    try:
        return enum_type(value)
    except ValueError:
        raise RecordShapeError(f"invalid {key} {value!r}") from None


def _integer(raw: Mapping[str, Any], key: str) -> int:
    value = _require(raw, key)
    if not _is_number(value) or not float(value).is_integer():
        raise RecordShapeError(f"{key} must be an integer, got {value!r}")
    return int(value)


def _rating_entries(entries: Any, low: float, high: float) -> Tuple[RatingEvent, ...]:
    """
    Chronological, well-formed events of one rater.

    The newest entry decides whether the rater counts at all: if its value is
    malformed the rater is dropped, so an older vote never resurfaces. Older
    malformed entries are simply left out. Entries without a usable timestamp
    cannot be ordered and are ignored.
    """
    if isinstance(entries, Mapping):
        pairs = list(entries.items())
    elif isinstance(entries, list):
        pairs = [(str(i), e) for i, e in enumerate(entries)]
    else:
        return ()

    timed = []
    for key, entry in pairs:
        if not isinstance(entry, Mapping):
            continue
        timestamp = entry.get('timestamp')
        if not _is_number(timestamp):
            try:
                timestamp = int(key)
            except (TypeError, ValueError):
                continue
        timed.append((int(timestamp), entry.get('value')))

    if not timed:
        return ()

    # sorted() is stable: equal timestamps keep their snapshot order, last one wins
    timed.sort(key=lambda pair: pair[0])

    def valid(value: Any) -> bool:
        return _is_number(value) and low <= value <= high

    if not valid(timed[-1][1]):
        return ()

    return tuple(
        RatingEvent(value=_normalize_number(value), timestamp=timestamp)
        for timestamp, value in timed
        if valid(value)
    )


def _reshape_or_raise(
    item_id: str,
    raw: Any,
    scale: RatingScaleConfig
) -> CatalogItem:
    if not isinstance(raw, Mapping):
        raise RecordShapeError("record is not a mapping")

    title = _require(raw, 'title')
    if not isinstance(title, str) or not title.strip():
        raise RecordShapeError("title must be a non-empty string")

    base_rating = _require(raw, 'rating')
    if not _is_number(base_rating) or not scale.base_min <= base_rating <= scale.base_max:
        raise RecordShapeError(f"rating out of range: {base_rating!r}")

    created_by = _require(raw, 'userId')
    if not isinstance(created_by, str) or not created_by:
        raise RecordShapeError("userId must be a non-empty string")

    ratings = raw.get('ratings') or {}
    rating_events = []
    if isinstance(ratings, Mapping):
        for rater_id, entries in ratings.items():
            events = _rating_entries(entries, scale.base_min, scale.base_max)
            if events:
                rating_events.append((str(rater_id), events))

    return CatalogItem(
        id=item_id,
        title=title,
        media_kind=_enum(MediaKind, raw, 'contentType'),
        release_year=_integer(raw, 'year'),
        base_rating=_normalize_number(base_rating),
        category=_enum(Category, raw, 'category'),
        language=_enum(Language, raw, 'language'),
        age_rating=_enum(AgeRating, raw, 'ageRating'),
        created_at=_integer(raw, 'timestamp'),
        created_by=created_by,
        created_by_name=str(raw.get('username') or ""),
        rating_events=tuple(rating_events),
    )


def reshape_record(
    item_id: str,
    raw: Any,
    scale: Optional[RatingScaleConfig] = None
) -> Optional[CatalogItem]:
    """Map one raw store record onto CatalogItem, or None if it is malformed."""
    try:
        return _reshape_or_raise(item_id, raw, scale or RatingScaleConfig())
    except RecordShapeError:
        return None


def reshape_snapshot(
    snapshot: Any,
    scale: Optional[RatingScaleConfig] = None
) -> ReshapedSnapshot:
    """
    Map a whole-collection snapshot onto CatalogItems in snapshot order.

    An empty or None snapshot yields no items. Malformed records are skipped
    and reported, never fatal to the rest of the snapshot.
    """
    scale = scale or RatingScaleConfig()
    if not isinstance(snapshot, Mapping):
        return ReshapedSnapshot(items=(), skipped=())

    items: List[CatalogItem] = []
    skipped: List[Tuple[str, str]] = []
    for item_id, raw in snapshot.items():
        try:
            items.append(_reshape_or_raise(str(item_id), raw, scale))
        except RecordShapeError as e:
            skipped.append((str(item_id), str(e)))

    return ReshapedSnapshot(items=tuple(items), skipped=tuple(skipped))


# =============================================================================
# COLLECTION SYNC
# =============================================================================

class CollectionSync:
    """
    Single whole-collection subscription plus best-effort decoration.

    OWNERSHIP:
    ==========
    The current item tuple is owned exclusively by this object. Consumers get
    immutable tuples; writes never touch it and come back via the store.

    CONCURRENCY:
    ============
    Runs on one event loop. Decoration lookups are independent asyncio tasks;
    none of them blocks another or the delivery of a snapshot.
    """

    LAYER = 'sync'

    def __init__(
        self,
        store: RemoteCollectionStore,
        image_lookup: Optional[ImageLookup] = None,
        config: Optional[SyncConfig] = None,
        decorate_kind: Optional[MediaKind] = None,
        scale: Optional[RatingScaleConfig] = None,
        observability: Optional[ObservabilityEngine] = None
    ):
        self._store = store
        self._image_lookup = image_lookup or NullImageLookup()
        self._config = config or SyncConfig()
        self._decorate_kind = decorate_kind
        self._scale = scale or RatingScaleConfig()
        self._observability = resolve_observability(observability)

        self._items: Tuple[CatalogItem, ...] = ()
        self._index: Dict[str, CatalogItem] = {}
        self._on_update: Optional[UpdateCallback] = None
        self._store_unsubscribe: Optional[Callable[[], None]] = None
        self._active = False
        self._generation = 0

        # Per-subscription decoration state
        self._images: Dict[str, Optional[str]] = {}
        self._in_flight: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()

    # =========================================================================
    # PUBLIC INTERFACE
    # =========================================================================

    def start(self, on_update: UpdateCallback) -> Callable[[], None]:
        """
        Subscribe to the collection. Returns an idempotent unsubscribe function.

        The store may deliver its current value synchronously, so on_update
        can be invoked before start() returns.
        """
        if self._active:
            raise RuntimeError("CollectionSync is already started")

        self._generation += 1
        self._active = True
        self._on_update = on_update
        self._items = ()
        self._index = {}
        self._images = {}
        self._in_flight = set()

        self._observability.log_audit(
            self.LAYER, "subscribe",
            path=self._config.collection_path,
            generation=self._generation
        )

        generation = self._generation
        self._store_unsubscribe = self._store.subscribe(
            self._config.collection_path,
            lambda snapshot: self._on_snapshot(snapshot, generation)
        )

        def unsubscribe() -> None:
            # Bound to this subscription: a stale handle never stops a later one
            if self._active and self._generation == generation:
                self.stop()

        return unsubscribe

    def stop(self) -> None:
        """Stop delivering updates. Safe to call any number of times."""
        if not self._active:
            return
        self._active = False
        self._on_update = None

        unsubscribe, self._store_unsubscribe = self._store_unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

        self._observability.log_audit(
            self.LAYER, "unsubscribe",
            generation=self._generation,
            in_flight=len(self._in_flight)
        )

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def items(self) -> Tuple[CatalogItem, ...]:
        """Latest reconciled items (decorated where images are known)."""
        return self._items

    def find(self, item_id: str) -> Optional[CatalogItem]:
        return self._index.get(item_id)

    async def wait_for_decorations(self) -> None:
        """Wait until every lookup started so far has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # =========================================================================
    # SNAPSHOT HANDLING
    # =========================================================================

    def _on_snapshot(self, snapshot: Any, generation: int) -> None:
        if not self._active or generation != self._generation:
            return

        reshaped = reshape_snapshot(snapshot, self._scale)

        items = tuple(
            item.with_display_image(self._images[item.id])
            if self._images.get(item.id) else item
            for item in reshaped.items
        )
        self._items = items
        self._index = {item.id: item for item in items}

        self._observability.collect_metric("snapshots_received_total", 1)
        self._observability.collect_metric("snapshot_item_count", len(items))
        self._observability.log_audit(
            self.LAYER, "snapshot",
            event_type=AuditEventType.SNAPSHOT,
            item_count=len(items),
            skipped=len(reshaped.skipped)
        )
        for item_id, reason in reshaped.skipped:
            self._observability.log_audit(
                self.LAYER, "record_skipped",
                event_type=AuditEventType.ERROR,
                entity_id=item_id,
                reason=reason
            )

        self._schedule_decorations(items, generation)
        self._deliver()

    def _deliver(self) -> None:
        if not self._active or self._on_update is None:
            return
        try:
            self._on_update(self._items)
        except Exception as e:
            # Consumer faults must not travel back into the store's write path
            self._observability.log_audit(
                self.LAYER, "delivery_raised",
                event_type=AuditEventType.ERROR,
                error_type=type(e).__name__,
                error=str(e),
                item_count=len(self._items)
            )

    # =========================================================================
    # DECORATION
    # =========================================================================

    def _needs_decoration(self, item: CatalogItem) -> bool:
        if item.display_image:
            return False
        if self._decorate_kind is not None and item.media_kind != self._decorate_kind:
            return False
        return item.id not in self._images and item.id not in self._in_flight

    def _schedule_decorations(self, items: Tuple[CatalogItem, ...], generation: int) -> None:
        pending = [item for item in items if self._needs_decoration(item)]
        if not pending:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._observability.log_audit(
                'decoration', "skipped_no_event_loop",
                event_type=AuditEventType.DECORATION,
                pending=len(pending)
            )
            return

        for item in pending:
            self._in_flight.add(item.id)
            self._observability.collect_metric("decoration_lookups_total", 1)
            task = loop.create_task(
                self._decorate(item.id, item.title, item.media_kind, generation)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _decorate(
        self,
        item_id: str,
        title: str,
        media_kind: MediaKind,
        generation: int
    ) -> None:
        try:
            url = await self._image_lookup.fetch_image(title, media_kind)
        except Exception as e:
            # A missing image is cosmetic: record it and carry on without one
            url = None
            self._observability.log_audit(
                'decoration', "lookup_raised",
                event_type=AuditEventType.DECORATION,
                entity_id=item_id,
                error_type=type(e).__name__,
                error=str(e)
            )
        finally:
            if generation == self._generation:
                self._in_flight.discard(item_id)

        if not self._active or generation != self._generation:
            self._observability.log_audit(
                'decoration', "discarded_after_unsubscribe",
                event_type=AuditEventType.DECORATION,
                entity_id=item_id
            )
            return

        if item_id not in self._index:
            self._observability.log_audit(
                'decoration', "discarded_item_removed",
                event_type=AuditEventType.DECORATION,
                entity_id=item_id
            )
            return

        self._images[item_id] = url
        if not url:
            self._observability.collect_metric("decoration_failures_total", 1)
            self._observability.log_audit(
                'decoration', "no_image",
                event_type=AuditEventType.DECORATION,
                entity_id=item_id
            )
            return

        self._items = tuple(
            item.with_display_image(url) if item.id == item_id else item
            for item in self._items
        )
        self._index[item_id] = self._index[item_id].with_display_image(url)
        self._observability.log_audit(
            'decoration', "decorated",
            event_type=AuditEventType.DECORATION,
            entity_id=item_id
        )
        self._deliver()
