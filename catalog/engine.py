"""
Catalog Service Orchestration

Unified interface wiring every catalog layer around one injected store.

LAYER FLOW:
===========
user action -> WriteCoordinator -> store write
store snapshot -> CollectionSync -> (Aggregator per item) -> ViewProjector

NO LAYER BYPASSES THIS FLOW: writes never touch local state, and the
subscription is the single source of truth.
"""

from __future__ import annotations
from typing import Optional, Sequence, Tuple, Union

from .config import CatalogConfig
from .contracts.base import Result
from .contracts.items import CatalogItem, DraftState, ItemDraft, MediaKind
from .contracts.ports import IdentityProvider, ImageLookup, RemoteCollectionStore
from .decoration import create_image_lookup
from .observability import ObservabilityEngine
from .presentation import CardViewModel, map_item_to_card
from .query import Projection, ProjectionOptions, ViewProjector
from .sync import CollectionSync, UpdateCallback
from .temporal.clock import LogicalClock, resolve_clock
from .writes import WriteCoordinator


class CatalogService:
    """
    One subscription, one projector, one write coordinator.

    Collaborators are injected so tests can substitute a fake store,
    a fixed identity and a deterministic clock.
    """

    def __init__(
        self,
        store: RemoteCollectionStore,
        identity: IdentityProvider,
        config: Optional[CatalogConfig] = None,
        image_lookup: Optional[ImageLookup] = None,
        clock: Optional[LogicalClock] = None,
        observability: Optional[ObservabilityEngine] = None,
        decorate_kind: Optional[MediaKind] = None
    ):
        self._config = config or CatalogConfig()
        self._identity = identity
        self._clock = resolve_clock(clock)
        self._observability = observability or ObservabilityEngine()

        self._sync = CollectionSync(
            store=store,
            image_lookup=image_lookup or create_image_lookup(self._config.decoration),
            config=self._config.sync,
            decorate_kind=decorate_kind,
            scale=self._config.ratings,
            observability=self._observability
        )
        self._projector = ViewProjector(self._config.projection, self._observability)
        self._writes = WriteCoordinator(
            store=store,
            identity=identity,
            item_lookup=self._sync.find,
            sync_config=self._config.sync,
            write_config=self._config.writes,
            scale=self._config.ratings,
            clock=self._clock,
            observability=self._observability
        )

    # =========================================================================
    # SYNC INTERFACE
    # =========================================================================

    def start(self, on_update: Optional[UpdateCallback] = None):
        """Start syncing. Returns the idempotent unsubscribe function."""
        self._observability.log_audit('engine', "start")
        return self._sync.start(on_update or (lambda items: None))

    def stop(self) -> None:
        self._sync.stop()

    async def wait_for_decorations(self) -> None:
        await self._sync.wait_for_decorations()

    def current_items(self) -> Tuple[CatalogItem, ...]:
        return self._sync.items

    # =========================================================================
    # QUERY INTERFACE
    # =========================================================================

    def options(self, media_kind: MediaKind, **overrides) -> ProjectionOptions:
        return self._projector.options(media_kind, **overrides)

    def project(
        self,
        options: ProjectionOptions,
        items: Optional[Sequence[CatalogItem]] = None
    ) -> Projection:
        """Project the current synced items (or the given ones)."""
        return self._projector.project(self._sync.items if items is None else items, options)

    def top_of_year(self, media_kind: MediaKind, year: int, page: int = 1) -> Projection:
        return self._projector.top_of_year(self._sync.items, media_kind, year, page)

    def cards(self, projection: Projection, ranked: bool = False) -> Tuple[CardViewModel, ...]:
        """Card view models for a projection, from the current user's view."""
        user = self._identity.current_user
        return tuple(
            map_item_to_card(item, user, rank=rank if ranked else None, scale=self._config.ratings)
            for rank, item in projection.ranked()
        )

    # =========================================================================
    # WRITE INTERFACE
    # =========================================================================

    async def create_item(self, draft: Union[ItemDraft, DraftState]) -> Result:
        return await self._writes.create_item(draft)

    async def delete_item(self, item_id: str, requester_id: Optional[str] = None) -> Result:
        return await self._writes.delete_item(item_id, self._resolve_user_id(requester_id))

    async def submit_rating(self, item_id: str, value: object, rater_id: Optional[str] = None) -> Result:
        return await self._writes.submit_rating(item_id, self._resolve_user_id(rater_id), value)

    def _resolve_user_id(self, user_id: Optional[str]) -> Optional[str]:
        if user_id:
            return user_id
        user = self._identity.current_user
        return user.id if user else None

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def config(self) -> CatalogConfig:
        return self._config

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    @property
    def sync(self) -> CollectionSync:
        return self._sync

    @property
    def projector(self) -> ViewProjector:
        return self._projector

    @property
    def writes(self) -> WriteCoordinator:
        return self._writes
