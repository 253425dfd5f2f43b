"""
View Projection Interfaces

RESPONSIBILITY: Filtered, sorted, paginated views over a synced collection
ALLOWED INPUTS: An item sequence plus explicit projection options
OUTPUTS: Deterministic Projection (slice + page count)

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate the items it is handed
- Renormalize a requested page (an out-of-range page yields an empty slice;
  clamping is the caller's decision)
- Sort by display-rounded scores (the unrounded score orders the ranking)

ORDERING:
=========
- LATEST: created_at descending
- SCORE: unrounded consensus score descending, ties by created_at descending
- Both sorts are stable, so equal keys keep their input order
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple
import math
import time

from ..aggregation import compute_raw_score
from ..config import ProjectionConfig
from ..contracts.events import AuditEventType
from ..contracts.items import CatalogItem, Category, MediaKind
from ..observability import ObservabilityEngine, resolve_observability


class SortBy(Enum):
    LATEST = "latest"
    SCORE = "score"


ItemPredicate = Callable[[CatalogItem], bool]


@dataclass(frozen=True)
class ProjectionOptions:
    """
    Explicit projection request.

    media_kind is mandatory: a projection always serves exactly one kind.
    category, release_year and predicate each narrow the view further.
    """
    media_kind: MediaKind
    sort_by: SortBy = SortBy.LATEST
    page: int = 1
    page_size: int = 15
    category: Optional[Category] = None
    release_year: Optional[int] = None
    predicate: Optional[ItemPredicate] = None

    def __post_init__(self):
        if not isinstance(self.media_kind, MediaKind):
            object.__setattr__(self, 'media_kind', MediaKind(self.media_kind))
        if not isinstance(self.sort_by, SortBy):
            object.__setattr__(self, 'sort_by', SortBy(self.sort_by))
        if self.category is not None and not isinstance(self.category, Category):
            object.__setattr__(self, 'category', Category(self.category))
        if self.page < 1:
            raise ValueError("page is 1-based and must be at least 1")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")

    def matches(self, item: CatalogItem) -> bool:
        if item.media_kind != self.media_kind:
            return False
        if self.category is not None and item.category != self.category:
            return False
        if self.release_year is not None and item.release_year != self.release_year:
            return False
        if self.predicate is not None and not self.predicate(item):
            return False
        return True


@dataclass(frozen=True)
class Projection:
    """The slice a consumer should render, plus paging facts."""
    slice: Tuple[CatalogItem, ...]
    total_pages: int
    total_count: int
    page: int
    page_size: int

    @property
    def start_index(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def is_empty(self) -> bool:
        return not self.slice

    def ranked(self) -> Tuple[Tuple[int, CatalogItem], ...]:
        """1-based ranks across pages: rank = start_index + position + 1."""
        return tuple(
            (self.start_index + position + 1, item)
            for position, item in enumerate(self.slice)
        )


def total_pages_for(count: int, page_size: int) -> int:
    return max(1, math.ceil(count / page_size))


def order_items(items: Sequence[CatalogItem], sort_by: SortBy) -> Tuple[CatalogItem, ...]:
    """Stable ordering for the given sort mode."""
    if sort_by == SortBy.LATEST:
        return tuple(sorted(items, key=lambda item: item.created_at, reverse=True))

    scored = [(compute_raw_score(item), item) for item in items]
    scored.sort(key=lambda pair: (pair[0], pair[1].created_at), reverse=True)
    return tuple(item for _, item in scored)


def project(items: Sequence[CatalogItem], options: ProjectionOptions) -> Projection:
    """
    Pure projection: identical inputs always yield an identical Projection.
    """
    filtered = [item for item in items if options.matches(item)]
    ordered = order_items(filtered, options.sort_by)

    start = (options.page - 1) * options.page_size
    return Projection(
        slice=ordered[start:start + options.page_size],
        total_pages=total_pages_for(len(ordered), options.page_size),
        total_count=len(ordered),
        page=options.page,
        page_size=options.page_size
    )


class ViewProjector:
    """
    Projection entry point for consumers.

    Stateless apart from observability: each call is a pure function of its
    arguments.
    """

    LAYER = 'query'

    def __init__(
        self,
        config: Optional[ProjectionConfig] = None,
        observability: Optional[ObservabilityEngine] = None
    ):
        self._config = config or ProjectionConfig()
        self._observability = resolve_observability(observability)

    @property
    def page_size(self) -> int:
        return self._config.page_size

    def options(self, media_kind: MediaKind, **overrides) -> ProjectionOptions:
        """Build options with the configured page size as default."""
        overrides.setdefault('page_size', self._config.page_size)
        return ProjectionOptions(media_kind=media_kind, **overrides)

    def project(self, items: Sequence[CatalogItem], options: ProjectionOptions) -> Projection:
        start_time = time.perf_counter()
        projection = project(items, options)
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        self._observability.collect_metric("projection_duration_ms", elapsed_ms)
        self._observability.log_audit(
            self.LAYER, "project",
            event_type=AuditEventType.QUERY,
            media_kind=options.media_kind.value,
            sort_by=options.sort_by.value,
            page=options.page,
            total_count=projection.total_count
        )
        return projection

    def top_of_year(
        self,
        items: Sequence[CatalogItem],
        media_kind: MediaKind,
        year: int,
        page: int = 1
    ) -> Projection:
        """Score-ordered view of one release year; pair with Projection.ranked()."""
        return self.project(items, self.options(
            media_kind,
            sort_by=SortBy.SCORE,
            release_year=year,
            page=page
        ))

    def clamp_page(self, page: int, projection: Projection) -> int:
        """Helper for callers that want to snap a stale page back into range."""
        return min(max(1, page), projection.total_pages)
