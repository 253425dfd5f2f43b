"""
Catalog Item Contracts

Immutable representation of rated works and the rating events attached to them.

SHAPE GUARANTEES:
=================
- CatalogItem is the ONLY shape the rest of the core sees; loosely-typed
  store payloads are reshaped into it at the sync boundary
- Descriptive fields never change after creation
- Rating events per rater are held in chronological order
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple
from enum import Enum


# =============================================================================
# ENUMS (Closed World)
# =============================================================================

class MediaKind(Enum):
    """Kind of work. Values are the store's wire values."""
    MOVIE = "movie"
    SERIES = "tv-series"

    @property
    def search_type(self) -> str:
        """Path segment used by the metadata search API."""
        return "movie" if self is MediaKind.MOVIE else "tv"


class Category(Enum):
    """Creator's verdict on the work."""
    MUST_WATCH = "must-watch"
    GOOD = "good"
    ONE_TIME_WATCH = "one-time-watch"
    BAD = "bad"


class Language(Enum):
    HINDI = "hindi"
    TELUGU = "telugu"
    TAMIL = "tamil"
    MALAYALAM = "malayalam"
    ENGLISH = "english"
    FOREIGN = "foreign"


class AgeRating(Enum):
    ADULT = "18+"
    UNDER_18 = "under18"


# =============================================================================
# IDENTITY
# =============================================================================

@dataclass(frozen=True)
class User:
    """Identified user as exposed by the identity provider."""
    id: str
    display_name: str

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("User id must be a non-empty string")


# =============================================================================
# RATING EVENTS
# =============================================================================

@dataclass(frozen=True)
class RatingEvent:
    """
    A single rater's vote at a point in time.

    `timestamp` is epoch milliseconds. Later events from the same rater
    supersede earlier ones.
    """
    value: int
    timestamp: int

    def to_record(self) -> Dict[str, int]:
        return {'value': self.value, 'timestamp': self.timestamp}

    @property
    def key(self) -> str:
        """Store key under which this event is appended."""
        return str(self.timestamp)


# =============================================================================
# CATALOG ITEM
# =============================================================================

@dataclass(frozen=True)
class CatalogItem:
    """
    One rated work with its descriptive fields and rating history.

    `rating_events` maps rater id -> chronological events, held as a tuple of
    pairs so the item stays immutable. `display_image` is derived and
    non-authoritative; it may be absent at any time.
    """
    id: str
    title: str
    media_kind: MediaKind
    release_year: int
    base_rating: float
    category: Category
    language: Language
    age_rating: AgeRating
    created_at: int
    created_by: str
    created_by_name: str = ""
    rating_events: Tuple[Tuple[str, Tuple[RatingEvent, ...]], ...] = field(default_factory=tuple)
    display_image: Optional[str] = None

    @property
    def rater_ids(self) -> Tuple[str, ...]:
        return tuple(rater_id for rater_id, _ in self.rating_events)

    def events_for(self, rater_id: str) -> Tuple[RatingEvent, ...]:
        for candidate, events in self.rating_events:
            if candidate == rater_id:
                return events
        return ()

    def with_display_image(self, url: Optional[str]) -> CatalogItem:
        """Return a copy carrying the given image (immutable)."""
        return replace(self, display_image=url)


# =============================================================================
# DRAFTS (caller-held creation state)
# =============================================================================

def _current_year() -> int:
    # UTC, like LogicalClock in live mode; a replay clock may disagree
    return datetime.now(timezone.utc).year


@dataclass(frozen=True)
class ItemDraft:
    """
    Unvalidated creation input.

    Fields accept either enum members or their wire strings; validation and
    coercion happen in the write coordinator, never here.
    """
    title: str = ""
    media_kind: object = MediaKind.MOVIE
    release_year: object = field(default_factory=_current_year)
    base_rating: object = 5
    category: object = Category.GOOD
    language: object = Language.HINDI
    age_rating: object = AgeRating.UNDER_18


class DraftState:
    """Mutable holder for the draft a caller is editing."""

    def __init__(self, draft: Optional[ItemDraft] = None):
        self._draft = draft or ItemDraft()

    @property
    def draft(self) -> ItemDraft:
        return self._draft

    def update(self, **changes) -> ItemDraft:
        self._draft = replace(self._draft, **changes)
        return self._draft

    def reset(self) -> None:
        self._draft = ItemDraft()

    def __repr__(self) -> str:
        return f"DraftState({self._draft!r})"
