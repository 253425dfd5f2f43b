"""
Integration Test Fixtures

Deterministic factories for catalog items, wire records and snapshots.
All fixtures are explicit - no random generation.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from catalog.contracts.items import (
    AgeRating, CatalogItem, Category, Language, MediaKind, RatingEvent, User
)


# =============================================================================
# FIXED TIMESTAMPS (epoch milliseconds)
# =============================================================================

T0 = 1_767_225_600_000  # 2026-01-01T00:00:00Z
MINUTE = 60_000

CREATOR = User(id="u1", display_name="alice")
RATER = User(id="u2", display_name="bob")
OTHER_RATER = User(id="u3", display_name="carol")


# =============================================================================
# DOMAIN OBJECTS
# =============================================================================

def make_item(
    item_id: str = "item_a",
    *,
    title: str = "Arrival",
    base_rating: float = 8,
    created_by: str = CREATOR.id,
    created_by_name: str = CREATOR.display_name,
    media_kind: MediaKind = MediaKind.MOVIE,
    category: Category = Category.GOOD,
    language: Language = Language.ENGLISH,
    age_rating: AgeRating = AgeRating.UNDER_18,
    release_year: int = 2024,
    created_at: int = T0,
    ratings: Optional[Dict[str, Iterable[Tuple[int, int]]]] = None,
    display_image: Optional[str] = None,
) -> CatalogItem:
    """ratings maps rater id -> [(value, timestamp), ...] in arrival order."""
    rating_events = tuple(
        (rater_id, tuple(RatingEvent(value=v, timestamp=ts) for v, ts in entries))
        for rater_id, entries in (ratings or {}).items()
    )
    return CatalogItem(
        id=item_id,
        title=title,
        media_kind=media_kind,
        release_year=release_year,
        base_rating=base_rating,
        category=category,
        language=language,
        age_rating=age_rating,
        created_at=created_at,
        created_by=created_by,
        created_by_name=created_by_name,
        rating_events=rating_events,
        display_image=display_image,
    )


def make_items(count: int, **overrides) -> List[CatalogItem]:
    """count items with ids item_000.. and strictly increasing created_at."""
    return [
        make_item(f"item_{i:03d}", title=f"Title {i}", created_at=T0 + i * MINUTE, **overrides)
        for i in range(count)
    ]


# =============================================================================
# WIRE RECORDS
# =============================================================================

def make_record(
    *,
    title: str = "Arrival",
    content_type: str = "movie",
    year: int = 2024,
    rating: int = 8,
    category: str = "good",
    language: str = "english",
    age_rating: str = "under18",
    timestamp: int = T0,
    user_id: str = CREATOR.id,
    username: str = CREATOR.display_name,
    ratings: Optional[Dict[str, Dict[str, Dict[str, int]]]] = None,
) -> dict:
    """A record exactly as the store holds it under movies/<id>."""
    record = {
        'title': title,
        'contentType': content_type,
        'year': year,
        'rating': rating,
        'category': category,
        'language': language,
        'ageRating': age_rating,
        'timestamp': timestamp,
        'userId': user_id,
        'username': username,
    }
    if ratings is not None:
        record['ratings'] = ratings
    return record


def rating_entries(*pairs: Tuple[int, int]) -> Dict[str, Dict[str, int]]:
    """Wire form of one rater's events: {str(ts): {value, timestamp}}."""
    return {str(ts): {'value': value, 'timestamp': ts} for value, ts in pairs}
