"""
Presentation Mapping

Converts catalog items into read-only card view models.

MAPPING BOUNDARY:
=================
This is the ONLY place where CatalogItem becomes something a UI renders.
No rendering happens here, only the derivation of display values.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

from ..aggregation import compute_breakdown, latest_rating_by
from ..config import RatingScaleConfig
from ..contracts.items import CatalogItem, Category, User


_CATEGORY_LABELS = {
    Category.MUST_WATCH: "Must Watch",
    Category.GOOD: "Good",
    Category.ONE_TIME_WATCH: "One Time Watch",
    Category.BAD: "Bad",
}


def format_category(category: Category) -> str:
    """'must-watch' -> 'Must Watch'."""
    return _CATEGORY_LABELS[category]


@dataclass(frozen=True)
class CardViewModel:
    """ViewModel for one catalog card."""
    item_id: str
    title: str
    score_text: str      # e.g. "7.0"
    vote_count: int
    category_label: str  # e.g. "Must Watch"
    category: str
    language_label: str  # e.g. "Hindi"
    age_rating: str
    release_year: int
    created_by_name: str
    image_url: Optional[str]
    current_user_rating: Optional[int]
    rating_choices: Tuple[int, ...]
    can_rate: bool
    can_delete: bool
    rank: Optional[int] = None


def map_item_to_card(
    item: CatalogItem,
    current_user: Optional[User],
    rank: Optional[int] = None,
    scale: Optional[RatingScaleConfig] = None
) -> CardViewModel:
    """Map a synced item to its card, from the current user's point of view."""
    scale = scale or RatingScaleConfig()
    breakdown = compute_breakdown(item)
    user_id = current_user.id if current_user else None
    can_rate = current_user is not None and current_user.id != item.created_by

    return CardViewModel(
        item_id=item.id,
        title=item.title,
        score_text=breakdown.display_text,
        vote_count=breakdown.vote_count,
        category_label=format_category(item.category),
        category=item.category.value,
        language_label=item.language.value.capitalize(),
        age_rating=item.age_rating.value,
        release_year=item.release_year,
        created_by_name=item.created_by_name,
        image_url=item.display_image,
        current_user_rating=latest_rating_by(item, user_id),
        rating_choices=scale.choices if can_rate else (),
        can_rate=can_rate,
        can_delete=current_user is not None,
        rank=rank
    )
