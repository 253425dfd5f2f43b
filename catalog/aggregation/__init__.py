"""
Consensus Score Aggregation

RESPONSIBILITY: Derive one consensus score per catalog item
ALLOWED INPUTS: CatalogItem (synthetic or synced)
OUTPUTS: Raw score for ordering, one-decimal score for display

AGGREGATION RULE:
=================
votes = {base_rating} ∪ {latest event per rater}
score = mean(votes)

- The creator's base rating always counts, even with no other raters
- Only the newest event per rater counts (last-write-wins per rater)
- Equal timestamps from one rater: the event seen last in iteration wins

Pure functions only: no side effects, no I/O, no dependency on sync state.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from ..contracts.items import CatalogItem, RatingEvent


SCORE_FLOOR = 1.0
SCORE_CEILING = 10.0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Votes that went into an item's score, and the score itself."""
    item_id: str
    votes: Tuple[float, ...]  # base rating first, then raters in item order
    raw_score: float

    @property
    def vote_count(self) -> int:
        return len(self.votes)

    @property
    def rater_count(self) -> int:
        return len(self.votes) - 1

    @property
    def display_text(self) -> str:
        return format_score(self.raw_score)


def latest_event(events: Iterable[RatingEvent]) -> Optional[RatingEvent]:
    """Newest event by timestamp; ties go to the one encountered last."""
    latest = None
    for event in events:
        if latest is None or event.timestamp >= latest.timestamp:
            latest = event
    return latest


def latest_rating_by(item: CatalogItem, user_id: Optional[str]) -> Optional[int]:
    """The user's currently active rating value for the item, if any."""
    if not user_id:
        return None
    event = latest_event(item.events_for(user_id))
    return event.value if event else None


def compute_breakdown(item: CatalogItem) -> ScoreBreakdown:
    votes = [float(item.base_rating)]

    for _, events in item.rating_events:
        event = latest_event(events)
        if event is not None:
            votes.append(float(event.value))

    raw = sum(votes) / len(votes)
    raw = min(SCORE_CEILING, max(SCORE_FLOOR, raw))

    return ScoreBreakdown(item_id=item.id, votes=tuple(votes), raw_score=raw)


def compute_raw_score(item: CatalogItem) -> float:
    """Unrounded consensus score. Use this for ordering."""
    return compute_breakdown(item).raw_score


def compute_score(item: CatalogItem) -> float:
    """Consensus score rounded to one decimal for display."""
    return round_for_display(compute_raw_score(item))


def round_for_display(raw: float) -> float:
    """
    Round half away from zero to one decimal.

    Matches fixed-point formatting of the exact binary value, so 7.25 -> 7.3.
    """
    return float(_quantize(raw))


def format_score(raw: float) -> str:
    return str(_quantize(raw))


def _quantize(raw: float) -> Decimal:
    return Decimal(raw).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
