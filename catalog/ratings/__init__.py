"""
Rating Event Codec

RESPONSIBILITY: Validate and shape a single rater's submission
ALLOWED INPUTS: Target item, rater id, raw value
OUTPUTS: Result carrying a RatingEvent, or an explicit Error

WHAT THIS LAYER MUST NOT DO:
============================
- Perform any I/O (writing is the write coordinator's job)
- Consult synced collection state beyond the item it is handed
"""

from __future__ import annotations
from numbers import Integral
from typing import Optional

from ..config import RatingScaleConfig
from ..contracts.base import Error, ErrorKind, Result
from ..contracts.items import CatalogItem, RatingEvent
from ..temporal.clock import LogicalClock, resolve_clock


def validate_rating_value(value: object, low: int, high: int, field_name: str = "value") -> Optional[Error]:
    """
    Return a VALIDATION_FAILED error unless value is an integer in [low, high].

    Booleans are rejected even though they are ints in Python.
    """
    if isinstance(value, bool) or not isinstance(value, Integral):
        return Error.create(
            ErrorKind.VALIDATION_FAILED,
            f"{field_name} must be an integer",
            field=field_name,
            received=repr(value)
        )
    if not low <= value <= high:
        return Error.create(
            ErrorKind.VALIDATION_FAILED,
            f"{field_name} must be between {low} and {high}",
            field=field_name,
            received=value
        )
    return None


class RatingEventCodec:
    """
    Pure validator for rating submissions.

    CHECK ORDER:
    ============
    1. Rater id present
    2. Rater is not the item's creator (SELF_RATING_FORBIDDEN)
    3. Value is an integer on the rater scale
    """

    def __init__(
        self,
        scale: Optional[RatingScaleConfig] = None,
        clock: Optional[LogicalClock] = None
    ):
        self._scale = scale or RatingScaleConfig()
        self._clock = resolve_clock(clock)

    @property
    def scale(self) -> RatingScaleConfig:
        return self._scale

    def submit(self, item: CatalogItem, rater_id: str, value: object) -> Result:
        """Validate a submission and stamp it with the current time."""
        if not rater_id or not isinstance(rater_id, str):
            return Result.failure(Error.create(
                ErrorKind.VALIDATION_FAILED,
                "rater id is required",
                item_id=item.id
            ))

        if rater_id == item.created_by:
            return Result.failure(Error.create(
                ErrorKind.SELF_RATING_FORBIDDEN,
                "creators cannot rate their own items",
                item_id=item.id,
                rater_id=rater_id
            ))

        error = validate_rating_value(value, self._scale.min_value, self._scale.max_value)
        if error:
            return Result.failure(error.with_context("item_id", item.id))

        return Result.success(RatingEvent(value=int(value), timestamp=self._clock.now_ms()))
