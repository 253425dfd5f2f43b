"""
Rating Submission Tests

INVARIANTS TESTED:
1. Creators can never rate their own item
2. Only integers on the rater scale are accepted
3. Accepted events are stamped with the injected clock
"""

import pytest

from catalog.config import RatingScaleConfig
from catalog.contracts.base import ErrorKind
from catalog.ratings import RatingEventCodec, validate_rating_value
from catalog.temporal.clock import LogicalClock

from tests.integration.fixtures import T0, CREATOR, RATER, make_item


@pytest.fixture
def codec():
    return RatingEventCodec(clock=LogicalClock.from_millis([T0, T0 + 1, T0 + 2]))


class TestSelfRating:

    def test_creator_is_rejected(self, codec):
        result = codec.submit(make_item(created_by=CREATOR.id), CREATOR.id, 8)
        assert result.error_kind == ErrorKind.SELF_RATING_FORBIDDEN

    def test_self_rating_checked_before_range(self, codec):
        """An out-of-range creator vote reports the self-rating, not the range."""
        result = codec.submit(make_item(created_by=CREATOR.id), CREATOR.id, 99)
        assert result.error_kind == ErrorKind.SELF_RATING_FORBIDDEN

    def test_missing_rater_id(self, codec):
        assert codec.submit(make_item(), "", 8).error_kind == ErrorKind.VALIDATION_FAILED


class TestValueRange:

    @pytest.mark.parametrize("value", [6, 7, 8, 9, 10])
    def test_rater_scale_accepted(self, codec, value):
        result = codec.submit(make_item(), RATER.id, value)
        assert result.is_success
        assert result.value.value == value

    @pytest.mark.parametrize("value", [0, 1, 5, 11, -3])
    def test_out_of_scale_rejected(self, codec, value):
        result = codec.submit(make_item(), RATER.id, value)
        assert result.error_kind == ErrorKind.VALIDATION_FAILED
        assert result.error.context_value("item_id") == "item_a"

    @pytest.mark.parametrize("value", [7.5, "8", None, True])
    def test_non_integers_rejected(self, codec, value):
        assert codec.submit(make_item(), RATER.id, value).error_kind == ErrorKind.VALIDATION_FAILED

    def test_custom_scale(self):
        codec = RatingEventCodec(scale=RatingScaleConfig(min_value=1, max_value=5, base_max=10))
        assert codec.submit(make_item(), RATER.id, 1).is_success
        assert codec.submit(make_item(), RATER.id, 6).is_failure


class TestTimestamps:

    def test_events_carry_clock_time(self, codec):
        first = codec.submit(make_item(), RATER.id, 6).value
        second = codec.submit(make_item(), RATER.id, 10).value
        assert (first.timestamp, second.timestamp) == (T0, T0 + 1)
        assert second.key == str(T0 + 1)
        assert second.to_record() == {'value': 10, 'timestamp': T0 + 1}

    def test_rejections_do_not_consume_ticks(self, codec):
        codec.submit(make_item(), RATER.id, 3)
        assert codec.submit(make_item(), RATER.id, 7).value.timestamp == T0


def test_validate_rating_value_names_field():
    error = validate_rating_value(1800, 1900, 2026, field_name="release_year")
    assert error.context_value("field") == "release_year"
    assert validate_rating_value(2000, 1900, 2026) is None
