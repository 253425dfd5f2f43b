"""
Property Tests for Aggregation and Projection
Verifies the score bounds, last-write-wins per rater, and projection determinism.
"""

from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from catalog.aggregation import compute_breakdown, compute_raw_score, compute_score, latest_event, round_for_display
from catalog.contracts.items import Category, MediaKind
from catalog.query import ProjectionOptions, SortBy, project

from tests.integration.fixtures import T0, make_item


# =============================================================================
# STRATEGIES (Generators)
# =============================================================================

rater_ids = st.sampled_from(["u2", "u3", "u4", "u5", "u6"])


@composite
def rating_histories(draw):
    """rater id -> list of (value, timestamp) with unique timestamps per rater."""
    raters = draw(st.lists(rater_ids, unique=True, max_size=5))
    histories = {}
    for rater in raters:
        timestamps = draw(st.lists(
            st.integers(min_value=T0, max_value=T0 + 10_000_000),
            unique=True, min_size=1, max_size=6
        ))
        histories[rater] = [
            (draw(st.integers(min_value=6, max_value=10)), ts) for ts in timestamps
        ]
    return histories


@composite
def catalog_items(draw, item_id):
    return make_item(
        item_id,
        base_rating=draw(st.integers(min_value=1, max_value=10)),
        media_kind=draw(st.sampled_from(MediaKind)),
        category=draw(st.sampled_from(Category)),
        created_at=draw(st.integers(min_value=T0, max_value=T0 + 1_000)),
        ratings=draw(rating_histories()),
    )


@composite
def item_lists(draw):
    count = draw(st.integers(min_value=0, max_value=20))
    return [draw(catalog_items(f"item_{i:03d}")) for i in range(count)]


# =============================================================================
# AGGREGATION PROPERTIES
# =============================================================================

@given(base=st.integers(min_value=1, max_value=10), histories=rating_histories())
def test_score_is_mean_of_base_and_latest_per_rater(base, histories):
    item = make_item(base_rating=base, ratings=histories)

    votes = [base] + [max(events, key=lambda e: e[1])[0] for events in histories.values()]
    expected = sum(votes) / len(votes)

    assert 1.0 <= compute_raw_score(item) <= 10.0
    assert abs(compute_raw_score(item) - expected) < 1e-9
    assert compute_score(item) == round_for_display(expected)


@given(histories=rating_histories(), data=st.data())
def test_arrival_order_within_rater_is_irrelevant(histories, data):
    shuffled = {
        rater: data.draw(st.permutations(events))
        for rater, events in histories.items()
    }
    assert compute_score(make_item(ratings=histories)) == compute_score(make_item(ratings=shuffled))


@given(histories=rating_histories())
def test_repeated_submission_counts_once(histories):
    item = make_item(base_rating=8, ratings=histories)
    for rater in item.rater_ids:
        newest = latest_event(item.events_for(rater))
        assert newest.timestamp == max(e.timestamp for e in item.events_for(rater))
    assert compute_breakdown(item).vote_count == 1 + len(histories)


# =============================================================================
# PROJECTION PROPERTIES
# =============================================================================

@settings(max_examples=50)
@given(items=item_lists(), sort_by=st.sampled_from(SortBy), page=st.integers(1, 4))
def test_projection_is_deterministic(items, sort_by, page):
    options = ProjectionOptions(media_kind=MediaKind.MOVIE, sort_by=sort_by, page=page)
    assert project(items, options) == project(items, options)


@settings(max_examples=50)
@given(items=item_lists())
def test_sort_round_trip_restores_latest_order(items):
    latest = ProjectionOptions(media_kind=MediaKind.SERIES, sort_by=SortBy.LATEST, page_size=100)
    by_score = ProjectionOptions(media_kind=MediaKind.SERIES, sort_by=SortBy.SCORE, page_size=100)

    before = project(items, latest)
    project(items, by_score)
    after = project(items, latest)

    assert [i.id for i in before.slice] == [i.id for i in after.slice]


@settings(max_examples=50)
@given(items=item_lists(), page_size=st.integers(1, 20))
def test_pages_partition_the_filtered_view(items, page_size):
    first = project(items, ProjectionOptions(media_kind=MediaKind.MOVIE, page_size=page_size))
    seen = []
    for page in range(1, first.total_pages + 2):
        seen.extend(project(items, ProjectionOptions(
            media_kind=MediaKind.MOVIE, page=page, page_size=page_size
        )).slice)

    expected = [i for i in items if i.media_kind == MediaKind.MOVIE]
    assert sorted(i.id for i in seen) == sorted(i.id for i in expected)
    assert first.total_count == len(expected)
