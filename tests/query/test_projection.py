"""
View Projection Tests

INVARIANTS TESTED:
1. Projection is a pure function of (items, options)
2. total_pages = max(1, ceil(count / page_size)); pages past the end are empty
3. Score ordering uses the unrounded score, ties broken by recency
4. Ranks continue across pages
"""

import pytest

from catalog.contracts.items import Category, MediaKind
from catalog.observability import ObservabilityEngine
from catalog.query import (
    ProjectionOptions, SortBy, ViewProjector, order_items, project, total_pages_for
)

from tests.integration.fixtures import T0, MINUTE, make_item, make_items


class TestPagination:

    def test_thirty_one_items_make_three_pages(self):
        items = make_items(31)
        pages = [
            project(items, ProjectionOptions(media_kind=MediaKind.MOVIE, page=p))
            for p in (1, 2, 3, 4)
        ]
        assert [len(p.slice) for p in pages] == [15, 15, 1, 0]
        assert all(p.total_pages == 3 for p in pages)
        assert pages[3].is_empty

    def test_empty_view_has_one_page(self):
        projection = project([], ProjectionOptions(media_kind=MediaKind.SERIES))
        assert projection.total_pages == 1
        assert projection.slice == ()

    @pytest.mark.parametrize("count,size,expected", [
        (0, 15, 1), (1, 15, 1), (15, 15, 1), (16, 15, 2), (45, 15, 3), (7, 1, 7),
    ])
    def test_total_pages_for(self, count, size, expected):
        assert total_pages_for(count, size) == expected

    @pytest.mark.parametrize("kwargs", [{'page': 0}, {'page_size': 0}])
    def test_invalid_options_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ProjectionOptions(media_kind=MediaKind.MOVIE, **kwargs)

    def test_options_accept_wire_strings(self):
        options = ProjectionOptions(media_kind="tv-series", sort_by="score", category="bad")
        assert options.media_kind == MediaKind.SERIES
        assert options.sort_by == SortBy.SCORE
        assert options.category == Category.BAD


class TestFiltering:

    def test_only_requested_kind(self):
        items = [
            make_item("m1", media_kind=MediaKind.MOVIE),
            make_item("s1", media_kind=MediaKind.SERIES),
        ]
        projection = project(items, ProjectionOptions(media_kind=MediaKind.SERIES))
        assert [i.id for i in projection.slice] == ["s1"]
        assert projection.total_count == 1

    def test_category_and_year_filters(self):
        items = [
            make_item("a", category=Category.BAD, release_year=2020),
            make_item("b", category=Category.BAD, release_year=2021),
            make_item("c", category=Category.GOOD, release_year=2020),
        ]
        options = ProjectionOptions(
            media_kind=MediaKind.MOVIE, category=Category.BAD, release_year=2020
        )
        assert [i.id for i in project(items, options).slice] == ["a"]

    def test_predicate_narrows_view(self):
        items = make_items(5)
        options = ProjectionOptions(
            media_kind=MediaKind.MOVIE, predicate=lambda item: item.id.endswith(("1", "3"))
        )
        assert {i.id for i in project(items, options).slice} == {"item_001", "item_003"}


class TestOrdering:

    def test_latest_is_newest_first(self):
        items = make_items(3)
        assert [i.id for i in order_items(items, SortBy.LATEST)] == [
            "item_002", "item_001", "item_000"
        ]

    def test_score_descending(self):
        items = [
            make_item("low", base_rating=5),
            make_item("high", base_rating=9),
            make_item("mid", base_rating=7),
        ]
        assert [i.id for i in order_items(items, SortBy.SCORE)] == ["high", "mid", "low"]

    def test_score_ties_broken_by_recency(self):
        items = [
            make_item("older", base_rating=8, created_at=T0),
            make_item("newer", base_rating=8, created_at=T0 + MINUTE),
        ]
        assert [i.id for i in order_items(items, SortBy.SCORE)] == ["newer", "older"]

    def test_unrounded_score_orders(self):
        """8.33 and 8.25 both display as 8.3, but 8.33 ranks first."""
        a = make_item("a", base_rating=6, ratings={"u2": [(9, T0)], "u3": [(10, T0)]}, created_at=T0)
        b = make_item("b", base_rating=7, ratings={"u2": [(10, T0)], "u3": [(8, T0)], "u4": [(8, T0)]},
                      created_at=T0 + MINUTE)
        assert [i.id for i in order_items([b, a], SortBy.SCORE)] == ["a", "b"]

    def test_full_ties_keep_input_order(self):
        items = [make_item("x"), make_item("y"), make_item("z")]
        assert [i.id for i in order_items(items, SortBy.LATEST)] == ["x", "y", "z"]
        assert [i.id for i in order_items(items, SortBy.SCORE)] == ["x", "y", "z"]

    def test_input_is_not_mutated(self):
        items = make_items(4)
        snapshot = list(items)
        project(items, ProjectionOptions(media_kind=MediaKind.MOVIE, sort_by=SortBy.SCORE))
        assert items == snapshot


class TestViewProjector:

    def test_configured_page_size(self):
        from catalog.config import ProjectionConfig
        projector = ViewProjector(ProjectionConfig(page_size=4))
        projection = projector.project(make_items(10), projector.options(MediaKind.MOVIE))
        assert len(projection.slice) == 4
        assert projection.total_pages == 3

    def test_top_of_year_ranks_continue_across_pages(self):
        items = [
            make_item(f"y{i:02d}", base_rating=1 + (i % 10), release_year=2024,
                      created_at=T0 + i * MINUTE)
            for i in range(20)
        ] + [make_item("other_year", base_rating=10, release_year=2023)]
        projector = ViewProjector()

        first = projector.top_of_year(items, MediaKind.MOVIE, 2024)
        second = projector.top_of_year(items, MediaKind.MOVIE, 2024, page=2)

        assert first.total_count == 20
        assert [rank for rank, _ in first.ranked()] == list(range(1, 16))
        assert [rank for rank, _ in second.ranked()] == list(range(16, 21))
        assert first.slice[0].base_rating == 10
        assert "other_year" not in {i.id for i in first.slice + second.slice}

    def test_clamp_page(self):
        projector = ViewProjector()
        projection = projector.project(make_items(16), projector.options(MediaKind.MOVIE, page=9))
        assert projection.is_empty
        assert projector.clamp_page(9, projection) == 2
        assert projector.clamp_page(0, projection) == 1

    def test_projection_is_audited(self):
        observability = ObservabilityEngine()
        projector = ViewProjector(observability=observability)
        projector.project(make_items(3), projector.options(MediaKind.MOVIE))

        entries = observability.get_layer_log('query', action="project")
        assert entries[0].metadata_value("total_count") == "3"
        assert observability.get_metrics().get_latest("projection_duration_ms") is not None
