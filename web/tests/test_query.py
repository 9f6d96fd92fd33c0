"""Test catalog queries, pagination and suggestions."""

import pytest

from pipeline.runner import run_pipeline

from web.index import build_index
from web.query import QueryEngine, QueryRequest, suggest


@pytest.fixture
def engine(index):
    return QueryEngine(index)


def run(engine, **params):
    return engine.execute(QueryRequest.from_params(params))


def ids(result):
    return [r.id for r in result.results]


class TestQueryRequest:
    """Test request parsing from query-string parameters."""

    def test_defaults(self):
        request = QueryRequest.from_params({})
        assert request.page == 1
        assert request.limit == 50
        assert request.sort_order == "asc"
        assert request.applied_filters() == {}

    @pytest.mark.parametrize("page,limit", [("0", "-5"), ("abc", ""), ("-1", "x")])
    def test_invalid_page_and_limit_fall_back(self, page, limit):
        request = QueryRequest.from_params({"page": page, "limit": limit})
        assert request.page == 1
        assert request.limit == 50

    def test_tier_data_quality(self):
        request = QueryRequest.from_params({"dataQuality": "tier-complete"})
        assert request.quality_tier == "complete"
        assert request.data_quality is None

    def test_applied_filters(self):
        request = QueryRequest.from_params({
            "q": " lodestar ",
            "capacity": "251-500 kg",
            "minCapacity": "100",
            "sortBy": "capacity",
            "sortOrder": "DESC",
        })
        assert request.applied_filters() == {
            "q": "lodestar",
            "capacity": "251-500 kg",
            "minCapacity": 100.0,
            "sortBy": "capacity",
            "sortOrder": "desc",
        }

    def test_unparseable_capacity_bound_ignored(self):
        assert QueryRequest.from_params({"minCapacity": "lots"}).min_capacity is None


class TestPagination:
    """Test result paging."""

    def test_second_page(self, engine):
        result = run(engine, page="2", limit="5")

        assert ids(result) == ["hoist-06", "hoist-07", "hoist-08", "hoist-09", "hoist-10"]
        assert result.total_count == 12
        assert result.total_pages == 3

    def test_to_dict(self, engine):
        data = run(engine, page="3", limit="5").to_dict()

        assert len(data["results"]) == 2
        assert data["totalCount"] == 12
        assert data["pagination"] == {"page": 3, "limit": 5, "totalPages": 3, "hasMore": False}

    def test_page_past_end_is_empty(self, engine):
        result = run(engine, page="10", limit="5")
        assert result.results == []
        assert result.total_count == 12


class TestIndexedFilters:
    """Test filters answered from an index group."""

    def test_manufacturer(self, engine):
        result = run(engine, manufacturer="Chainmaster")
        assert result.total_count == 4
        assert result.used_index == "manufacturer"

    def test_classification_case_insensitive(self, engine):
        result = run(engine, classification="D8+")
        assert result.total_count == 5
        assert result.used_index == "classification"

    def test_capacity_bucket(self, engine):
        result = run(engine, capacity="251-500 kg")
        assert ids(result) == ["hoist-03", "hoist-04", "hoist-10"]
        assert result.used_index == "capacity"

    def test_has_images(self, engine):
        result = run(engine, dataQuality="hasImages")
        assert ids(result) == ["hoist-01", "hoist-02"]
        assert result.used_index == "hasImages"

    def test_complete_specs(self, engine):
        assert run(engine, dataQuality="complete").total_count == 6

    def test_two_indexed_filters_scan(self, engine):
        result = run(engine, manufacturer="Columbus McKinnon", capacity="≤250 kg")
        assert ids(result) == ["hoist-01", "hoist-02"]
        assert result.used_index is None

    def test_text_query_disables_index(self, engine):
        result = run(engine, q="model", manufacturer="Verlinde")
        assert result.total_count == 3
        assert result.used_index is None

    def test_unknown_value_matches_nothing(self, engine):
        assert run(engine, manufacturer="Nobody").total_count == 0
        assert run(engine, capacity="huge").total_count == 0


class TestScanFilters:
    """Test filters applied as predicates."""

    def test_speed_bucket(self, engine):
        assert run(engine, speedBucket="≥8 m/min").total_count == 5

    def test_min_capacity(self, engine):
        result = run(engine, minCapacity="1000")
        assert ids(result) == ["hoist-06", "hoist-07", "hoist-08", "hoist-09"]

    def test_capacity_range(self, engine):
        result = run(engine, minCapacity="250", maxCapacity="500")
        assert ids(result) == ["hoist-02", "hoist-03", "hoist-04", "hoist-10", "hoist-11"]

    def test_category_and_duty_cycle(self, engine):
        assert run(engine, category="Unknown").total_count == 1
        assert run(engine, dutyCycle="40%").total_count == 6

    def test_text_query_matches_manufacturer(self, engine):
        assert run(engine, q="verlinde").total_count == 3

    def test_text_query_matches_model(self, engine):
        result = run(engine, q="Model 1")
        assert ids(result) == ["hoist-01", "hoist-10", "hoist-11", "hoist-12"]

    def test_text_query_matches_classification(self, engine):
        assert run(engine, q="bgv").total_count == 2

    def test_count_matches_execute(self, engine):
        request = QueryRequest.from_params({"classification": "d8", "limit": "1"})
        assert engine.count(request) == 4
        assert len(engine.execute(request).results) == 1


class TestSorting:
    """Test result ordering."""

    def test_capacity_ascending_is_stable(self, engine):
        result = run(engine, sortBy="capacity", limit="4")
        # unknown capacity sorts as 0; equal values keep snapshot order
        assert ids(result) == ["hoist-12", "hoist-01", "hoist-02", "hoist-11"]

    def test_capacity_descending(self, engine):
        result = run(engine, sortBy="capacity", sortOrder="desc", limit="3")
        assert ids(result) == ["hoist-09", "hoist-08", "hoist-07"]

    def test_speed(self, engine):
        result = run(engine, sortBy="speed", limit="2")
        assert ids(result) == ["hoist-09", "hoist-06"]

    def test_raw_field(self, engine):
        result = run(engine, sortBy="manufacturer", limit="1")
        assert result.results[0].manufacturer == "Chainmaster"

    def test_unsorted_keeps_snapshot_order(self, engine):
        assert ids(run(engine, limit="3")) == ["hoist-01", "hoist-02", "hoist-03"]


class TestSuggest:
    """Test autocomplete suggestions."""

    def test_manufacturer(self, index):
        suggestions = suggest(index, "ch")
        assert suggestions == [
            {"type": "manufacturer", "value": "Chainmaster", "label": "Chainmaster", "count": 4},
        ]

    def test_products_capped_at_five(self, index):
        suggestions = suggest(index, "mo")
        assert [s["type"] for s in suggestions] == ["product"] * 5

    def test_classification_label_uppercase(self, index):
        suggestions = suggest(index, "d8")
        assert [(s["label"], s["count"]) for s in suggestions] == [("D8+", 5), ("D8", 4)]

    def test_short_query(self, index):
        assert suggest(index, "d") == []
        assert suggest(index, None) == []

    def test_limit(self, index):
        assert len(suggest(index, "mo", limit=2)) == 2


class TestSameSlugProducts:
    """Test products whose names slug to the same id."""

    @pytest.fixture
    def d8_engine(self):
        result = run_pipeline([
            {"manufacturer": "Chainmaster", "model": "D8+ 500", "loadCapacity": "500 kg"},
            {"manufacturer": "Chainmaster", "model": "D8 500", "loadCapacity": "1000 kg"},
        ])
        return QueryEngine(build_index(result.records))

    def test_index_and_scan_agree(self, d8_engine):
        indexed = run(d8_engine, capacity="251-500 kg")
        scanned = run(d8_engine, capacity="251-500 kg", manufacturer="Chainmaster")

        assert indexed.used_index == "capacity"
        assert scanned.used_index is None
        assert ids(indexed) == ids(scanned) == ["chainmaster-d8-500"]

    def test_both_reachable_by_id(self, d8_engine):
        assert [r.model for r in run(d8_engine).results] == ["D8+ 500", "D8 500"]
        assert d8_engine.index.parsed_capacities["chainmaster-d8-500-2"] == 1000.0
