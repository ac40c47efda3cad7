"""
Tests for the search orchestrator against a seeded SQLite store.
"""
import pytest

from listings_api import database, search as search_module
from listings_api.conftest import VIENTIANE, make_listing
from listings_api.entities import SearchRequest
from listings_api.geo import GeocenterError, haversine_meters
from listings_api.search import (
    MODE_DISTANCE, MODE_FIELD, MODE_RELEVANCE, choose_sort_mode, nearby_listings,
    search_listings,
)


def ids(outcome):
    return [r.listing.id for r in outcome.results]


@pytest.mark.parametrize("request_, expected", [
    (SearchRequest(), MODE_FIELD),
    (SearchRequest(sort_by="price_asc"), MODE_FIELD),
    (SearchRequest(sort_by="distance"), MODE_FIELD),
    (SearchRequest(sort_by="distance", latitude=1, longitude=2), MODE_DISTANCE),
    (SearchRequest(search_text="x"), MODE_RELEVANCE),
    (SearchRequest(search_text="x", sort_by="price_desc"), MODE_RELEVANCE),
    (SearchRequest(search_text="x", sort_by="distance", latitude=1, longitude=2), MODE_DISTANCE),
])
def test_choose_sort_mode(request_, expected):
    assert choose_sort_mode(request_) == expected


def test_land_in_price_range(marketplace):
    outcome = search_listings(SearchRequest(
        property_type="land", min_price=200_000_000, max_price=600_000_000,
    ))
    assert outcome.mode == MODE_FIELD
    assert sorted(ids(outcome)) == ["land-1", "land-3", "land-5"]
    assert outcome.total == 3
    for r in outcome.results:
        assert r.listing.property_type == "land"
        assert 200_000_000 <= r.listing.price <= 600_000_000
        assert r.listing.status == "approved"
        assert r.distance_meters is None
        assert r.relevance_score is None


@pytest.mark.parametrize("request_, keep", [
    (SearchRequest(property_type="land"), lambda l: l.property_type == "land"),
    (SearchRequest(province="vientiane"), lambda l: "vientiane" in l.province.lower()),
    (SearchRequest(min_area=500), lambda l: l.area >= 500),
    (SearchRequest(featured=True), lambda l: l.featured),
    (SearchRequest(has_electricity=True), lambda l: l.id in ("land-2", "land-5")),
    (SearchRequest(listing_type="rent"), lambda l: l.listing_type == "rent"),
])
def test_total_matches_independent_count(marketplace, request_, keep):
    request_.page_size = 2
    outcome = search_listings(request_)
    expected = [l for l in marketplace.values() if l.status == "approved" and keep(l)]
    assert outcome.total == len(expected)
    assert len(outcome.results) == min(2, len(expected))


def test_field_sort_and_pagination(marketplace):
    first = search_listings(SearchRequest(property_type="land", sort_by="price_asc", page_size=3))
    assert ids(first) == ["land-3", "land-1", "land-5"]
    assert first.total == 4
    assert first.total_pages == 2

    second = search_listings(SearchRequest(property_type="land", sort_by="price_asc", page_size=3, page=2))
    assert ids(second) == ["land-2"]
    assert second.total == 4


def test_default_sort_is_newest_first(marketplace):
    outcome = search_listings(SearchRequest(property_type="land"))
    assert ids(outcome) == ["land-5", "land-3", "land-2", "land-1"]


def test_unknown_sort_falls_back_to_newest(marketplace):
    outcome = search_listings(SearchRequest(property_type="land", sort_by="bogus"))
    assert ids(outcome) == ["land-5", "land-3", "land-2", "land-1"]


def test_radius_search(marketplace):
    lat, lng = VIENTIANE
    outcome = search_listings(SearchRequest(latitude=lat, longitude=lng, radius_meters=10000))
    assert sorted(ids(outcome)) == ["house-1", "land-1", "land-2"]
    assert outcome.total == 3
    for r in outcome.results:
        assert r.distance_meters <= 10000
        assert r.distance_meters == haversine_meters(lat, lng, r.listing.latitude, r.listing.longitude)


def test_distance_uses_reference_point_not_boundary(marketplace):
    lat, lng = VIENTIANE
    outcome = search_listings(SearchRequest(latitude=lat, longitude=lng, radius_meters=1000))
    assert ids(outcome) == ["land-1"]
    land = outcome.results[0].listing
    assert land.boundary
    assert outcome.results[0].distance_meters == haversine_meters(lat, lng, 17.9800, 102.6300)


def test_distance_sort_is_nearest_first(marketplace):
    lat, lng = VIENTIANE
    outcome = search_listings(SearchRequest(
        latitude=lat, longitude=lng, radius_meters=20000, sort_by="distance",
    ))
    assert outcome.mode == MODE_DISTANCE
    distances = [r.distance_meters for r in outcome.results]
    assert distances == sorted(distances)
    assert ids(outcome)[:2] == ["land-1", "land-2"]


def test_relevance_ranking(marketplace):
    outcome = search_listings(SearchRequest(search_text="market"))
    assert outcome.mode == MODE_RELEVANCE
    assert ids(outcome) == ["condo-1", "house-1", "house-2"]
    assert [r.relevance_score for r in outcome.results] == [16, 13, 3]
    assert outcome.total == 3


def test_relevance_pages_slice_the_ranked_window(marketplace):
    first = search_listings(SearchRequest(search_text="market", page_size=2))
    second = search_listings(SearchRequest(search_text="market", page_size=2, page=2))
    assert ids(first) == ["condo-1", "house-1"]
    assert ids(second) == ["house-2"]
    assert first.total == second.total == 3
    assert first.window_size == 10


def test_scores_non_increasing_within_page(marketplace):
    outcome = search_listings(SearchRequest(search_text="land", page_size=10))
    scores = [r.relevance_score for r in outcome.results]
    assert scores
    assert scores == sorted(scores, reverse=True)


def test_matches_beyond_the_window_are_not_ranked(marketplace):
    # window = 1 * 1: only the newest text match is ever scored
    first = search_listings(SearchRequest(search_text="market", page_size=1), window_multiplier=1)
    assert ids(first) == ["condo-1"]
    second = search_listings(SearchRequest(search_text="market", page_size=1, page=2), window_multiplier=1)
    assert ids(second) == []
    assert second.total == 3


def test_text_with_distance_sort_keeps_native_order(marketplace, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("relevance re-ranking must not run")

    monkeypatch.setattr(search_module, "rank_by_relevance", fail)
    monkeypatch.setattr(database, "find_listings", fail)

    lat, lng = VIENTIANE
    outcome = search_listings(SearchRequest(
        search_text="market", sort_by="distance", latitude=lat, longitude=lng, radius_meters=20000,
    ))
    assert outcome.mode == MODE_DISTANCE
    assert ids(outcome) == ["house-1", "condo-1", "house-2"]
    # scores are still reported, just not used for ordering
    assert [r.relevance_score for r in outcome.results] == [13, 16, 3]
    distances = [r.distance_meters for r in outcome.results]
    assert distances == sorted(distances)


def test_invalid_center_rejected_before_store_access(marketplace, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("store must not be queried")

    monkeypatch.setattr(database, "count_listings", fail)
    monkeypatch.setattr(database, "find_listings", fail)
    monkeypatch.setattr(database, "find_nearby", fail)

    with pytest.raises(GeocenterError):
        search_listings(SearchRequest(latitude=999, longitude=102.6331))
    with pytest.raises(GeocenterError):
        search_listings(SearchRequest(latitude=17.9757))


def test_radius_ignored_without_center(marketplace):
    outcome = search_listings(SearchRequest(radius_meters=1, property_type="land"))
    assert outcome.total == 4
    assert outcome.proximity is None


def test_repeated_requests_are_stable(seed):
    # identical timestamps: the id tie-break keeps pages deterministic
    seed([make_listing(f"same-{i}", title="Loft") for i in range(7)])
    request = dict(search_text="loft", page_size=3, page=2)
    first = search_listings(SearchRequest(**request))
    second = search_listings(SearchRequest(**request))
    assert ids(first) == ids(second)
    assert (first.total, first.total_pages) == (second.total, second.total_pages) == (7, 3)
    # equal scores come back in fetch order (newest, then id descending)
    assert ids(first) == ["same-3", "same-2", "same-1"]


def test_nearby_requires_center(marketplace):
    with pytest.raises(GeocenterError):
        nearby_listings(SearchRequest())
    lat, lng = VIENTIANE
    outcome = nearby_listings(SearchRequest(latitude=lat, longitude=lng, radius_meters=10000))
    assert outcome.mode == MODE_DISTANCE
    assert ids(outcome) == ["land-1", "land-2", "house-1"]


def test_store_errors_propagate(marketplace, monkeypatch):
    def broken(*args, **kwargs):
        raise database.sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(database, "count_listings", broken)
    with pytest.raises(database.sqlite3.OperationalError):
        search_listings(SearchRequest())


def test_text_spanning_two_tags_matches_nothing(seed):
    seed([make_listing("split", tags=["river", "side"])])
    outcome = search_listings(SearchRequest(search_text="river|side"))
    assert outcome.total == 0
    assert outcome.results == []


@pytest.mark.parametrize("request_", [
    SearchRequest(page=0),
    SearchRequest(page=-1),
    SearchRequest(page_size=0),
])
def test_page_bounds_checked_before_store_access(marketplace, monkeypatch, request_):
    def fail(*args, **kwargs):
        raise AssertionError("store must not be queried")

    monkeypatch.setattr(database, "count_listings", fail)
    with pytest.raises(ValueError):
        search_listings(request_)
