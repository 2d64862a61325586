from __future__ import annotations

import random
from datetime import date, datetime, timezone

import pytest

from flip_sniper.filters import (
    DEFAULT_MAX_PRICE,
    FilterState,
    ListingRanker,
    SortOption,
    effective_max_price,
    rank,
    relevance_score,
)
from flip_sniper.models import Listing, WatchCriterion
from flip_sniper.services import generate_mock_listings

NOW = datetime(2024, 2, 1, tzinfo=timezone.utc)


def make_listing(**kw) -> Listing:
    data = {
        "price": 100,
        "distance": 5,
        "date": "2024-01-10",
        "source": "craigslist",
        "condition": "Good",
    }
    data.update(kw)
    return Listing(**data)


@pytest.fixture
def pair():
    return [
        make_listing(id="cl", price=100, distance=5, date="2024-01-10", source="craigslist", condition="Good"),
        make_listing(id="fb", price=300, distance=2, date="2024-01-12", source="facebook", condition="New"),
    ]


@pytest.fixture
def criterion():
    return WatchCriterion(id="c1", keyword="desk", max_price=500)


def base_filters(**kw) -> FilterState:
    data = {"marketplace_filter": "all", "price_range": (0, 1000), "max_distance": 20}
    data.update(kw)
    return FilterState(**data)


def ids(listings):
    return [l.id for l in listings]


def test_price_low_orders_cheapest_first(pair, criterion):
    out = rank(pair, criterion, base_filters(sort_option="price-low"), now=NOW)
    assert [l.price for l in out] == [100, 300]


def test_distance_orders_nearest_first(pair, criterion):
    out = rank(pair, criterion, base_filters(sort_option="distance"), now=NOW)
    assert [l.distance for l in out] == [2, 5]
    assert out[0].source == "facebook"


def test_marketplace_filter_keeps_only_that_source(pair, criterion):
    out = rank(pair, criterion, base_filters(marketplace_filter="craigslist"), now=NOW)
    assert [l.price for l in out] == [100]


def test_date_sorts(pair, criterion):
    assert ids(rank(pair, criterion, base_filters(sort_option="newest"), now=NOW)) == ["fb", "cl"]
    assert ids(rank(pair, criterion, base_filters(sort_option="oldest"), now=NOW)) == ["cl", "fb"]


def test_price_high(pair, criterion):
    assert ids(rank(pair, criterion, base_filters(sort_option="price-high"), now=NOW)) == ["fb", "cl"]


def test_empty_input_gives_empty_output(criterion):
    assert rank([], criterion, base_filters(), now=NOW) == []


def test_price_bounds_are_inclusive(criterion):
    listings = [
        make_listing(id="low", price=50),
        make_listing(id="mid", price=75),
        make_listing(id="high", price=100),
        make_listing(id="out", price=101),
        make_listing(id="under", price=49),
    ]
    out = rank(listings, criterion, base_filters(price_range=(50, 100), sort_option="price-low"), now=NOW)
    assert ids(out) == ["low", "mid", "high"]


def test_distance_bound_is_inclusive(criterion):
    listings = [make_listing(id="edge", distance=20), make_listing(id="far", distance=20.5)]
    assert ids(rank(listings, criterion, base_filters(), now=NOW)) == ["edge"]


def test_empty_condition_and_location_sets_do_not_restrict(pair, criterion):
    out = rank(pair, criterion, base_filters(conditions=[], locations=[]), now=NOW)
    assert len(out) == 2


def test_condition_and_location_filters():
    listings = [
        make_listing(id="a", condition="New", location="Queens"),
        make_listing(id="b", condition="Poor", location="Queens"),
        make_listing(id="c", condition="New", location="Bronx"),
        make_listing(id="d", condition="Refurbished", location="Queens"),
    ]
    f = base_filters(conditions=["New", "Refurbished"], locations=["Queens"], sort_option="price-low")
    assert ids(rank(listings, None, f, now=NOW)) == ["a", "d"]


def test_keyword_filter_matches_title_case_insensitively():
    listings = [
        make_listing(id="a", title="IKEA Desk Like New"),
        make_listing(id="b", title="Office chair"),
        make_listing(id="c", title="standing DESK"),
    ]
    f = base_filters(keywords=["desk", "  "], sort_option="price-low")
    assert ids(rank(listings, None, f, now=NOW)) == ["a", "c"]


@pytest.mark.parametrize(
    "option, key",
    [
        ("price-low", "price"),
        ("price-high", "price"),
        ("distance", "distance"),
        ("newest", "date"),
        ("oldest", "date"),
    ],
)
def test_equal_keys_keep_input_order(option, key):
    listings = [
        make_listing(id="a", price=200, distance=3, date="2024-01-05"),
        make_listing(id="b", price=100, distance=1, date="2024-01-07"),
        make_listing(id="c", price=200, distance=3, date="2024-01-05"),
        make_listing(id="d", price=200, distance=3, date="2024-01-05"),
    ]
    out = rank(listings, None, base_filters(sort_option=option), now=NOW)
    tied = [l.id for l in out if getattr(l, key) == getattr(listings[0], key)]
    assert tied == ["a", "c", "d"]


def test_relevance_ties_keep_input_order():
    listings = [make_listing(id=str(i), price=250, date="2024-01-09") for i in range(5)]
    out = rank(listings, WatchCriterion(id="c", keyword="x", max_price=500), base_filters(), now=NOW)
    assert ids(out) == ["0", "1", "2", "3", "4"]


def test_relevance_prefers_cheaper_then_newer(criterion):
    listings = [
        make_listing(id="old-cheap", price=100, date="2024-01-01"),
        make_listing(id="new-pricey", price=400, date="2024-01-30"),
        make_listing(id="new-cheap", price=100, date="2024-01-20"),
    ]
    out = rank(listings, criterion, base_filters(sort_option="relevance"), now=NOW)
    assert ids(out) == ["new-cheap", "old-cheap", "new-pricey"]


def test_relevance_score_formula():
    l = make_listing(price=100, date="2024-01-10")
    now_ms = NOW.timestamp() * 1000
    date_ms = datetime(2024, 1, 10, tzinfo=timezone.utc).timestamp() * 1000
    expected = (1 - 100 / 500) * 0.7 + (date_ms / now_ms) * 0.3
    assert relevance_score(l, 500, now_ms) == pytest.approx(expected)


@pytest.mark.parametrize("max_price", [0, None, -20])
def test_relevance_falls_back_to_default_denominator(max_price, pair):
    crit = WatchCriterion(id="c", keyword="desk", max_price=max_price)
    assert effective_max_price(crit) == DEFAULT_MAX_PRICE == 1000
    out = rank(pair, crit, base_filters(sort_option="relevance"), now=NOW)
    assert ids(out) == ["cl", "fb"]


def test_effective_max_price_handles_missing_criterion():
    assert effective_max_price(None) == 1000
    assert effective_max_price({"max_price": 250}) == 250
    assert effective_max_price({}) == 1000


def test_unknown_sort_option_falls_back_to_relevance():
    assert FilterState(sort_option="cheapest").sort_option is SortOption.RELEVANCE
    assert FilterState(sort_option=None).sort_option is SortOption.RELEVANCE
    assert FilterState(sort_option="Price-Low").sort_option is SortOption.PRICE_LOW


def test_rank_is_idempotent_for_fixed_now(criterion):
    listings = generate_mock_listings("bike", 800, "offerup", count=30, rng=random.Random(3), today=date(2024, 1, 31))
    f = base_filters(sort_option="relevance", price_range=(0, 5000), max_distance=50)
    first = rank(listings, criterion, f, now=NOW)
    second = rank(listings, criterion, f, now=NOW)
    assert first == second


def test_each_filter_only_removes_listings():
    listings = generate_mock_listings("lamp", 300, "facebook", count=40, rng=random.Random(11), today=date(2024, 1, 31))
    f = base_filters(
        marketplace_filter="facebook",
        price_range=(20, 250),
        max_distance=12,
        conditions=["Good", "Like New"],
        locations=["Queens", "Brooklyn"],
    )
    out = ListingRanker(f).filter(listings)
    assert len(out) <= len(listings)
    assert all(l in listings for l in out)
    assert all(20 <= l.price <= 250 and l.distance <= 12 for l in out)


def test_input_is_not_mutated(pair, criterion):
    before = list(pair)
    rank(pair, criterion, base_filters(sort_option="distance"), now=NOW)
    assert pair == before


def test_malformed_records_are_skipped(criterion):
    raw = [
        {"id": "ok", "price": 10, "distance": 1, "date": "2024-01-10", "source": "offerup", "condition": "Good"},
        {"id": "no-price", "distance": 1, "date": "2024-01-10", "source": "offerup", "condition": "Good"},
        {"id": "bad-date", "price": 10, "distance": 1, "date": "yesterday", "source": "offerup", "condition": "Good"},
        {"id": "neg", "price": 10, "distance": -1, "date": "2024-01-10", "source": "offerup", "condition": "Good"},
    ]
    out = rank(raw, criterion, base_filters(), now=NOW)
    assert ids(out) == ["ok"]


def test_unknown_sources_and_conditions_round_trip():
    listings = [make_listing(id="m", source="mercari", condition="Refurbished")]
    out = rank(listings, None, base_filters(marketplace_filter="mercari"), now=NOW)
    assert out[0].source == "mercari"
    assert out[0].condition == "Refurbished"


def test_initial_state_spans_listing_prices():
    listings = [make_listing(price=40), make_listing(price=900), make_listing(price=120)]
    state = FilterState.for_listings(listings, sort_option="newest")
    assert state.price_range == (40, 900)
    assert state.sort_option is SortOption.NEWEST
    assert FilterState.for_listings([]).price_range == (0, 5000)
