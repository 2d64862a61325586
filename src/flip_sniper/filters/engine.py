from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from flip_sniper.models import Listing, WatchCriterion

logger = structlog.get_logger()

DEFAULT_MAX_PRICE = 1000
PRICE_WEIGHT = 0.7
RECENCY_WEIGHT = 0.3

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SortOption(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_HIGH = "price-high"
    PRICE_LOW = "price-low"
    DISTANCE = "distance"
    RELEVANCE = "relevance"


class FilterState(BaseModel):
    """Filter and sort choices for one listings view. Never persisted."""

    marketplace_filter: str = "all"
    sort_option: SortOption = SortOption.RELEVANCE
    price_range: Tuple[float, float] = (0, 5000)
    max_distance: float = 50
    conditions: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    @field_validator("sort_option", mode="before")
    @classmethod
    def _unknown_sort_is_relevance(cls, v: Any) -> Any:
        if isinstance(v, SortOption):
            return v
        try:
            return SortOption(str(v).strip().lower())
        except ValueError:
            return SortOption.RELEVANCE

    @field_validator("marketplace_filter", mode="before")
    @classmethod
    def _blank_marketplace_is_all(cls, v: Any) -> Any:
        return v or "all"

    @classmethod
    def for_listings(cls, listings: Sequence[Listing], **overrides: Any) -> "FilterState":
        """Initial state whose price range spans the given listings."""
        prices = [l.price for l in listings]
        if prices and "price_range" not in overrides:
            overrides["price_range"] = (min(prices), max(prices))
        return cls(**overrides)


Candidate = Union[Listing, Mapping[str, Any]]


def coerce_listings(items: Iterable[Candidate]) -> List[Listing]:
    """Validate raw records into listings, dropping the ones that don't fit."""
    out: List[Listing] = []
    skipped = 0
    for obj in items:
        if isinstance(obj, Listing):
            out.append(obj)
            continue
        try:
            out.append(Listing.model_validate(obj))
        except ValidationError as e:
            skipped += 1
            logger.warning("listing_skipped", error_count=e.error_count(), listing_id=_raw_id(obj))
    if skipped:
        logger.info("malformed_listings_skipped", skipped=skipped, kept=len(out))
    return out


def _raw_id(obj: Any) -> Optional[str]:
    if isinstance(obj, Mapping):
        rid = obj.get("id")
        return str(rid) if rid is not None else None
    return None


def effective_max_price(criterion: Optional[WatchCriterion]) -> float:
    if isinstance(criterion, Mapping):
        max_price = criterion.get("max_price")
    else:
        max_price = getattr(criterion, "max_price", None)
    if not isinstance(max_price, (int, float)) or max_price <= 0:
        return DEFAULT_MAX_PRICE
    return float(max_price)


def _epoch_ms(when: Union[date, datetime]) -> float:
    if isinstance(when, datetime):
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return (when - _EPOCH).total_seconds() * 1000.0
    return (datetime(when.year, when.month, when.day, tzinfo=timezone.utc) - _EPOCH).total_seconds() * 1000.0


def relevance_score(listing: Listing, max_price: float, now_ms: float) -> float:
    """Cheaper relative to the criterion's ceiling and more recent scores higher."""
    price_term = (1 - listing.price / max_price) * PRICE_WEIGHT
    recency_term = (_epoch_ms(listing.date) / now_ms) * RECENCY_WEIGHT if now_ms > 0 else 0.0
    return price_term + recency_term


class ListingRanker:
    """Filter listings against a FilterState, then sort them for display.

    Every sort is stable, so listings with equal keys keep the order they
    arrived in.
    """

    def __init__(self, filters: Optional[FilterState] = None) -> None:
        self.filters = filters or FilterState()

    def rank(
        self,
        listings: Iterable[Candidate],
        criterion: Optional[WatchCriterion],
        now: Optional[datetime] = None,
    ) -> List[Listing]:
        items = coerce_listings(listings)
        filtered = self.filter(items)
        ranked = self.sort(filtered, criterion, now=now)
        logger.debug(
            "listings_ranked",
            input=len(items),
            output=len(ranked),
            sort=self.filters.sort_option.value,
            criterion_id=getattr(criterion, "id", None),
        )
        return ranked

    def filter(self, listings: Sequence[Listing]) -> List[Listing]:
        f = self.filters
        result = list(listings)

        if f.marketplace_filter != "all":
            result = [l for l in result if l.source == f.marketplace_filter]

        low, high = f.price_range
        result = [l for l in result if low <= l.price <= high]

        result = [l for l in result if l.distance <= f.max_distance]

        if f.conditions:
            accepted = set(f.conditions)
            result = [l for l in result if l.condition in accepted]

        if f.locations:
            accepted = set(f.locations)
            result = [l for l in result if l.location in accepted]

        keywords = self._norm(f.keywords)
        if keywords:
            result = [l for l in result if any(kw in l.title.lower() for kw in keywords)]

        return result

    def sort(
        self,
        listings: Sequence[Listing],
        criterion: Optional[WatchCriterion],
        now: Optional[datetime] = None,
    ) -> List[Listing]:
        option = self.filters.sort_option
        if option is SortOption.NEWEST:
            return sorted(listings, key=lambda l: l.date, reverse=True)
        if option is SortOption.OLDEST:
            return sorted(listings, key=lambda l: l.date)
        if option is SortOption.PRICE_HIGH:
            return sorted(listings, key=lambda l: l.price, reverse=True)
        if option is SortOption.PRICE_LOW:
            return sorted(listings, key=lambda l: l.price)
        if option is SortOption.DISTANCE:
            return sorted(listings, key=lambda l: l.distance)

        # Read the clock once so every listing is scored against the same instant.
        now_ms = _epoch_ms(now or datetime.now(timezone.utc))
        max_price = effective_max_price(criterion)
        return sorted(listings, key=lambda l: relevance_score(l, max_price, now_ms), reverse=True)

    @staticmethod
    def _norm(words: Iterable[str]) -> List[str]:
        return [w.strip().lower() for w in words if w and w.strip()]


def rank(
    listings: Iterable[Candidate],
    criterion: Optional[WatchCriterion],
    filters: Optional[FilterState] = None,
    now: Optional[datetime] = None,
) -> List[Listing]:
    return ListingRanker(filters).rank(listings, criterion, now=now)
