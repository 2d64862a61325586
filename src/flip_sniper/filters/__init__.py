from .engine import (
    DEFAULT_MAX_PRICE,
    FilterState,
    ListingRanker,
    SortOption,
    coerce_listings,
    effective_max_price,
    rank,
    relevance_score,
)
from .format import MarketplaceBadge, classify_marketplace_badge, format_currency

__all__ = [
    "DEFAULT_MAX_PRICE",
    "FilterState",
    "ListingRanker",
    "MarketplaceBadge",
    "SortOption",
    "classify_marketplace_badge",
    "coerce_listings",
    "effective_max_price",
    "format_currency",
    "rank",
    "relevance_score",
]
