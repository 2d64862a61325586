"""FlipSniper: watchlist criteria and ranked marketplace listings."""

from .filters import FilterState, ListingRanker, SortOption, rank

__all__ = ["FilterState", "ListingRanker", "SortOption", "rank"]
