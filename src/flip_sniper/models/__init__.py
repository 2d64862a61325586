from .listing import CONDITIONS, MARKETPLACES, Listing
from .watchlist import CATEGORIES, WatchCriterion, WatchCriterionInput

__all__ = [
    "CATEGORIES",
    "CONDITIONS",
    "MARKETPLACES",
    "Listing",
    "WatchCriterion",
    "WatchCriterionInput",
]
