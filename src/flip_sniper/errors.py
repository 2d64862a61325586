"""Errors raised by the watchlist store."""

from __future__ import annotations


class WatchlistError(Exception):
    """Base class for watchlist store failures the user can act on."""


class DuplicateKeywordError(WatchlistError):
    def __init__(self, keyword: str, marketplace: str) -> None:
        super().__init__(
            f'A search term for "{keyword}" already exists in {marketplace}. '
            "Please edit the existing term instead."
        )
        self.keyword = keyword
        self.marketplace = marketplace


class WatchlistLimitError(WatchlistError):
    def __init__(self, marketplace: str, limit: int) -> None:
        super().__init__(
            f"You can only have {limit} saved search terms per marketplace. "
            "Please delete one to add more."
        )
        self.marketplace = marketplace
        self.limit = limit


class WatchlistNotFoundError(WatchlistError):
    def __init__(self, item_id: str) -> None:
        super().__init__("This item doesn't exist or you do not have permission to change it")
        self.item_id = item_id
