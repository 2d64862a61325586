"""Data models for marketplace listings."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

MARKETPLACES = ("craigslist", "facebook", "offerup")
CONDITIONS = ("New", "Like New", "Good", "Fair", "Poor")


class Listing(BaseModel):
    """A single listing considered as a match for a watchlist criterion.

    ``source`` and ``condition`` are open strings: values outside the known
    sets are kept as-is.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    title: str = ""
    price: int = Field(ge=0)
    location: str = ""
    distance: float = Field(ge=0)
    date: dt.date
    source: str
    condition: str
    url: Optional[str] = None
    original_price: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None

    @property
    def discount(self) -> int:
        """Whole-percent discount against ``original_price``."""
        if not self.original_price or self.original_price <= self.price:
            return 0
        return int((self.original_price - self.price) / self.original_price * 100 + 0.5)

    @property
    def is_hot(self) -> bool:
        return self.discount > 30
