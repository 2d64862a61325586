"""Watchlist criteria: the stored record and the validated submission."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from flip_sniper.models.listing import MARKETPLACES
from flip_sniper.utils.forms import parse_price_text

CATEGORIES = (
    "all",
    "electronics",
    "furniture",
    "clothing",
    "vehicles",
    "toys",
    "sports",
    "collectibles",
    "tools",
    "jewelry",
    "books",
)

_ZIP_RE = re.compile(r"^[0-9]{5}$")


class WatchCriterion(BaseModel):
    """A saved search as held by the criterion store.

    No range checks here: records reaching the ranker may carry a missing or
    non-positive ``max_price`` and are still ranked.
    """

    id: str
    keyword: str
    min_price: int = 0
    max_price: Optional[int] = None
    zip: str = ""
    radius: int = 1
    marketplace: str = "craigslist"
    category: str = "all"
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


class WatchCriterionInput(BaseModel):
    """Fields submitted by the create/edit form, validated before any write."""

    keyword: str
    max_price: int
    min_price: int = 0
    zip: str
    radius: int = Field(default=1, ge=0, le=100)
    marketplace: str = "craigslist"
    category: str = "all"

    @field_validator("keyword")
    @classmethod
    def _keyword_present(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("keyword is required")
        return v

    @field_validator("max_price", "min_price", mode="before")
    @classmethod
    def _price_text(cls, v: Any, info: ValidationInfo) -> Any:
        if isinstance(v, str):
            v = parse_price_text(v)
        if v is None and info.field_name == "min_price":
            return 0
        return v

    @field_validator("max_price")
    @classmethod
    def _max_price_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Maximum price must be greater than zero")
        return v

    @field_validator("min_price")
    @classmethod
    def _min_price_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Minimum price cannot be negative")
        return v

    @field_validator("zip")
    @classmethod
    def _zip_five_digits(cls, v: str) -> str:
        v = (v or "").strip()
        if not _ZIP_RE.match(v):
            raise ValueError("ZIP code must be 5 digits")
        return v

    @field_validator("marketplace")
    @classmethod
    def _known_marketplace(cls, v: str) -> str:
        v = (v or "craigslist").strip().lower()
        if v not in MARKETPLACES:
            raise ValueError(f"marketplace must be one of {', '.join(MARKETPLACES)}")
        return v

    @field_validator("category")
    @classmethod
    def _known_category(cls, v: str) -> str:
        v = (v or "all").strip().lower()
        if v not in CATEGORIES:
            raise ValueError(f"unknown category: {v}")
        return v

    @model_validator(mode="after")
    def _price_order(self) -> "WatchCriterionInput":
        if self.min_price > self.max_price:
            raise ValueError("Minimum price cannot exceed maximum price")
        return self
