"""Display helpers for ranked listings."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Union

NEUTRAL_COLOR = "gray"


class MarketplaceBadge(NamedTuple):
    color: str
    label: str


_BADGES = {
    "craigslist": MarketplaceBadge("purple", "CL"),
    "facebook": MarketplaceBadge("blue", "FB"),
    "offerup": MarketplaceBadge("green", "OU"),
}


def format_currency(amount: Union[int, float]) -> str:
    """US dollars with thousands separators and no cents: 1500 -> "$1,500"."""
    whole = int(Decimal(str(amount)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    sign = "-" if whole < 0 else ""
    return f"{sign}${abs(whole):,}"


def classify_marketplace_badge(source: str) -> MarketplaceBadge:
    key = (source or "").strip().lower()
    badge = _BADGES.get(key)
    if badge is not None:
        return badge
    return MarketplaceBadge(NEUTRAL_COLOR, (source or "").strip()[:2].upper())
