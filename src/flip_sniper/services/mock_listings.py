"""Synthetic listings for a watchlist criterion.

Nothing here talks to a marketplace. Batches are reproducible when the caller
passes a seeded ``random.Random`` and a fixed ``today``.
"""

from __future__ import annotations

import random
from datetime import date, timedelta
from typing import List, Optional
from urllib.parse import quote

import structlog

from flip_sniper.models import CONDITIONS, Listing

logger = structlog.get_logger()

TITLE_SUFFIXES = ("Pro", "Like New", "Barely Used", "Great Condition", "Must Sell", "Best Deal")
LOCATIONS = ("Brooklyn", "Manhattan", "Queens", "Bronx", "Staten Island")

_SEARCH_URLS = {
    "craigslist": "https://craigslist.org/search/sss?query={q}",
    "facebook": "https://www.facebook.com/marketplace/search/?query={q}",
    "offerup": "https://offerup.com/search?q={q}",
}


def marketplace_search_url(marketplace: str, keyword: str) -> str:
    template = _SEARCH_URLS.get((marketplace or "").lower())
    if template is None:
        return "#"
    return template.format(q=quote(keyword, safe=""))


def generate_mock_listings(
    keyword: str,
    max_price: Optional[int],
    marketplace: str,
    count: int = 15,
    category: str = "electronics",
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> List[Listing]:
    """Make ``count`` listings priced mostly under ``max_price``.

    Prices are drawn from [0, 1.3) times 70% of the ceiling, so a few land
    above it. Dates fall within the last seven days.
    """
    rng = rng or random.Random()
    today = today or date.today()
    base_price = max(max_price or 0, 0) * 0.7
    url = marketplace_search_url(marketplace, keyword)

    listings: List[Listing] = []
    for i in range(count):
        price = int(base_price * rng.random() * 1.3 + 0.5)
        if rng.random() > 0.3:
            original_price = int(price * (1 + rng.random() * 0.5) + 0.5)
        else:
            original_price = price
        listings.append(
            Listing(
                id=f"listing-{i}",
                title=f"{keyword} {rng.choice(TITLE_SUFFIXES)}",
                price=price,
                original_price=original_price,
                location=rng.choice(LOCATIONS),
                distance=rng.randint(1, 20),
                date=today - timedelta(days=rng.randrange(7)),
                source=marketplace,
                condition=rng.choice(CONDITIONS),
                url=url,
                category=category,
            )
        )
    logger.debug("mock_listings_generated", keyword=keyword, marketplace=marketplace, count=len(listings))
    return listings
