from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psycopg2
import structlog
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from flip_sniper.config import load_config
from flip_sniper.errors import DuplicateKeywordError, WatchlistLimitError, WatchlistNotFoundError
from flip_sniper.filters import FilterState, ListingRanker, classify_marketplace_badge, format_currency
from flip_sniper.models import Listing, WatchCriterion, WatchCriterionInput
from flip_sniper.repositories.postgres import (
    init_schema,
    marketplace_counts,
    watchlist_create,
    watchlist_delete,
    watchlist_get,
    watchlist_list,
    watchlist_update,
)
from flip_sniper.services import generate_mock_listings
from flip_sniper.utils import city_state_for_zip, configure_logging

config = load_config()
logger = structlog.get_logger()

app = FastAPI(title="FlipSniper")


@app.on_event("startup")
def on_startup() -> None:
    configure_logging(config.log_level, json_output=config.log_json)
    try:
        init_schema()
    except psycopg2.OperationalError as e:
        # The listings views still answer health checks; store calls will 503.
        logger.warning("watchlist_schema_unavailable", error=str(e))


@app.exception_handler(WatchlistNotFoundError)
def _not_found(request: Request, exc: WatchlistNotFoundError) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=404)


@app.exception_handler(DuplicateKeywordError)
@app.exception_handler(WatchlistLimitError)
def _conflict(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=409)


@app.exception_handler(psycopg2.OperationalError)
def _db_unavailable(request: Request, exc: psycopg2.OperationalError) -> JSONResponse:
    logger.error("database_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse({"error": "Watchlist storage is unavailable. Please try again."}, status_code=503)


def current_user(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="No active session. Please log in.")
    return x_user_id.strip()


def criterion_view(c: WatchCriterion) -> Dict[str, Any]:
    city, state = city_state_for_zip(c.zip)
    data = c.model_dump(mode="json")
    data["location_label"] = f"{city}, {state}"
    data["price_label"] = (
        f"{format_currency(c.min_price)} - {format_currency(c.max_price or 0)}"
        if c.min_price
        else f"Up to {format_currency(c.max_price or 0)}"
    )
    return data


def listing_view(l: Listing) -> Dict[str, Any]:
    badge = classify_marketplace_badge(l.source)
    data = l.model_dump(mode="json")
    data.update(
        {
            "price_display": format_currency(l.price),
            "badge": {"color": badge.color, "label": badge.label},
            "discount": l.discount,
            "is_hot": l.is_hot,
        }
    )
    return data


def _f(s: Optional[str]) -> Optional[float]:
    try:
        return float(s.replace(",", "")) if s not in (None, "") else None
    except ValueError:
        return None


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/watchlist")
def watchlist_index(
    marketplace: Optional[str] = Query(None),
    user_id: str = Depends(current_user),
) -> Dict[str, Any]:
    items = watchlist_list(user_id, marketplace=marketplace or None)
    return {
        "items": [criterion_view(c) for c in items],
        "counts": marketplace_counts(user_id),
        "limit": config.marketplace_limit,
    }


@app.post("/watchlist", status_code=201)
def watchlist_add(data: WatchCriterionInput, user_id: str = Depends(current_user)) -> Dict[str, Any]:
    created = watchlist_create(user_id, data, limit=config.marketplace_limit)
    return criterion_view(created)


@app.get("/watchlist/{item_id}")
def watchlist_show(item_id: str, user_id: str = Depends(current_user)) -> Dict[str, Any]:
    return criterion_view(watchlist_get(user_id, item_id))


@app.put("/watchlist/{item_id}")
def watchlist_edit(
    item_id: str,
    data: WatchCriterionInput,
    user_id: str = Depends(current_user),
) -> Dict[str, Any]:
    updated = watchlist_update(user_id, item_id, data, limit=config.marketplace_limit)
    return criterion_view(updated)


@app.delete("/watchlist/{item_id}")
def watchlist_remove(item_id: str, user_id: str = Depends(current_user)) -> Dict[str, bool]:
    watchlist_delete(user_id, item_id)
    return {"ok": True}


@app.get("/watchlist/{item_id}/listings")
def watchlist_listings(
    item_id: str,
    sort: Optional[str] = Query(None, description="newest|oldest|price-high|price-low|distance|relevance"),
    marketplace: Optional[str] = Query(None),
    min_price: Optional[str] = Query(None),
    max_price: Optional[str] = Query(None),
    max_distance: Optional[str] = Query(None),
    condition: List[str] = Query([]),
    location: List[str] = Query([]),
    keyword: List[str] = Query([]),
    now: Optional[datetime] = Query(None, description="Scoring instant; defaults to the current time"),
    user_id: str = Depends(current_user),
) -> Dict[str, Any]:
    criterion = watchlist_get(user_id, item_id)
    now = now or datetime.now(timezone.utc)
    # Seed with the criterion id so the same search shows the same batch on every refresh.
    listings = generate_mock_listings(
        criterion.keyword,
        criterion.max_price,
        criterion.marketplace,
        count=config.mock_listing_count,
        category=criterion.category if criterion.category != "all" else "electronics",
        rng=random.Random(criterion.id),
        today=now.date(),
    )

    dist = _f(max_distance)
    overrides: Dict[str, Any] = {
        "marketplace_filter": marketplace or "all",
        "sort_option": sort,
        "max_distance": dist if dist is not None else config.default_max_distance,
        "conditions": condition,
        "locations": location,
        "keywords": keyword,
    }
    state = FilterState.for_listings(listings, **overrides)
    low, high = state.price_range
    lo_v, hi_v = _f(min_price), _f(max_price)
    if lo_v is not None or hi_v is not None:
        state = state.model_copy(update={"price_range": (lo_v if lo_v is not None else low, hi_v if hi_v is not None else high)})

    results = ListingRanker(state).rank(listings, criterion, now=now)
    logger.info("listings_served", item_id=item_id, total=len(listings), shown=len(results), sort=state.sort_option.value)
    return {
        "criterion": criterion_view(criterion),
        "filters": state.model_dump(mode="json"),
        "results": [listing_view(l) for l in results],
    }
