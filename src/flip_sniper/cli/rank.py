from __future__ import annotations

import argparse
import json
import random
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from flip_sniper.config import load_config
from flip_sniper.filters import (
    FilterState,
    ListingRanker,
    SortOption,
    classify_marketplace_badge,
    coerce_listings,
    format_currency,
)
from flip_sniper.models import Listing, WatchCriterion
from flip_sniper.services import generate_mock_listings
from flip_sniper.utils import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Filter and rank marketplace listings for a watchlist criterion")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("file", nargs="?", type=Path, help="Path to a listings JSON array")
    src.add_argument("--mock", metavar="KEYWORD", help="Rank a generated batch for KEYWORD instead of a file")
    parser.add_argument("--max-price", type=int, default=None, help="Criterion max price (relevance denominator)")
    parser.add_argument("--marketplace", default="craigslist", help="Marketplace for --mock batches")
    parser.add_argument("--count", type=int, default=None, help="Size of a --mock batch")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for --mock batches")
    parser.add_argument("--sort", default=SortOption.RELEVANCE.value, choices=[o.value for o in SortOption])
    parser.add_argument("--only", default="all", help="Keep a single source (default: all)")
    parser.add_argument("--price-min", type=float, default=None)
    parser.add_argument("--price-max", type=float, default=None)
    parser.add_argument("--max-distance", type=float, default=None)
    parser.add_argument("--condition", action="append", default=[], help="Accepted condition (repeatable)")
    parser.add_argument("--location", action="append", default=[], help="Accepted location (repeatable)")
    parser.add_argument("--keyword", action="append", default=[], help="Title keyword filter (repeatable)")
    parser.add_argument("--now", type=datetime.fromisoformat, default=None, help="Scoring instant, ISO 8601")
    parser.add_argument("--json", action="store_true", help="Print the ranked listings as JSON")
    return parser


def format_line(l: Listing) -> str:
    badge = classify_marketplace_badge(l.source)
    return (
        f"{badge.label:<2}  {format_currency(l.price):>8}  {l.title}  "
        f"{l.location} ({l.distance:g} mi)  {l.date.isoformat()}  {l.condition}"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_config()
    configure_logging(cfg.log_level, json_output=cfg.log_json)
    logger = structlog.get_logger()

    now = args.now or datetime.now(timezone.utc)
    listings: List[Listing]
    if args.mock:
        listings = generate_mock_listings(
            args.mock,
            args.max_price,
            args.marketplace,
            count=args.count or cfg.mock_listing_count,
            rng=random.Random(args.seed),
            today=now.date(),
        )
    else:
        data = json.loads(args.file.read_text(encoding="utf-8"))
        listings = coerce_listings(data or [])

    overrides = {
        "marketplace_filter": args.only,
        "sort_option": args.sort,
        "max_distance": args.max_distance if args.max_distance is not None else cfg.default_max_distance,
        "conditions": args.condition,
        "locations": args.location,
        "keywords": args.keyword,
    }
    if args.price_min is not None or args.price_max is not None:
        overrides["price_range"] = (
            args.price_min if args.price_min is not None else 0,
            args.price_max if args.price_max is not None else float("inf"),
        )
    state = FilterState.for_listings(listings, **overrides)

    criterion = WatchCriterion(id="cli", keyword=args.mock or "", max_price=args.max_price)
    ranked = ListingRanker(state).rank(listings, criterion, now=now)
    logger.info("cli_ranked", total=len(listings), shown=len(ranked), sort=state.sort_option.value)

    if args.json:
        print(json.dumps([l.model_dump(mode="json") for l in ranked], indent=2))
    else:
        for l in ranked:
            print(format_line(l))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
