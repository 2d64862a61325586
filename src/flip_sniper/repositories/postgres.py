from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence

import psycopg2
import structlog

from flip_sniper.config import db_url
from flip_sniper.errors import (
    DuplicateKeywordError,
    WatchlistLimitError,
    WatchlistNotFoundError,
)
from flip_sniper.models import MARKETPLACES, WatchCriterion, WatchCriterionInput

logger = structlog.get_logger()

MARKETPLACE_LIMIT = 5

_COLUMNS = "id::text, user_id, keyword, min_price, max_price, zip, radius, marketplace, category, created_at"


@contextmanager
def connect():
    conn = psycopg2.connect(db_url())
    try:
        yield conn
    finally:
        conn.close()


def init_schema() -> None:
    with connect() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS watchlist (
                  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                  user_id TEXT NOT NULL,
                  keyword TEXT NOT NULL,
                  zip TEXT NOT NULL,
                  max_price INTEGER NOT NULL,
                  min_price INTEGER DEFAULT 0,
                  radius INTEGER DEFAULT 1,
                  marketplace TEXT DEFAULT 'craigslist',
                  category TEXT DEFAULT 'all',
                  created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                );
                CREATE INDEX IF NOT EXISTS watchlist_user_market_idx ON watchlist(user_id, marketplace);
                """
            )
        conn.commit()
    logger.info("watchlist_schema_ready")


def _row_to_criterion(r: Sequence[object]) -> WatchCriterion:
    return WatchCriterion(
        id=r[0],
        user_id=r[1],
        keyword=r[2],
        min_price=r[3] or 0,
        max_price=r[4],
        zip=r[5],
        radius=r[6] if r[6] is not None else 1,
        marketplace=r[7] or "craigslist",
        category=r[8] or "all",
        created_at=r[9],
    )


def _valid_id(item_id: str) -> bool:
    try:
        uuid.UUID(str(item_id))
        return True
    except ValueError:
        return False


def _has_duplicate(cur, user_id: str, keyword: str, marketplace: str, exclude_id: Optional[str] = None) -> bool:
    sql = "SELECT 1 FROM watchlist WHERE user_id=%s AND keyword=%s AND marketplace=%s"
    params: List[object] = [user_id, keyword, marketplace]
    if exclude_id is not None:
        sql += " AND id <> %s"
        params.append(exclude_id)
    cur.execute(sql + " LIMIT 1", params)
    return cur.fetchone() is not None


def _count_in_marketplace(cur, user_id: str, marketplace: str) -> int:
    cur.execute(
        "SELECT COUNT(*) FROM watchlist WHERE user_id=%s AND marketplace=%s",
        (user_id, marketplace),
    )
    return int(cur.fetchone()[0])


def watchlist_list(user_id: str, marketplace: Optional[str] = None) -> List[WatchCriterion]:
    """Criteria owned by ``user_id``, newest first."""
    sql = f"SELECT {_COLUMNS} FROM watchlist WHERE user_id=%s"
    params: List[object] = [user_id]
    if marketplace:
        sql += " AND marketplace=%s"
        params.append(marketplace)
    sql += " ORDER BY created_at DESC"
    with connect() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
    return [_row_to_criterion(r) for r in rows]


def watchlist_get(user_id: str, item_id: str) -> WatchCriterion:
    if not _valid_id(item_id):
        raise WatchlistNotFoundError(item_id)
    with connect() as conn:
        with conn.cursor() as cur:
            cur.execute(
                f"SELECT {_COLUMNS} FROM watchlist WHERE id=%s AND user_id=%s",
                (item_id, user_id),
            )
            row = cur.fetchone()
    if row is None:
        raise WatchlistNotFoundError(item_id)
    return _row_to_criterion(row)


def watchlist_create(user_id: str, data: WatchCriterionInput, limit: int = MARKETPLACE_LIMIT) -> WatchCriterion:
    with connect() as conn:
        with conn.cursor() as cur:
            if _has_duplicate(cur, user_id, data.keyword, data.marketplace):
                raise DuplicateKeywordError(data.keyword, data.marketplace)
            if _count_in_marketplace(cur, user_id, data.marketplace) >= limit:
                raise WatchlistLimitError(data.marketplace, limit)
            cur.execute(
                f"""
                INSERT INTO watchlist (user_id, keyword, max_price, min_price, zip, radius, marketplace, category)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_COLUMNS}
                """,
                (
                    user_id,
                    data.keyword,
                    data.max_price,
                    data.min_price,
                    data.zip,
                    data.radius,
                    data.marketplace,
                    data.category,
                ),
            )
            row = cur.fetchone()
        conn.commit()
    created = _row_to_criterion(row)
    logger.info("watchlist_item_created", item_id=created.id, keyword=created.keyword, marketplace=created.marketplace)
    return created


def watchlist_update(
    user_id: str,
    item_id: str,
    data: WatchCriterionInput,
    limit: int = MARKETPLACE_LIMIT,
) -> WatchCriterion:
    """Replace every field of an owned criterion except its id.

    Moving a criterion to another marketplace counts against that
    marketplace's limit.
    """
    if not _valid_id(item_id):
        raise WatchlistNotFoundError(item_id)
    with connect() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT marketplace FROM watchlist WHERE id=%s AND user_id=%s",
                (item_id, user_id),
            )
            current = cur.fetchone()
            if current is None:
                raise WatchlistNotFoundError(item_id)
            if _has_duplicate(cur, user_id, data.keyword, data.marketplace, exclude_id=item_id):
                raise DuplicateKeywordError(data.keyword, data.marketplace)
            if current[0] != data.marketplace and _count_in_marketplace(cur, user_id, data.marketplace) >= limit:
                raise WatchlistLimitError(data.marketplace, limit)
            cur.execute(
                f"""
                UPDATE watchlist
                SET keyword=%s, max_price=%s, min_price=%s, zip=%s, radius=%s, marketplace=%s, category=%s
                WHERE id=%s AND user_id=%s
                RETURNING {_COLUMNS}
                """,
                (
                    data.keyword,
                    data.max_price,
                    data.min_price,
                    data.zip,
                    data.radius,
                    data.marketplace,
                    data.category,
                    item_id,
                    user_id,
                ),
            )
            row = cur.fetchone()
        conn.commit()
    logger.info("watchlist_item_updated", item_id=item_id)
    return _row_to_criterion(row)


def watchlist_delete(user_id: str, item_id: str) -> None:
    if not _valid_id(item_id):
        raise WatchlistNotFoundError(item_id)
    with connect() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM watchlist WHERE id=%s AND user_id=%s", (item_id, user_id))
            deleted = cur.rowcount
        conn.commit()
    if not deleted:
        raise WatchlistNotFoundError(item_id)
    logger.info("watchlist_item_deleted", item_id=item_id)


def marketplace_counts(user_id: str) -> Dict[str, int]:
    counts = {m: 0 for m in MARKETPLACES}
    with connect() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT marketplace, COUNT(*) FROM watchlist WHERE user_id=%s GROUP BY marketplace",
                (user_id,),
            )
            for marketplace, n in cur.fetchall():
                if marketplace in counts:
                    counts[marketplace] = int(n)
    return counts
