"""Input helpers for the watchlist form fields."""

from __future__ import annotations

import re
from typing import Optional, Tuple

# Demo lookup used to label a criterion's ZIP; no geocoding service is wired in.
ZIP_CITIES = {
    "10001": ("New York", "NY"),
    "90210": ("Beverly Hills", "CA"),
    "60601": ("Chicago", "IL"),
    "75001": ("Dallas", "TX"),
    "33101": ("Miami", "FL"),
    "91765": ("Diamond Bar", "CA"),
}


def parse_price_text(value: object) -> Optional[int]:
    """Parse a price typed into the form, e.g. ``"1,500"`` -> 1500.

    Returns None for blank input. Anything after the integer part is ignored,
    so ``"12.99"`` parses as 12.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("price must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    s = str(value).replace(",", "").strip()
    if not s:
        return None
    m = re.match(r"^[+-]?\d+", s)
    if not m:
        raise ValueError(f"not a price: {value!r}")
    return int(m.group(0))


def format_price_text(value: Optional[int]) -> str:
    if value is None:
        return ""
    return f"{int(value):,}"


def digits_only_zip(value: str) -> str:
    return re.sub(r"\D", "", value or "")[:5]


def city_state_for_zip(zip_code: str) -> Tuple[str, str]:
    return ZIP_CITIES.get(zip_code, ("Unknown", "??"))
