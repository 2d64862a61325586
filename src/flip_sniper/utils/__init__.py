"""Shared helpers: logging setup and form-entry formatting."""

from .forms import city_state_for_zip, digits_only_zip, format_price_text, parse_price_text
from .log import configure_logging

__all__ = [
    "city_state_for_zip",
    "configure_logging",
    "digits_only_zip",
    "format_price_text",
    "parse_price_text",
]
