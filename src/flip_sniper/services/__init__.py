"""Listing supply for the FlipSniper views."""

from .mock_listings import generate_mock_listings, marketplace_search_url

__all__ = ["generate_mock_listings", "marketplace_search_url"]
