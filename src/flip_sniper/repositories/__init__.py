"""Persistence for watchlist criteria."""
