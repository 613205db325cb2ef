"""Connector utilities for simulated market data sources."""

from .price_publisher import DEFAULT_INTERVAL_MS, DEFAULT_STARTING_PRICE, MIN_PRICE, Publisher

__all__ = [
    "DEFAULT_INTERVAL_MS",
    "DEFAULT_STARTING_PRICE",
    "MIN_PRICE",
    "Publisher",
]
