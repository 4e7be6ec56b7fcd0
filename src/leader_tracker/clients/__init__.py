"""
API clients for Polymarket data.
"""

from .base import BaseClient, RateLimiter
from .polymarket import PolymarketClient

__all__ = ["BaseClient", "PolymarketClient", "RateLimiter"]
