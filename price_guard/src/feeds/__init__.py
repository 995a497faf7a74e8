"""
Price feeds: snapshot producers backed by on-chain reads.

Usage:
    from price_guard.src.feeds import get_feed, get_available_feeds

    get_available_feeds()
    # ['batom', 'beth']

    feed = get_feed("batom", reader)
    snapshot = await feed.snapshot(block=19_000_000)
"""

# Import base classes and utilities
from .base import (
    FEED_REGISTRY,
    BasePriceFeed,
    get_available_feeds,
    get_feed,
    get_feed_class,
    register_feed,
)

# Import all feed implementations to trigger registration
from .batom import BAtomPriceFeed
from .beth import BEthPriceFeed

__all__ = [
    "BasePriceFeed",
    "register_feed",
    "get_feed",
    "get_feed_class",
    "get_available_feeds",
    "FEED_REGISTRY",
    "BAtomPriceFeed",
    "BEthPriceFeed",
]
