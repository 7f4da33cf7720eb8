"""Change-feed adapters."""

from .base import ChangeFeed, FeedDisconnectedError, FeedSubscription
from .memory import InMemoryChangeFeed

__all__ = [
    "ChangeFeed",
    "FeedDisconnectedError",
    "FeedSubscription",
    "InMemoryChangeFeed",
]
