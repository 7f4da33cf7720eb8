"""Change-feed provider interfaces."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any
import uuid


class FeedDisconnectedError(Exception):
    """Raised by a subscription's event stream when the channel connection drops."""


@dataclass(slots=True)
class FeedSubscription:
    table: str
    subscription_id: str = field(default_factory=lambda: str(uuid.uuid4()))


class ChangeFeed(ABC):
    """Provider-neutral publish/subscribe channel delivering row-change events."""

    @abstractmethod
    def subscribe(self, table: str) -> FeedSubscription:
        """Open a subscription to row changes on ``table``."""

    @abstractmethod
    def events(self, subscription: FeedSubscription) -> AsyncIterator[dict[str, Any]]:
        """Yield raw change events until the subscription is closed.

        Raises ``FeedDisconnectedError`` when the connection drops or the
        subscription is no longer connected.
        """

    @abstractmethod
    def unsubscribe(self, subscription: FeedSubscription) -> None:
        """Close a subscription; its event stream ends without further deliveries."""

    @abstractmethod
    async def publish(self, table: str, event: dict[str, Any]) -> int:
        """Deliver an event to every subscription on ``table``; returns the delivery count."""

    @abstractmethod
    async def close(self) -> None:
        """Close every subscription and release resources."""


__all__ = ["ChangeFeed", "FeedDisconnectedError", "FeedSubscription"]
