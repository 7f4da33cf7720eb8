"""In-process change feed backed by asyncio queues."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
import logging
from typing import Any

from flyer_retry.adapters.feed.base import ChangeFeed, FeedDisconnectedError, FeedSubscription

logger = logging.getLogger(__name__)

_CLOSED = object()
_DISCONNECTED = object()


class InMemoryChangeFeed(ChangeFeed):
    """Single-process feed used by the internal webhook and by tests.

    Each subscription owns a bounded queue; when it is full the oldest event
    is dropped, which the listener tolerates like any other missed delivery.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        self._max_queue_size = max_queue_size
        self._subscriptions: dict[str, FeedSubscription] = {}
        self._queues: dict[str, asyncio.Queue[Any]] = {}
        self._closed = False

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, table: str) -> FeedSubscription:
        subscription = FeedSubscription(table=table)
        self._subscriptions[subscription.subscription_id] = subscription
        self._queues[subscription.subscription_id] = asyncio.Queue(maxsize=self._max_queue_size)
        return subscription

    async def events(self, subscription: FeedSubscription) -> AsyncIterator[dict[str, Any]]:
        queue = self._queues.get(subscription.subscription_id)
        if queue is None:
            raise FeedDisconnectedError(f"Subscription {subscription.subscription_id} is not connected")

        while True:
            item = await queue.get()
            if item is _CLOSED:
                return
            if item is _DISCONNECTED:
                raise FeedDisconnectedError(f"Subscription {subscription.subscription_id} disconnected")
            yield item

    def unsubscribe(self, subscription: FeedSubscription) -> None:
        self._subscriptions.pop(subscription.subscription_id, None)
        queue = self._queues.pop(subscription.subscription_id, None)
        if queue is not None:
            self._put_control(queue, _CLOSED)

    async def publish(self, table: str, event: dict[str, Any]) -> int:
        if self._closed:
            return 0

        delivered = 0
        for subscription_id, subscription in list(self._subscriptions.items()):
            if subscription.table != table:
                continue
            queue = self._queues.get(subscription_id)
            if queue is None:
                continue
            if queue.full():
                queue.get_nowait()
                logger.warning("feed.event_dropped subscription_id=%s reason=queue_full", subscription_id)
            queue.put_nowait(event)
            delivered += 1
        return delivered

    def disconnect(self) -> None:
        """Drop every live connection; subscribers see ``FeedDisconnectedError``."""
        for subscription_id, queue in list(self._queues.items()):
            self._put_control(queue, _DISCONNECTED)
            self._subscriptions.pop(subscription_id, None)
        self._queues.clear()

    async def close(self) -> None:
        self._closed = True
        for queue in self._queues.values():
            self._put_control(queue, _CLOSED)
        self._queues.clear()
        self._subscriptions.clear()

    @staticmethod
    def _put_control(queue: asyncio.Queue[Any], marker: object) -> None:
        # Control markers must reach the consumer even when the queue is saturated.
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(marker)


__all__ = ["InMemoryChangeFeed"]
