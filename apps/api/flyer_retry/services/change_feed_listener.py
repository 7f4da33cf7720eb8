"""Change-feed listener that merges pushed row updates into the status store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from flyer_retry.adapters.feed import ChangeFeed, FeedDisconnectedError, FeedSubscription
from flyer_retry.core.logging_safety import safe_log_identifier
from flyer_retry.repositories.status_store import JobRecord, StatusStore
from flyer_retry.schemas.feed import ChangeEvent
from flyer_retry.schemas.flyer import FlyerRequestRow

logger = logging.getLogger(__name__)

_APPLIED_EVENT_TYPES = frozenset({"INSERT", "UPDATE"})


class ChangeFeedListener:
    """Owns the session's single change-feed subscription.

    Duplicate or reordered deliveries are harmless because every event goes
    through the store's classifier. Missed events during a disconnect are not
    replayed; a later snapshot reload restores ground truth.
    """

    def __init__(
        self,
        store: StatusStore,
        feed: ChangeFeed,
        *,
        table: str,
        reconnect_delay_seconds: float = 1.0,
    ) -> None:
        self._store = store
        self._feed = feed
        self._table = table
        self._reconnect_delay_seconds = reconnect_delay_seconds
        self._subscription: FeedSubscription | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self.applied_count = 0
        self.rejected_count = 0
        self.reconnect_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            await self.stop()

        self._running = True
        self._subscription = self._feed.subscribe(self._table)
        self._task = asyncio.create_task(self._run(), name=f"change-feed:{self._table}")
        logger.info("feed.subscribed table=%s subscription_id=%s", self._table, self._subscription.subscription_id)

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        self._teardown_subscription()
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("feed.stopped table=%s applied=%s rejected=%s", self._table, self.applied_count, self.rejected_count)

    def handle_event(self, payload: Any) -> bool:
        """Apply one raw change event; returns whether it touched the store."""
        if not self._running:
            return False

        try:
            event = ChangeEvent.model_validate(payload)
            if event.table != self._table or event.type not in _APPLIED_EVENT_TYPES:
                return False
            if event.record is None:
                raise ValueError("change event has no record")
            row = FlyerRequestRow.model_validate(event.record)
        except (ValidationError, ValueError) as exc:
            self.rejected_count += 1
            logger.warning("feed.rejected table=%s reason=%s", self._table, type(exc).__name__)
            return False

        previous_status = self._store.get_status(row.request_id)
        new_status = self._store.upsert_from_feed(JobRecord.from_row(row))
        safe_request_id = safe_log_identifier(row.request_id, prefix="rid")
        if new_status is None:
            logger.debug("feed.ignored request_id=%s raw_status=%s", safe_request_id, row.status)
            return False

        self.applied_count += 1
        logger.info(
            "feed.applied request_id=%s prev_status=%s new_status=%s",
            safe_request_id,
            previous_status.value if previous_status is not None else None,
            new_status.value,
        )
        return True

    async def _run(self) -> None:
        while self._running:
            subscription = self._subscription
            if subscription is None:
                return
            try:
                async for payload in self._feed.events(subscription):
                    if not self._running:
                        return
                    self.handle_event(payload)
                if not self._running:
                    return
                # Closed from outside the listener; treat like a dropped connection.
                logger.warning("feed.closed_externally table=%s subscription_id=%s", self._table, subscription.subscription_id)
            except FeedDisconnectedError:
                logger.warning("feed.disconnected table=%s subscription_id=%s", self._table, subscription.subscription_id)

            await asyncio.sleep(self._reconnect_delay_seconds)
            if not self._running:
                return
            self._teardown_subscription()
            self._subscription = self._feed.subscribe(self._table)
            self.reconnect_count += 1
            logger.info(
                "feed.resubscribed table=%s subscription_id=%s attempt=%s",
                self._table,
                self._subscription.subscription_id,
                self.reconnect_count,
            )

    def _teardown_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            self._feed.unsubscribe(subscription)
