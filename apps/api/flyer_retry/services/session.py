"""Retry console session scope."""

from __future__ import annotations

import logging

from flyer_retry.adapters.api import FlyerApiClient
from flyer_retry.adapters.feed import ChangeFeed, InMemoryChangeFeed
from flyer_retry.core.config import Settings
from flyer_retry.domain.status_classifier import AmbiguousSignalPolicy
from flyer_retry.repositories.status_store import StatusStore
from flyer_retry.services.change_feed_listener import ChangeFeedListener
from flyer_retry.services.retry_coordinator import RetryCoordinator
from flyer_retry.services.snapshot_loader import SnapshotLoader

logger = logging.getLogger(__name__)


class RetrySession:
    """Wires one store to its loader, listener and coordinator for the lifetime of a session."""

    def __init__(
        self,
        *,
        client: FlyerApiClient,
        feed: ChangeFeed,
        feed_table: str,
        policy: AmbiguousSignalPolicy = AmbiguousSignalPolicy.FAILED,
        reconnect_delay_seconds: float = 1.0,
    ) -> None:
        self.client = client
        self.feed = feed
        self.feed_table = feed_table
        self.store = StatusStore(policy=policy)
        self.loader = SnapshotLoader(self.store, client)
        self.listener = ChangeFeedListener(
            self.store,
            feed,
            table=feed_table,
            reconnect_delay_seconds=reconnect_delay_seconds,
        )
        self.coordinator = RetryCoordinator(self.store, client, self.loader)

    @classmethod
    def from_settings(cls, settings: Settings, *, client: FlyerApiClient | None = None) -> RetrySession:
        return cls(
            client=client or FlyerApiClient.from_settings(settings),
            feed=InMemoryChangeFeed(max_queue_size=settings.feed_queue_size),
            feed_table=settings.feed_table,
            policy=AmbiguousSignalPolicy(settings.ambiguous_signal_policy),
            reconnect_delay_seconds=settings.feed_reconnect_delay_seconds,
        )

    async def start(self) -> None:
        loaded = await self.loader.try_load()
        await self.listener.start()
        logger.info("session.started loaded=%s generation=%s", loaded, self.store.generation)

    async def close(self) -> None:
        try:
            await self.listener.stop()
        finally:
            try:
                await self.feed.close()
            finally:
                await self.client.aclose()
        logger.info("session.closed generation=%s writes=%s", self.store.generation, self.store.write_count)

    async def __aenter__(self) -> RetrySession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
