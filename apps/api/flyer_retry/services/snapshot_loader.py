"""Snapshot loading service."""

import logging

from flyer_retry.adapters.api import FlyerApiClient
from flyer_retry.core.logging_safety import safe_error_reason
from flyer_retry.errors import FetchError
from flyer_retry.repositories.status_store import JobRecord, StatusStore

logger = logging.getLogger(__name__)


class SnapshotLoader:
    """Fetches the remote job list and rebuilds the status store from it."""

    def __init__(self, store: StatusStore, client: FlyerApiClient) -> None:
        self._store = store
        self._client = client
        self.last_error: FetchError | None = None

    async def load(self) -> list[JobRecord]:
        try:
            rows = await self._client.list_failed_requests()
        except FetchError as exc:
            self.last_error = exc
            logger.warning(
                "snapshot.failed code=%s status_code=%s generation=%s",
                exc.code,
                exc.status_code,
                self._store.generation,
            )
            raise

        records = [JobRecord.from_row(row) for row in rows]
        generation = self._store.initialize(records)
        self.last_error = None
        logger.info("snapshot.loaded generation=%s tracked=%s", generation, len(self._store.records))
        return records

    async def try_load(self) -> bool:
        """Load, recording but not raising a failure; used where the caller only needs the outcome."""
        try:
            await self.load()
        except FetchError as exc:
            logger.info("snapshot.load_skipped reason=%s", safe_error_reason(exc))
            return False
        return True
