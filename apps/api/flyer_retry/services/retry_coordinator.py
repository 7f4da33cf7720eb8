"""Retry coordination service."""

import logging

from flyer_retry.adapters.api import FlyerApiClient
from flyer_retry.core.logging_safety import safe_error_reason, safe_log_identifier
from flyer_retry.domain.status_classifier import RETRYABLE_STATUSES
from flyer_retry.errors import FetchError, RetryAllError, RetryError
from flyer_retry.repositories.status_store import StatusStore
from flyer_retry.schemas.flyer import CanonicalStatus
from flyer_retry.services.snapshot_loader import SnapshotLoader

logger = logging.getLogger(__name__)


class RetryCoordinator:
    def __init__(self, store: StatusStore, client: FlyerApiClient, loader: SnapshotLoader) -> None:
        self._store = store
        self._client = client
        self._loader = loader

    def can_retry(self, request_id: str) -> bool:
        return self._store.get_status(request_id) in RETRYABLE_STATUSES

    async def retry_one(self, request_id: str) -> CanonicalStatus | None:
        """Optimistically mark one request as retrying, then settle it from the retry response.

        The precondition (tracked and retryable) is checked by callers through
        ``can_retry`` so this stays composable. Every exit path settles the
        request; a cancelled call settles it to ``Failed`` before propagating.
        Returns the current status, or ``None`` when the store was rebuilt
        while the request was in flight.
        """
        safe_request_id = safe_log_identifier(request_id, prefix="rid")
        generation = self._store.generation
        self._store.set_status(request_id, CanonicalStatus.RETRYING, generation=generation)
        logger.info("retry.started request_id=%s generation=%s", safe_request_id, generation)

        try:
            await self._client.retry(request_id)
        except RetryError as exc:
            outcome = CanonicalStatus.FAILED
            logger.warning(
                "retry.failed request_id=%s code=%s status_code=%s",
                safe_request_id,
                exc.code,
                exc.status_code,
            )
        except Exception as exc:
            outcome = CanonicalStatus.FAILED
            logger.warning("retry.failed request_id=%s reason=%s", safe_request_id, safe_error_reason(exc))
        except BaseException:
            self._store.set_status(request_id, CanonicalStatus.FAILED, generation=generation)
            logger.warning("retry.cancelled request_id=%s generation=%s", safe_request_id, generation)
            raise
        else:
            outcome = CanonicalStatus.RETRY_SUCCESSFUL

        applied = self._store.set_status(request_id, outcome, generation=generation)
        if not applied:
            logger.info(
                "retry.outcome_dropped request_id=%s outcome=%s generation=%s current_generation=%s",
                safe_request_id,
                outcome.value,
                generation,
                self._store.generation,
            )
            if generation != self._store.generation:
                return None
            return self._store.get_status(request_id)

        logger.info("retry.completed request_id=%s status=%s", safe_request_id, outcome.value)
        return self._store.get_status(request_id)

    async def retry_all(self) -> int:
        """Retry every tracked request with one bulk call; returns how many were marked retrying.

        On acceptance the per-request outcomes arrive through the change feed.
        On failure the optimistic state is discarded by reloading the snapshot
        and ``RetryAllError`` is raised.
        """
        request_ids = self._store.tracked_ids()
        if not request_ids:
            logger.info("retry_all.skipped reason=no_tracked_requests")
            return 0

        generation = self._store.generation
        marked = 0
        for request_id in request_ids:
            if self._store.set_status(request_id, CanonicalStatus.RETRYING, generation=generation):
                marked += 1
        logger.info("retry_all.started generation=%s retrying=%s", generation, marked)

        try:
            await self._client.retry_all()
        except RetryError as exc:
            logger.warning(
                "retry_all.failed code=%s status_code=%s action=reload_snapshot",
                exc.code,
                exc.status_code,
            )
            reloaded = await self._reload_after_failure()
            raise RetryAllError(
                "RETRY_ALL_FAILED",
                "Retry-all request failed; job list reloaded from server",
                status_code=exc.status_code,
                reloaded=reloaded,
            ) from exc

        logger.info("retry_all.accepted generation=%s retrying=%s", generation, marked)
        return marked

    async def _reload_after_failure(self) -> bool:
        try:
            await self._loader.load()
        except FetchError as exc:
            # The optimistic state is still discarded so no request stays stuck in Retrying.
            logger.error("retry_all.reload_failed reason=%s", safe_error_reason(exc))
            self._store.initialize([])
            return False
        return True
