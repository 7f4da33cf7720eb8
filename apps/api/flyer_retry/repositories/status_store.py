"""In-memory status store shared by the loader, the change-feed listener and the retry coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging

from flyer_retry.core.logging_safety import safe_log_identifier
from flyer_retry.domain.status_classifier import AmbiguousSignalPolicy, can_override, classify
from flyer_retry.schemas.flyer import CanonicalStatus, FlyerRequestRow

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JobRecord:
    request_id: str
    store_name: str | None = None
    date: str | None = None
    error_notes: str | None = None
    raw_status: str | None = None

    @classmethod
    def from_row(cls, row: FlyerRequestRow) -> JobRecord:
        return cls(
            request_id=row.request_id,
            store_name=row.store_name,
            date=row.date,
            error_notes=row.error_notes,
            raw_status=row.status,
        )


@dataclass(slots=True)
class StoreSnapshot:
    generation: int
    records: list[JobRecord]
    statuses: dict[str, CanonicalStatus]


@dataclass(slots=True)
class StatusStore:
    """Single source of truth for tracked flyer requests and their canonical status.

    Every method runs to completion without awaiting, so on a single event loop
    each call is one atomic read-modify-write. Records are kept in insertion
    order; the status map always holds exactly the identifiers of ``records``.
    """

    policy: AmbiguousSignalPolicy = AmbiguousSignalPolicy.FAILED
    records: list[JobRecord] = field(default_factory=list)
    statuses: dict[str, CanonicalStatus] = field(default_factory=dict)
    generation: int = 0
    write_count: int = 0

    def initialize(self, records: list[JobRecord]) -> int:
        """Replace all state with a fresh snapshot and start a new generation."""
        fresh_records: list[JobRecord] = []
        fresh_statuses: dict[str, CanonicalStatus] = {}
        for record in records:
            if record.request_id in fresh_statuses:
                logger.warning(
                    "store.duplicate_ignored request_id=%s generation=%s",
                    safe_log_identifier(record.request_id, prefix="rid"),
                    self.generation + 1,
                )
                continue
            fresh_records.append(replace(record))
            fresh_statuses[record.request_id] = classify(record.raw_status, None, policy=self.policy)

        self.records = fresh_records
        self.statuses = fresh_statuses
        self.generation += 1
        self.write_count += 1
        logger.info(
            "store.initialized generation=%s tracked=%s writes=%s",
            self.generation,
            len(self.records),
            self.write_count,
        )
        return self.generation

    def upsert_from_feed(self, record: JobRecord) -> CanonicalStatus | None:
        """Merge a pushed record; returns the resulting status or ``None`` when discarded."""
        previous_status = self.statuses.get(record.request_id)
        if previous_status is not None:
            new_status = classify(record.raw_status, previous_status, policy=self.policy)
            tracked = self._find(record.request_id)
            if tracked is not None:
                tracked.raw_status = record.raw_status
            if new_status is not previous_status:
                self.statuses[record.request_id] = new_status
                self.write_count += 1
            return new_status

        new_status = classify(record.raw_status, None, policy=self.policy)
        if new_status is not CanonicalStatus.FAILED:
            return None

        self.records.insert(0, replace(record))
        self.statuses[record.request_id] = new_status
        self.write_count += 1
        return new_status

    def set_status(self, request_id: str, status: CanonicalStatus, *, generation: int | None = None) -> bool:
        """Directly override a tracked status; returns whether the write was applied."""
        if generation is not None and generation != self.generation:
            logger.info(
                "store.stale_write_dropped request_id=%s write_generation=%s current_generation=%s",
                safe_log_identifier(request_id, prefix="rid"),
                generation,
                self.generation,
            )
            return False

        current_status = self.statuses.get(request_id)
        if current_status is None:
            return False
        if not can_override(current_status, status):
            logger.warning(
                "store.terminal_write_rejected request_id=%s current_status=%s attempted_status=%s",
                safe_log_identifier(request_id, prefix="rid"),
                current_status.value,
                status.value,
            )
            return False

        if current_status is not status:
            self.statuses[request_id] = status
            self.write_count += 1
        return True

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            generation=self.generation,
            records=[replace(record) for record in self.records],
            statuses=dict(self.statuses),
        )

    def get_status(self, request_id: str) -> CanonicalStatus | None:
        return self.statuses.get(request_id)

    def contains(self, request_id: str) -> bool:
        return request_id in self.statuses

    def tracked_ids(self) -> list[str]:
        return [record.request_id for record in self.records]

    def _find(self, request_id: str) -> JobRecord | None:
        for record in self.records:
            if record.request_id == request_id:
                return record
        return None
