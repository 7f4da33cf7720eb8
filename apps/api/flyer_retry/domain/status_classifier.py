"""Canonical status reconciliation rules."""

from enum import Enum

from flyer_retry.schemas.flyer import CanonicalStatus

_FAILED_SIGNALS: frozenset[str] = frozenset({"error"})
_SUCCESS_SIGNALS: frozenset[str] = frozenset({"success", "Exporting"})

TERMINAL_STATUSES: frozenset[CanonicalStatus] = frozenset({CanonicalStatus.RETRY_SUCCESSFUL})
RETRYABLE_STATUSES: frozenset[CanonicalStatus] = frozenset({CanonicalStatus.PENDING, CanonicalStatus.FAILED})


class AmbiguousSignalPolicy(str, Enum):
    """What an unrecognized raw signal means for a record that is already known."""

    FAILED = "failed"
    KEEP = "keep"


def candidate_status(raw_signal: str | None) -> CanonicalStatus:
    """Map a raw server signal to its status without looking at history."""
    if raw_signal in _FAILED_SIGNALS:
        return CanonicalStatus.FAILED
    if raw_signal in _SUCCESS_SIGNALS:
        return CanonicalStatus.RETRY_SUCCESSFUL
    return CanonicalStatus.PENDING


def classify(
    raw_signal: str | None,
    previous_status: CanonicalStatus | None = None,
    *,
    policy: AmbiguousSignalPolicy = AmbiguousSignalPolicy.FAILED,
) -> CanonicalStatus:
    """Merge a raw signal with the previously known status.

    ``previous_status`` is ``None`` only for the very first observation of a
    record. ``Pending`` can only be produced on that first observation; later
    ambiguous signals resolve according to ``policy``.
    """
    if previous_status in TERMINAL_STATUSES:
        return previous_status

    candidate = candidate_status(raw_signal)
    if candidate is not CanonicalStatus.PENDING or previous_status is None:
        return candidate

    # An ambiguous signal never clears an in-flight optimistic retry.
    if previous_status is CanonicalStatus.RETRYING:
        return CanonicalStatus.RETRYING
    if policy is AmbiguousSignalPolicy.KEEP:
        return previous_status
    return CanonicalStatus.FAILED


def can_override(current_status: CanonicalStatus, new_status: CanonicalStatus) -> bool:
    """Whether a direct status write may replace ``current_status``."""
    if current_status in TERMINAL_STATUSES:
        return new_status is current_status
    return True
