"""Status classification rules for raw server signals."""

from __future__ import annotations

import unittest

from flyer_retry.domain.status_classifier import AmbiguousSignalPolicy, can_override, candidate_status, classify
from flyer_retry.schemas.flyer import CanonicalStatus


class StatusClassifierUnitTests(unittest.TestCase):
    def test_first_observation_maps_raw_signal_to_candidate(self) -> None:
        cases = [
            ("error", CanonicalStatus.FAILED),
            ("success", CanonicalStatus.RETRY_SUCCESSFUL),
            ("Exporting", CanonicalStatus.RETRY_SUCCESSFUL),
            (None, CanonicalStatus.PENDING),
            ("queued", CanonicalStatus.PENDING),
            ("exporting", CanonicalStatus.PENDING),
        ]
        for raw_signal, expected in cases:
            with self.subTest(raw_signal=raw_signal):
                self.assertEqual(classify(raw_signal), expected)
                self.assertEqual(candidate_status(raw_signal), expected)

    def test_ambiguous_signal_keeps_in_flight_retry(self) -> None:
        for raw_signal in (None, "", "processing"):
            with self.subTest(raw_signal=raw_signal):
                self.assertEqual(classify(raw_signal, CanonicalStatus.RETRYING), CanonicalStatus.RETRYING)

    def test_unambiguous_signal_settles_in_flight_retry(self) -> None:
        self.assertEqual(classify("error", CanonicalStatus.RETRYING), CanonicalStatus.FAILED)
        self.assertEqual(classify("success", CanonicalStatus.RETRYING), CanonicalStatus.RETRY_SUCCESSFUL)

    def test_ambiguous_signal_for_known_record_defaults_to_failed(self) -> None:
        for previous in (CanonicalStatus.PENDING, CanonicalStatus.FAILED):
            with self.subTest(previous=previous):
                self.assertEqual(classify(None, previous), CanonicalStatus.FAILED)

    def test_keep_policy_preserves_previous_status_for_ambiguous_signal(self) -> None:
        policy = AmbiguousSignalPolicy.KEEP
        self.assertEqual(classify(None, CanonicalStatus.PENDING, policy=policy), CanonicalStatus.PENDING)
        self.assertEqual(classify("queued", CanonicalStatus.FAILED, policy=policy), CanonicalStatus.FAILED)
        self.assertEqual(classify(None, CanonicalStatus.RETRYING, policy=policy), CanonicalStatus.RETRYING)
        self.assertEqual(classify("error", CanonicalStatus.PENDING, policy=policy), CanonicalStatus.FAILED)

    def test_retry_successful_is_terminal(self) -> None:
        for raw_signal in ("error", "success", None, "queued"):
            with self.subTest(raw_signal=raw_signal):
                self.assertEqual(
                    classify(raw_signal, CanonicalStatus.RETRY_SUCCESSFUL),
                    CanonicalStatus.RETRY_SUCCESSFUL,
                )

    def test_direct_override_cannot_leave_terminal_status(self) -> None:
        self.assertFalse(can_override(CanonicalStatus.RETRY_SUCCESSFUL, CanonicalStatus.FAILED))
        self.assertFalse(can_override(CanonicalStatus.RETRY_SUCCESSFUL, CanonicalStatus.RETRYING))
        self.assertTrue(can_override(CanonicalStatus.RETRY_SUCCESSFUL, CanonicalStatus.RETRY_SUCCESSFUL))
        self.assertTrue(can_override(CanonicalStatus.RETRYING, CanonicalStatus.FAILED))
        self.assertTrue(can_override(CanonicalStatus.FAILED, CanonicalStatus.RETRYING))


if __name__ == "__main__":
    unittest.main()
