from __future__ import annotations

import datetime

from django.test import SimpleTestCase

from ledger.hashing import GENESIS_MARKER, canonical_timestamp, compute_vote_hash, is_hex_digest


class VoteHashTests(SimpleTestCase):
    def setUp(self) -> None:
        self.ts = datetime.datetime(2026, 3, 1, 9, 30, 0, 123456, tzinfo=datetime.UTC)
        self.fields: dict[str, object] = {
            "voter_ref": 7,
            "option_ref": 3,
            "timestamp": self.ts,
            "previous_hash": GENESIS_MARKER,
            "device_fingerprint": "a" * 64,
        }

    def test_genesis_marker_is_a_hex_digest(self) -> None:
        self.assertTrue(is_hex_digest(GENESIS_MARKER))

    def test_hash_is_deterministic(self) -> None:
        first = compute_vote_hash(**self.fields)
        self.assertEqual(first, compute_vote_hash(**self.fields))
        self.assertTrue(is_hex_digest(first))

    def test_every_field_changes_the_hash(self) -> None:
        baseline = compute_vote_hash(**self.fields)
        changes: dict[str, object] = {
            "voter_ref": 8,
            "option_ref": 4,
            "timestamp": self.ts + datetime.timedelta(microseconds=1),
            "previous_hash": "b" * 64,
            "device_fingerprint": "c" * 64,
        }
        for name, value in changes.items():
            with self.subTest(field=name):
                self.assertNotEqual(compute_vote_hash(**{**self.fields, name: value}), baseline)

    def test_field_boundaries_cannot_be_shifted(self) -> None:
        a = compute_vote_hash(**{**self.fields, "voter_ref": "12", "option_ref": "3"})
        b = compute_vote_hash(**{**self.fields, "voter_ref": "1", "option_ref": "23"})
        self.assertNotEqual(a, b)

    def test_missing_previous_hash_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            compute_vote_hash(**{**self.fields, "previous_hash": None})

    def test_malformed_previous_hash_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            compute_vote_hash(**{**self.fields, "previous_hash": "not-a-digest"})

    def test_same_instant_in_other_timezone_hashes_equally(self) -> None:
        ist = datetime.timezone(datetime.timedelta(hours=5, minutes=30))
        shifted = self.ts.astimezone(ist)
        self.assertEqual(canonical_timestamp(shifted), canonical_timestamp(self.ts))
        self.assertEqual(compute_vote_hash(**{**self.fields, "timestamp": shifted}), compute_vote_hash(**self.fields))

    def test_naive_timestamp_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            canonical_timestamp(datetime.datetime(2026, 3, 1, 9, 30))
