from __future__ import annotations

import hashlib

from django.test import TestCase

from ledger.exceptions import DuplicateContactError, DuplicateDeviceError
from ledger.identity_guard import (
    RegistrationCheck,
    check_registration,
    check_vote_uniqueness,
    device_fingerprint_digest,
)
from ledger.services import cast_vote
from ledger.tests.utils_test_data import make_party, make_voter


class DeviceFingerprintDigestTests(TestCase):
    def test_digest_is_sha256_of_visitor_id(self) -> None:
        self.assertEqual(
            device_fingerprint_digest("visitor-123"),
            hashlib.sha256(b"visitor-123").hexdigest(),
        )

    def test_empty_visitor_id_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            device_fingerprint_digest("  ")


class CheckRegistrationTests(TestCase):
    def test_unknown_device_is_available(self) -> None:
        self.assertEqual(check_registration(fingerprint_hash="a" * 64), RegistrationCheck.available)

    def test_registered_device_is_reported(self) -> None:
        make_voter("alice", fingerprint="a" * 64)
        self.assertEqual(check_registration(fingerprint_hash="A" * 64), RegistrationCheck.already_registered)

    def test_missing_fingerprint_is_available(self) -> None:
        make_voter("alice", fingerprint="a" * 64)
        self.assertEqual(check_registration(fingerprint_hash=None), RegistrationCheck.available)


class CheckVoteUniquenessTests(TestCase):
    def test_own_fingerprint_is_not_a_conflict(self) -> None:
        alice = make_voter("alice", fingerprint="a" * 64, email="alice@example.com")
        check_vote_uniqueness(voter=alice, fingerprint_hash="a" * 64, email="alice@example.com")

    def test_fingerprint_of_another_voter_conflicts(self) -> None:
        make_voter("alice", fingerprint="a" * 64)
        bob = make_voter("bob")
        with self.assertRaises(DuplicateDeviceError):
            check_vote_uniqueness(voter=bob, fingerprint_hash="a" * 64)

    def test_fingerprint_used_for_another_vote_conflicts(self) -> None:
        party = make_party()
        alice = make_voter("alice")
        cast_vote(voter_ref=alice.pk, party_id=party.pk, fingerprint_hash="d" * 64)

        bob = make_voter("bob")
        with self.assertRaises(DuplicateDeviceError):
            check_vote_uniqueness(voter=bob, fingerprint_hash="d" * 64)

    def test_email_is_compared_case_insensitively(self) -> None:
        make_voter("alice", email="alice@example.com")
        with self.assertRaises(DuplicateContactError):
            check_vote_uniqueness(voter=None, fingerprint_hash=None, email="Alice@Example.com")

    def test_phone_number_conflicts(self) -> None:
        make_voter("alice", phone_number="+919800000001")
        with self.assertRaises(DuplicateContactError):
            check_vote_uniqueness(voter=None, fingerprint_hash=None, phone_number="+919800000001")

    def test_device_conflict_is_reported_before_contact_conflict(self) -> None:
        make_voter("alice", fingerprint="a" * 64, email="alice@example.com")
        with self.assertRaises(DuplicateDeviceError):
            check_vote_uniqueness(voter=None, fingerprint_hash="a" * 64, email="alice@example.com")
