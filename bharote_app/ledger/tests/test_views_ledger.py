from __future__ import annotations

import json
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.test import TestCase
from django.urls import reverse

from ledger.exceptions import LedgerBusyError
from ledger.hashing import GENESIS_MARKER
from ledger.identity_guard import device_fingerprint_digest
from ledger.models import Block, Voter
from ledger.services import cast_vote
from ledger.tests.utils_test_data import make_party, make_voter


class VoteSubmitViewTests(TestCase):
    def setUp(self) -> None:
        self.party = make_party("ALP")
        self.user = get_user_model().objects.create_user(username="alice")
        self.voter = make_voter("alice")

    def _submit(self, payload: dict[str, object]):
        return self.client.post(
            reverse("ledger-vote-submit"),
            data=json.dumps(payload),
            content_type="application/json",
        )

    def test_anonymous_user_is_refused(self) -> None:
        resp = self._submit({"party_id": self.party.pk})
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(Block.objects.exists())

    def test_user_without_registration_is_refused(self) -> None:
        self.client.force_login(get_user_model().objects.create_user(username="mallory"))
        resp = self._submit({"party_id": self.party.pk})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "not_registered")

    def test_successful_vote_returns_receipt(self) -> None:
        self.client.force_login(self.user)
        resp = self._submit({"party_id": self.party.pk, "visitor_id": "fp-visitor-1"})

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertTrue(data["ok"])
        self.assertEqual(data["voter_id"], self.voter.voter_id)
        self.assertEqual(data["block_number"], 1)
        self.assertEqual(data["previous_hash"], GENESIS_MARKER)
        self.assertNotIn("party_id", data)

        block = Block.objects.get()
        self.assertEqual(block.device_fingerprint, device_fingerprint_digest("fp-visitor-1"))

    def test_second_vote_is_a_conflict(self) -> None:
        self.client.force_login(self.user)
        self.assertEqual(self._submit({"party_id": self.party.pk}).status_code, 200)

        resp = self._submit({"party_id": self.party.pk})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["code"], "already_voted")
        self.assertEqual(Block.objects.count(), 1)

    def test_unverified_voter_is_forbidden(self) -> None:
        Voter.objects.filter(pk=self.voter.pk).update(verification_status=Voter.VerificationStatus.otp_sent)
        self.client.force_login(self.user)

        resp = self._submit({"party_id": self.party.pk})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "not_verified")

    def test_bad_payloads_are_rejected(self) -> None:
        self.client.force_login(self.user)
        self.assertEqual(self._submit({}).status_code, 400)
        self.assertEqual(self._submit({"party_id": 999999}).status_code, 400)

        resp = self.client.post(reverse("ledger-vote-submit"), data="{not json", content_type="application/json")
        self.assertEqual(resp.status_code, 400)

    def test_busy_ledger_is_retryable(self) -> None:
        self.client.force_login(self.user)
        with patch("ledger.views_ledger.cast_vote", side_effect=LedgerBusyError("busy")):
            resp = self._submit({"party_id": self.party.pk})

        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp["Retry-After"], "1")
        self.assertTrue(resp.json()["retryable"])

    def test_get_is_not_allowed(self) -> None:
        self.client.force_login(self.user)
        self.assertEqual(self.client.get(reverse("ledger-vote-submit")).status_code, 405)


class ExplorerViewTests(TestCase):
    def setUp(self) -> None:
        self.party = make_party("ALP")
        self.blocks = [
            cast_vote(voter_ref=make_voter(f"voter{i}").pk, party_id=self.party.pk).block
            for i in range(12)
        ]

    def test_block_list_is_paginated_newest_first(self) -> None:
        resp = self.client.get(reverse("ledger-block-list"))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(len(data["blocks"]), 10)
        self.assertEqual(data["blocks"][0]["block_number"], 12)
        self.assertEqual(data["total_blocks"], 12)
        self.assertEqual(data["num_pages"], 2)
        self.assertTrue(data["has_next"])

        page_two = self.client.get(reverse("ledger-block-list"), {"page": 2}).json()
        self.assertEqual([b["block_number"] for b in page_two["blocks"]], [2, 1])
        self.assertTrue(page_two["blocks"][-1]["is_genesis_link"])

    def test_search_by_number_and_hash(self) -> None:
        by_number = self.client.get(reverse("ledger-block-list"), {"q": "#5"}).json()
        self.assertIn(5, [b["block_number"] for b in by_number["blocks"]])

        target = self.blocks[6]
        by_hash = self.client.get(reverse("ledger-block-list"), {"q": target.vote_hash[:16]}).json()
        self.assertIn(target.vote_hash, [b["vote_hash"] for b in by_hash["blocks"]])

    def test_block_detail_hides_voter_and_party(self) -> None:
        resp = self.client.get(reverse("ledger-block-detail", args=[3]))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["vote_hash"], self.blocks[2].vote_hash)
        for private_key in ("voter", "voter_id", "party", "party_id", "device_fingerprint"):
            self.assertNotIn(private_key, data)

    def test_missing_block_is_404(self) -> None:
        self.assertEqual(self.client.get(reverse("ledger-block-detail", args=[99])).status_code, 404)

    def test_verify_endpoint(self) -> None:
        data = self.client.get(reverse("ledger-verify")).json()
        self.assertTrue(data["valid"])
        self.assertEqual(data["checked"], 12)

        Block.objects.filter(block_number=4).update(device_fingerprint="0" * 64)
        with self.assertLogs("ledger.views_ledger", level="ERROR"):
            data = self.client.get(reverse("ledger-verify")).json()
        self.assertFalse(data["valid"])
        self.assertEqual(data["block_number"], 4)
        self.assertEqual(data["reason"], "digest_mismatch")

    def test_public_chain_export(self) -> None:
        data = self.client.get(reverse("ledger-public-chain")).json()
        self.assertEqual(data["genesis_hash"], GENESIS_MARKER)
        self.assertEqual(data["length"], 12)
        self.assertEqual(data["chain_head"], self.blocks[-1].vote_hash)
        self.assertEqual([b["block_number"] for b in data["blocks"]], list(range(1, 13)))


class ResultsViewTests(TestCase):
    def test_results_include_parties_without_votes(self) -> None:
        alp = make_party("ALP", display_order=1)
        nota = make_party("NOTA", is_nota=True, display_order=2)
        cast_vote(voter_ref=make_voter("alice").pk, party_id=alp.pk)
        cast_vote(voter_ref=make_voter("bob").pk, party_id=alp.pk)
        make_voter("carol")

        data = self.client.get(reverse("ledger-results")).json()
        counts = {row["short_name"]: row["vote_count"] for row in data["results"]}
        self.assertEqual(counts, {"ALP": 2, "NOTA": 0})
        self.assertEqual(data["results"][-1]["party_id"], nota.pk)
        self.assertEqual(
            data["turnout"],
            {
                "total_voters": 3,
                "verified_voters": 3,
                "pending_verification": 0,
                "voted_count": 2,
                "turnout_percent": 67,
                "total_blocks": 2,
            },
        )


class AdminResetViewTests(TestCase):
    def setUp(self) -> None:
        party = make_party()
        cast_vote(voter_ref=make_voter("alice").pk, party_id=party.pk)
        self.user = get_user_model().objects.create_user(username="admin")

    def _reset(self, payload: dict[str, object]):
        return self.client.post(
            reverse("ledger-admin-reset"),
            data=json.dumps(payload),
            content_type="application/json",
        )

    def test_anonymous_and_unprivileged_users_are_denied(self) -> None:
        self.assertEqual(self._reset({"confirm": "RESET"}).status_code, 403)

        self.client.force_login(self.user)
        self.assertEqual(self._reset({"confirm": "RESET"}).status_code, 403)
        self.assertEqual(Block.objects.count(), 1)

    def test_reset_requires_confirmation(self) -> None:
        self.user.user_permissions.add(Permission.objects.get(codename="reset_ledger", content_type__app_label="ledger"))
        self.client.force_login(self.user)

        resp = self._reset({"confirm": "yes"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(Block.objects.count(), 1)

    def test_privileged_reset(self) -> None:
        self.user.user_permissions.add(Permission.objects.get(codename="reset_ledger", content_type__app_label="ledger"))
        self.client.force_login(self.user)

        resp = self._reset({"confirm": "RESET"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True, "blocks_deleted": 1, "voters_cleared": 1})
        self.assertFalse(Block.objects.exists())


class VoteReceiptViewTests(TestCase):
    def setUp(self) -> None:
        self.party = make_party("ALP")
        self.user = get_user_model().objects.create_user(username="alice")
        self.voter = make_voter("alice")

    def test_anonymous_user_is_refused(self) -> None:
        self.assertEqual(self.client.get(reverse("ledger-vote-receipt")).status_code, 403)

    def test_not_yet_voted(self) -> None:
        self.client.force_login(self.user)
        resp = self.client.get(reverse("ledger-vote-receipt"))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["code"], "not_voted")

    def test_own_receipt_without_the_choice(self) -> None:
        cast_vote(voter_ref=make_voter("bob").pk, party_id=self.party.pk)
        receipt = cast_vote(voter_ref=self.voter.pk, party_id=self.party.pk)
        self.client.force_login(self.user)

        resp = self.client.get(reverse("ledger-vote-receipt"))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["voter_id"], self.voter.voter_id)
        self.assertEqual(data["block_number"], 2)
        self.assertEqual(data["vote_hash"], receipt.block.vote_hash)
        for private_key in ("party", "party_id", "device_fingerprint"):
            self.assertNotIn(private_key, data)


class PartiesViewTests(TestCase):
    def test_parties_are_listed_in_booth_order(self) -> None:
        make_party("NOTA", is_nota=True, display_order=9)
        make_party("BRP", display_order=2)
        make_party("ALP", display_order=1)

        data = self.client.get(reverse("ledger-parties")).json()
        self.assertEqual([p["short_name"] for p in data["parties"]], ["ALP", "BRP", "NOTA"])
        self.assertTrue(data["parties"][-1]["is_nota"])


class AdminStatsViewTests(TestCase):
    def setUp(self) -> None:
        party = make_party()
        cast_vote(voter_ref=make_voter("alice").pk, party_id=party.pk)
        make_voter("bob", verified=False)
        self.user = get_user_model().objects.create_user(username="admin")

    def test_requires_permission(self) -> None:
        self.assertEqual(self.client.get(reverse("ledger-admin-stats")).status_code, 403)
        self.client.force_login(self.user)
        self.assertEqual(self.client.get(reverse("ledger-admin-stats")).status_code, 403)

    def test_stats_and_recent_voters(self) -> None:
        self.user.user_permissions.add(Permission.objects.get(codename="view_voter", content_type__app_label="ledger"))
        self.client.force_login(self.user)

        data = self.client.get(reverse("ledger-admin-stats")).json()
        self.assertEqual(data["turnout"]["pending_verification"], 1)
        self.assertEqual(data["turnout"]["voted_count"], 1)
        self.assertEqual([v["full_name"] for v in data["recent_voters"]], ["Bob", "Alice"])
        self.assertEqual(data["recent_voters"][0]["verification_status"], "unverified")
