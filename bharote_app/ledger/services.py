from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ledger.eligibility import admit
from ledger.exceptions import (
    ConcurrencyConflictError,
    InvalidFingerprintError,
    InvalidOptionError,
    LedgerBusyError,
)
from ledger.hashing import compute_vote_hash, is_hex_digest
from ledger.models import Block, PoliticalParty
from ledger.notifications import schedule_vote_confirmation
from ledger.sequencer import reserve_next_block_number
from ledger.store import acquire_chain_lock, commit_block

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteReceipt:
    block: Block
    attempts: int

    def as_dict(self) -> dict[str, object]:
        return {
            "block_number": self.block.block_number,
            "vote_hash": self.block.vote_hash,
            "previous_hash": self.block.previous_hash,
            "timestamp": self.block.timestamp.isoformat(),
            "status": self.block.status,
        }


def _get_party(party_id: int | str) -> PoliticalParty:
    try:
        pk = int(party_id)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidOptionError("invalid party") from exc

    party = PoliticalParty.objects.filter(pk=pk).first()
    if party is None:
        raise InvalidOptionError("invalid party")
    return party


def _normalize_fingerprint(fingerprint_hash: str | None) -> str | None:
    fingerprint = str(fingerprint_hash or "").strip().lower()
    if not fingerprint:
        return None
    if not is_hex_digest(fingerprint):
        raise InvalidFingerprintError("fingerprint_hash must be a SHA-256 hex digest of the device id")
    return fingerprint


def cast_vote(
    *,
    voter_ref: int | str,
    party_id: int | str,
    fingerprint_hash: str | None = None,
    timestamp: datetime.datetime | None = None,
) -> VoteReceipt:
    """Record one vote as the next block of the ledger.

    Each attempt runs eligibility -> read tip -> hash -> commit in one
    transaction that holds the chain lock, so concurrent casts queue behind
    each other instead of racing for the same block number. A conflict can
    still surface if something outside this path moved the chain (e.g. an
    administrative reset); the attempt is then retried from a fresh tip, up
    to LEDGER_COMMIT_MAX_ATTEMPTS times, before failing with LedgerBusyError.
    """

    party = _get_party(party_id)
    fingerprint_hash = _normalize_fingerprint(fingerprint_hash)
    max_attempts = max(1, int(settings.LEDGER_COMMIT_MAX_ATTEMPTS))
    last_conflict: ConcurrencyConflictError | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            with transaction.atomic():
                acquire_chain_lock()
                voter = admit(voter_ref=voter_ref, fingerprint_hash=fingerprint_hash)

                fingerprint = fingerprint_hash or str(voter.device_fingerprint or "").strip().lower()
                voted_at = timestamp or timezone.now()
                reservation = reserve_next_block_number()
                vote_hash = compute_vote_hash(
                    voter_ref=voter.pk,
                    option_ref=party.pk,
                    timestamp=voted_at,
                    previous_hash=reservation.previous_hash,
                    device_fingerprint=fingerprint,
                )
                block = commit_block(
                    reservation=reservation,
                    vote_hash=vote_hash,
                    voter=voter,
                    party=party,
                    timestamp=voted_at,
                    device_fingerprint=fingerprint,
                )
        except ConcurrencyConflictError as exc:
            last_conflict = exc
            logger.info(
                "vote_commit_conflict voter_ref=%s attempt=%d/%d reason=%s",
                voter_ref,
                attempt,
                max_attempts,
                type(exc).__name__,
            )
            continue

        logger.info(
            "vote_committed voter=%s block_number=%s attempts=%d",
            voter.voter_id,
            block.block_number,
            attempt,
        )
        schedule_vote_confirmation(voter=voter, block=block)
        return VoteReceipt(block=block, attempts=attempt)

    logger.warning("vote_commit_exhausted voter_ref=%s attempts=%d", voter_ref, max_attempts)
    raise LedgerBusyError("the ledger is busy; please try again") from last_conflict
