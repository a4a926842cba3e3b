"""Durable, append-only persistence of committed blocks.

``commit_block`` is the only write path for votes. It inserts the block and
flips the voter's has-voted flag in one transaction, conditioned on the tip
the caller observed. Writers serialize on ``acquire_chain_lock`` before they
read the tip, so under normal operation a reservation is never stale. The
unique constraints on ``block_number``, ``previous_hash`` and ``voter`` stay
as the backstop: a writer holding a stale reservation fails with a conflict
and must start over from a fresh reservation.
"""

from __future__ import annotations

import datetime
import logging

from django.db import IntegrityError, transaction

from ledger.exceptions import (
    DigestTipConflictError,
    SequenceConflictError,
    VoterConflictError,
)
from ledger.hashing import GENESIS_MARKER
from ledger.models import Block, ChainLock, LedgerAuditEntry, PoliticalParty, Voter
from ledger.sequencer import BlockReservation

logger = logging.getLogger(__name__)


def acquire_chain_lock() -> None:
    """Block other chain writers until the surrounding transaction ends.

    On PostgreSQL this is a row lock on the ChainLock singleton. SQLite runs
    in IMMEDIATE transaction mode, so the enclosing transaction already holds
    the database write lock and the row lock is a no-op.
    """

    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("acquire_chain_lock() must run inside transaction.atomic()")

    # The row is seeded by a migration; flushed test databases lose it.
    ChainLock.objects.get_or_create(pk=ChainLock.SINGLETON_ID)
    ChainLock.objects.select_for_update().only("id").get(pk=ChainLock.SINGLETON_ID)


def _reservation_matches_tip(reservation: BlockReservation) -> bool:
    if reservation.block_number == 1:
        return reservation.previous_hash == GENESIS_MARKER
    return Block.objects.filter(
        block_number=reservation.block_number - 1,
        vote_hash=reservation.previous_hash,
    ).exists()


def _classify_conflict(*, reservation: BlockReservation, voter: Voter) -> Exception | None:
    if Block.objects.filter(block_number=reservation.block_number).exists():
        return SequenceConflictError(f"block #{reservation.block_number} was committed by another writer")
    if Block.objects.filter(previous_hash=reservation.previous_hash).exists():
        return DigestTipConflictError("the observed chain tip was extended by another writer")
    if Block.objects.filter(voter_id=voter.pk).exists():
        return VoterConflictError("a vote for this voter was committed by another writer")
    return None


def commit_block(
    *,
    reservation: BlockReservation,
    vote_hash: str,
    voter: Voter,
    party: PoliticalParty,
    timestamp: datetime.datetime,
    device_fingerprint: str,
) -> Block:
    try:
        with transaction.atomic():
            if not _reservation_matches_tip(reservation):
                raise DigestTipConflictError("the observed chain tip is no longer the latest block")

            block = Block.objects.create(
                block_number=reservation.block_number,
                vote_hash=vote_hash,
                previous_hash=reservation.previous_hash,
                timestamp=timestamp,
                status=Block.Status.verified,
                voter=voter,
                party=party,
                device_fingerprint=device_fingerprint,
            )

            flipped = Voter.objects.filter(pk=voter.pk, has_voted=False).update(
                has_voted=True,
                voted_at=timestamp,
            )
            if flipped != 1:
                raise VoterConflictError("voter was marked as voted by another writer")

            LedgerAuditEntry.objects.create(
                event_type="vote_committed",
                payload={"block_number": block.block_number, "vote_hash": block.vote_hash},
                is_public=False,
            )
    except IntegrityError as exc:
        conflict = _classify_conflict(reservation=reservation, voter=voter)
        if conflict is None:
            raise
        raise conflict from exc

    voter.has_voted = True
    voter.voted_at = timestamp
    return block


def reset_ledger(*, actor: str) -> dict[str, int]:
    """Delete every block and clear every voter's has-voted flag.

    Voter identities, verification state and parties are preserved. This is a
    privileged administrative operation; callers are responsible for
    authorizing ``actor`` before invoking it.
    """

    actor = str(actor or "").strip()
    if not actor:
        raise ValueError("actor is required for a ledger reset")

    with transaction.atomic():
        acquire_chain_lock()
        blocks_deleted, _ = Block.objects.all().delete()
        voters_cleared = Voter.objects.filter(has_voted=True).update(has_voted=False, voted_at=None)

        LedgerAuditEntry.objects.create(
            event_type="ledger_reset",
            payload={
                "actor": actor,
                "blocks_deleted": blocks_deleted,
                "voters_cleared": voters_cleared,
            },
            is_public=True,
        )

    logger.warning(
        "ledger_reset actor=%s blocks_deleted=%s voters_cleared=%s",
        actor,
        blocks_deleted,
        voters_cleared,
    )
    return {"blocks_deleted": blocks_deleted, "voters_cleared": voters_cleared}
