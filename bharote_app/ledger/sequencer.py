"""Block number reservation.

The store owns the authoritative tip: every reservation is a fresh read and
nothing here is cached between requests. A reservation is only an
observation; ``store.commit_block`` turns it into a block or rejects it if
another writer extended the chain first.
"""

from __future__ import annotations

from dataclasses import dataclass

from ledger.hashing import GENESIS_MARKER
from ledger.models import Block


@dataclass(frozen=True)
class ChainTip:
    block_number: int
    vote_hash: str

    @property
    def is_genesis(self) -> bool:
        return self.block_number == 0


GENESIS_TIP = ChainTip(block_number=0, vote_hash=GENESIS_MARKER)


@dataclass(frozen=True)
class BlockReservation:
    block_number: int
    previous_hash: str


def latest_block() -> ChainTip:
    tip = Block.objects.tip()
    if tip is None:
        return GENESIS_TIP
    return ChainTip(block_number=int(tip.block_number), vote_hash=str(tip.vote_hash))


def reserve_next_block_number() -> BlockReservation:
    tip = latest_block()
    return BlockReservation(block_number=tip.block_number + 1, previous_hash=tip.vote_hash)
