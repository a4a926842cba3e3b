"""Read-only projections of the chain for the explorer and offline audits."""

from __future__ import annotations

from django.core.paginator import Page, Paginator
from django.db.models import Q

from ledger.hashing import GENESIS_MARKER
from ledger.models import Block, Voter

BLOCK_PUBLIC_FIELDS: tuple[str, ...] = (
    "block_number",
    "vote_hash",
    "previous_hash",
    "timestamp",
    "status",
)


def block_public_dict(block: Block) -> dict[str, object]:
    # Voter, party and device are never part of the public view.
    return {
        "block_number": int(block.block_number),
        "vote_hash": str(block.vote_hash),
        "previous_hash": str(block.previous_hash),
        "is_genesis_link": block.previous_hash == GENESIS_MARKER,
        "timestamp": block.timestamp.isoformat(),
        "status": str(block.status),
    }


def search_blocks(query: str = ""):
    """Blocks matching a block number or a (partial) vote/previous hash, newest first."""

    qs = Block.objects.only(*BLOCK_PUBLIC_FIELDS).order_by("-block_number")
    query = str(query or "").strip().lower()
    if not query:
        return qs

    match = Q(vote_hash__contains=query) | Q(previous_hash__contains=query)
    number = query.lstrip("#")
    if number.isdigit():
        match |= Q(block_number=int(number))
    return qs.filter(match)


def paginate_blocks(*, page_number: object, per_page: int, query: str = "") -> Page:
    paginator = Paginator(search_blocks(query), per_page)
    return paginator.get_page(page_number)


def get_block(block_number: int) -> Block | None:
    return Block.objects.only(*BLOCK_PUBLIC_FIELDS).filter(block_number=block_number).first()


def build_public_chain_export() -> dict[str, object]:
    blocks = [block_public_dict(block) for block in Block.objects.only(*BLOCK_PUBLIC_FIELDS).order_by("block_number")]
    chain_head = blocks[-1]["vote_hash"] if blocks else GENESIS_MARKER
    return {
        "genesis_hash": GENESIS_MARKER,
        "chain_head": chain_head,
        "length": len(blocks),
        "blocks": blocks,
    }


def block_for_voter(voter: Voter) -> Block | None:
    """The voter's own committed block, public fields only."""
    return Block.objects.only(*BLOCK_PUBLIC_FIELDS).filter(voter_id=voter.pk).first()
