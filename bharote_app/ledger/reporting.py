"""Tally, turnout and roster projections for the results and admin pages.

These are read-only aggregates; the ledger write path never consults them.
"""

from __future__ import annotations

from django.db.models import Count, Q

from ledger.models import Block, PoliticalParty, Voter

_RECENT_VOTERS_LIMIT: int = 10


def ballot_options() -> list[dict[str, object]]:
    """Parties in booth order (display_order, then id)."""

    return [
        {
            "party_id": party.id,
            "name": party.name,
            "short_name": party.short_name,
            "description": party.description,
            "color": party.color,
            "is_nota": party.is_nota,
        }
        for party in PoliticalParty.objects.order_by("display_order", "id")
    ]


def vote_counts() -> list[dict[str, object]]:
    """Committed blocks grouped by party, highest count first. Parties with no votes are included."""

    parties = PoliticalParty.objects.annotate(
        vote_count=Count("blocks", filter=Q(blocks__status=Block.Status.verified)),
    ).order_by("-vote_count", "display_order", "id")

    return [
        {
            "party_id": party.id,
            "name": party.name,
            "short_name": party.short_name,
            "color": party.color,
            "is_nota": party.is_nota,
            "vote_count": int(party.vote_count),
        }
        for party in parties
    ]


def turnout_stats() -> dict[str, int]:
    agg = Voter.objects.aggregate(
        total_voters=Count("id"),
        verified_voters=Count("id", filter=Q(verification_status=Voter.VerificationStatus.verified)),
        voted_count=Count("id", filter=Q(has_voted=True)),
    )
    total = int(agg.get("total_voters") or 0)
    verified = int(agg.get("verified_voters") or 0)
    voted = int(agg.get("voted_count") or 0)
    turnout_percent = round(voted * 100 / verified) if verified else 0

    return {
        "total_voters": total,
        "verified_voters": verified,
        "pending_verification": total - verified,
        "voted_count": voted,
        "turnout_percent": turnout_percent,
        "total_blocks": Block.objects.committed().count(),
    }


def recent_voters(*, limit: int = _RECENT_VOTERS_LIMIT) -> list[dict[str, object]]:
    """Newest registrations first. Admin-only: includes names."""

    voters = Voter.objects.only(
        "voter_id",
        "full_name",
        "constituency",
        "verification_status",
        "has_voted",
        "created_at",
    ).order_by("-created_at", "-id")[:limit]

    return [
        {
            "voter_id": voter.voter_id,
            "full_name": voter.full_name,
            "constituency": voter.constituency,
            "verification_status": str(voter.verification_status),
            "has_voted": voter.has_voted,
            "created_at": voter.created_at.isoformat(),
        }
        for voter in voters
    ]
