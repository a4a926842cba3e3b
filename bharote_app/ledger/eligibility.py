from __future__ import annotations

import logging

from ledger.exceptions import AlreadyVotedError, NotRegisteredError, NotVerifiedError
from ledger.identity_guard import check_vote_uniqueness
from ledger.models import Voter

logger = logging.getLogger(__name__)


def get_voter(voter_ref: int | str) -> Voter | None:
    """Resolve an internal PK (int) or an external voter id (e.g. BHV012345678).

    Strings are matched against ``voter_id`` first; a digit-only string falls
    back to the PK only when no voter id matches, since an empty
    VOTER_ID_PREFIX makes external ids all digits.
    """

    if isinstance(voter_ref, int):
        return Voter.objects.filter(pk=voter_ref).first()

    ref = str(voter_ref or "").strip()
    if not ref:
        return None
    voter = Voter.objects.filter(voter_id=ref.upper()).first()
    if voter is None and ref.isdigit():
        voter = Voter.objects.filter(pk=int(ref)).first()
    return voter


def get_voter_by_user_id(user_id: str) -> Voter | None:
    user_id = str(user_id or "").strip()
    if not user_id:
        return None
    return Voter.objects.filter(user_id=user_id).first()


def admit(*, voter_ref: int | str, fingerprint_hash: str | None) -> Voter:
    """Return the voter if they may cast a vote now; raise the first failure.

    Order: registered, verified, not yet voted, unique identity. The cheap
    status checks run before the uniqueness scans.
    """

    voter = get_voter(voter_ref)
    if voter is None:
        raise NotRegisteredError("voter is not registered")

    if not voter.is_verified:
        raise NotVerifiedError("voter has not completed verification")

    if voter.has_voted:
        raise AlreadyVotedError("voter has already voted")

    check_vote_uniqueness(
        voter=voter,
        fingerprint_hash=fingerprint_hash,
        email=voter.email,
        phone_number=voter.phone_number,
    )

    logger.debug("eligibility_admitted voter=%s", voter.voter_id)
    return voter
