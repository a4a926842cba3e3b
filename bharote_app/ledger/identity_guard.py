"""One-registration-per-device and one-vote-per-identity checks.

These are read-only checks. The write-time guarantee comes from the unique
constraints on Voter and Block plus the store's conditional has-voted flip, so
a check that passes here can still lose a race at commit time.

The device fingerprint is whatever the client reports; it is a uniqueness
hint, not a security boundary. Contact identifiers are checked independently
so a spoofed fingerprint alone is not enough to register or vote twice.
"""

from __future__ import annotations

import enum
import hashlib

from django.db.models import Q

from ledger.exceptions import DuplicateContactError, DuplicateDeviceError
from ledger.models import Block, Voter


class RegistrationCheck(enum.StrEnum):
    available = "available"
    already_registered = "already_registered"


def device_fingerprint_digest(visitor_id: str) -> str:
    visitor_id = str(visitor_id or "").strip()
    if not visitor_id:
        raise ValueError("visitor_id is required")
    return hashlib.sha256(visitor_id.encode("utf-8")).hexdigest()


def _normalize_fingerprint(fingerprint_hash: str | None) -> str:
    return str(fingerprint_hash or "").strip().lower()


def check_registration(*, fingerprint_hash: str | None) -> RegistrationCheck:
    fingerprint = _normalize_fingerprint(fingerprint_hash)
    if fingerprint and Voter.objects.filter(device_fingerprint=fingerprint).exists():
        return RegistrationCheck.already_registered
    return RegistrationCheck.available


def check_vote_uniqueness(
    *,
    voter: Voter | None,
    fingerprint_hash: str | None,
    email: str | None = None,
    phone_number: str | None = None,
) -> None:
    """Raise if the device or contact identifiers belong to another identity.

    ``voter`` is the identity asking; pass None at registration time, before
    the row exists. Device conflicts win over contact conflicts.
    """

    fingerprint = _normalize_fingerprint(fingerprint_hash)
    other_voters = Voter.objects.all()
    blocks = Block.objects.all()
    if voter is not None and voter.pk is not None:
        other_voters = other_voters.exclude(pk=voter.pk)
        blocks = blocks.exclude(voter_id=voter.pk)

    if fingerprint:
        if other_voters.filter(device_fingerprint=fingerprint).exists():
            raise DuplicateDeviceError("this device is already registered to another voter")
        if blocks.filter(device_fingerprint=fingerprint).exists():
            raise DuplicateDeviceError("a vote has already been cast from this device")

    email = str(email or "").strip().lower()
    phone_number = str(phone_number or "").strip()
    contact_filter = Q()
    if email:
        contact_filter |= Q(email__iexact=email)
    if phone_number:
        contact_filter |= Q(phone_number=phone_number)
    if contact_filter and other_voters.filter(contact_filter).exists():
        raise DuplicateContactError("this email address or phone number is already registered")
