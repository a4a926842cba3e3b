"""Voter registration and verification-status bookkeeping.

OTP generation and delivery live in the auth subsystem. This module only
records the outcome of each step so the eligibility gate can rely on it.
"""

from __future__ import annotations

import datetime
import logging

from django.db import IntegrityError, transaction

from ledger.exceptions import DuplicateContactError, DuplicateDeviceError, RegistrationError
from ledger.hashing import is_hex_digest
from ledger.identity_guard import RegistrationCheck, check_registration, check_vote_uniqueness
from ledger.models import Voter
from ledger.notifications import schedule_admin_registration_notice

logger = logging.getLogger(__name__)

_VOTER_ID_MAX_ATTEMPTS: int = 10

_STATUS_ORDER: dict[str, int] = {
    Voter.VerificationStatus.unverified: 0,
    Voter.VerificationStatus.otp_sent: 1,
    Voter.VerificationStatus.verified: 2,
}


def register_voter(
    *,
    user_id: str,
    full_name: str,
    email: str | None = None,
    phone_number: str | None = None,
    fingerprint_hash: str | None = None,
    date_of_birth: datetime.date | None = None,
    address: str = "",
    constituency: str = "",
) -> Voter:
    user_id = str(user_id or "").strip()
    full_name = str(full_name or "").strip()
    if not user_id:
        raise RegistrationError("user_id is required")
    if not full_name:
        raise RegistrationError("full_name is required")
    fingerprint_hash = str(fingerprint_hash or "").strip().lower() or None
    if fingerprint_hash is not None and not is_hex_digest(fingerprint_hash):
        raise RegistrationError("fingerprint_hash must be a SHA-256 hex digest of the device id")
    if Voter.objects.filter(user_id=user_id).exists():
        raise RegistrationError("this account already has a voter registration")

    if check_registration(fingerprint_hash=fingerprint_hash) == RegistrationCheck.already_registered:
        raise DuplicateDeviceError("this device is already registered to another voter")
    check_vote_uniqueness(
        voter=None,
        fingerprint_hash=fingerprint_hash,
        email=email,
        phone_number=phone_number,
    )

    for _ in range(_VOTER_ID_MAX_ATTEMPTS):
        voter_id = Voter.generate_voter_id()
        try:
            with transaction.atomic():
                voter = Voter.objects.create(
                    user_id=user_id,
                    voter_id=voter_id,
                    full_name=full_name,
                    email=email,
                    phone_number=phone_number,
                    device_fingerprint=fingerprint_hash,
                    date_of_birth=date_of_birth,
                    address=address,
                    constituency=constituency,
                )
        except IntegrityError as exc:
            # Either a concurrent registration took one of our unique values,
            # or (rarely) the random voter id collided. Only the latter is retried.
            if Voter.objects.filter(voter_id=voter_id).exists():
                continue
            raise _registration_conflict(
                user_id=user_id,
                fingerprint_hash=fingerprint_hash,
            ) from exc

        logger.info("voter_registered voter=%s", voter.voter_id)
        schedule_admin_registration_notice(voter=voter)
        return voter

    raise RegistrationError("could not allocate a unique voter id; please try again")


def _registration_conflict(*, user_id: str, fingerprint_hash: str | None) -> Exception:
    if Voter.objects.filter(user_id=user_id).exists():
        return RegistrationError("this account already has a voter registration")
    if fingerprint_hash and Voter.objects.filter(device_fingerprint=fingerprint_hash).exists():
        return DuplicateDeviceError("this device is already registered to another voter")
    return DuplicateContactError("this email address or phone number is already registered")


def set_verification_status(*, voter: Voter, status: str) -> Voter:
    """Advance a voter's verification status. Status never moves backwards."""

    if status not in _STATUS_ORDER:
        raise RegistrationError(f"unknown verification status: {status!r}")

    with transaction.atomic():
        locked = Voter.objects.select_for_update().only("id", "verification_status").get(pk=voter.pk)
        current = str(locked.verification_status)
        if _STATUS_ORDER[status] < _STATUS_ORDER[current]:
            raise RegistrationError(f"cannot move verification status from {current} to {status}")
        if status != current:
            Voter.objects.filter(pk=voter.pk).update(verification_status=status)
            logger.info("voter_verification_status voter_pk=%s from=%s to=%s", voter.pk, current, status)

    voter.verification_status = status
    return voter


def mark_otp_sent(*, voter: Voter) -> Voter:
    return set_verification_status(voter=voter, status=Voter.VerificationStatus.otp_sent)


def mark_verified(*, voter: Voter) -> Voter:
    return set_verification_status(voter=voter, status=Voter.VerificationStatus.verified)
