"""Best-effort email side effects of ledger writes.

Everything here runs after the ledger transaction commits. A failure to queue
an email is logged and swallowed: it must never undo a committed block or a
registration.
"""

from __future__ import annotations

import logging

import post_office.mail
from django.conf import settings
from django.db import transaction
from django.urls import reverse

from ledger.models import Block, Voter

logger = logging.getLogger(__name__)


def block_explorer_url(*, block_number: int) -> str:
    rel = reverse("ledger-block-detail", args=[block_number])
    return settings.PUBLIC_BASE_URL.rstrip("/") + rel


def vote_confirmation_context(*, voter: Voter, block: Block) -> dict[str, object]:
    # The chosen party is deliberately left out of the email.
    return {
        "full_name": voter.full_name,
        "voter_id": voter.voter_id,
        "block_number": block.block_number,
        "vote_hash": block.vote_hash,
        "previous_hash": block.previous_hash,
        "timestamp": block.timestamp.isoformat(),
        "explorer_url": block_explorer_url(block_number=block.block_number),
    }


def send_vote_confirmation_email(*, voter: Voter, block: Block) -> bool:
    email = str(voter.email or "").strip()
    if not email:
        return False

    try:
        post_office.mail.send(
            recipients=[email],
            sender=settings.DEFAULT_FROM_EMAIL,
            template=settings.VOTE_CONFIRMATION_EMAIL_TEMPLATE_NAME,
            context=vote_confirmation_context(voter=voter, block=block),
            commit=True,
        )
    except Exception:
        logger.exception(
            "vote_confirmation_email_failed voter=%s block=%s",
            voter.voter_id,
            block.block_number,
        )
        return False
    return True


def send_admin_registration_notice(*, voter: Voter) -> bool:
    recipient = settings.LEDGER_ADMIN_EMAIL
    if not recipient:
        return False

    try:
        post_office.mail.send(
            recipients=[recipient],
            sender=settings.DEFAULT_FROM_EMAIL,
            template=settings.ADMIN_REGISTRATION_NOTICE_EMAIL_TEMPLATE_NAME,
            context={
                "voter_id": voter.voter_id,
                "full_name": voter.full_name,
                "constituency": voter.constituency,
                "registered_at": voter.created_at.isoformat() if voter.created_at else "",
            },
            commit=True,
        )
    except Exception:
        logger.exception("admin_registration_notice_failed voter=%s", voter.voter_id)
        return False
    return True


def schedule_vote_confirmation(*, voter: Voter, block: Block) -> None:
    transaction.on_commit(lambda: send_vote_confirmation_email(voter=voter, block=block))


def schedule_admin_registration_notice(*, voter: Voter) -> None:
    transaction.on_commit(lambda: send_admin_registration_notice(voter=voter))
