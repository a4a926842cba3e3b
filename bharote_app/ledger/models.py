import datetime
import secrets
from typing_extensions import override

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from ledger.hashing import compute_vote_hash


class Voter(models.Model):
    class VerificationStatus(models.TextChoices):
        unverified = "unverified", "Unverified"
        otp_sent = "otp_sent", "OTP sent"
        verified = "verified", "Verified"

    # Subject identifier from the external auth subsystem.
    user_id = models.CharField(max_length=255, unique=True)
    voter_id = models.CharField(max_length=32, unique=True)

    full_name = models.CharField(max_length=255)
    date_of_birth = models.DateField(blank=True, null=True)
    address = models.TextField(blank=True, default="")
    constituency = models.CharField(max_length=255, blank=True, default="")

    verification_status = models.CharField(
        max_length=16,
        choices=VerificationStatus.choices,
        default=VerificationStatus.unverified,
    )

    # SHA-256 of the client-reported device id. A uniqueness hint only.
    device_fingerprint = models.CharField(max_length=64, blank=True, null=True, unique=True)
    email = models.EmailField(blank=True, null=True, unique=True)
    phone_number = models.CharField(max_length=32, blank=True, null=True, unique=True)

    has_voted = models.BooleanField(default=False)
    voted_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("created_at", "id")
        constraints = [
            models.CheckConstraint(
                condition=Q(has_voted=True, voted_at__isnull=False) | Q(has_voted=False, voted_at__isnull=True),
                name="chk_voter_has_voted_voted_at",
            ),
        ]
        indexes = [
            models.Index(fields=["verification_status", "has_voted"], name="voter_status_voted"),
        ]

    def __str__(self) -> str:
        return self.voter_id

    @override
    def save(self, *args, **kwargs) -> None:
        # Normalize contact identifiers so uniqueness holds across spellings.
        self.email = str(self.email or "").strip().lower() or None
        self.phone_number = str(self.phone_number or "").strip() or None
        self.device_fingerprint = str(self.device_fingerprint or "").strip().lower() or None
        super().save(*args, **kwargs)

    @classmethod
    def generate_voter_id(cls) -> str:
        return f"{settings.VOTER_ID_PREFIX}{secrets.randbelow(10**9):09d}"

    @property
    def is_verified(self) -> bool:
        return self.verification_status == self.VerificationStatus.verified


class PoliticalParty(models.Model):
    name = models.CharField(max_length=255)
    short_name = models.CharField(max_length=32, unique=True)
    description = models.TextField(blank=True, default="")
    color = models.CharField(max_length=16, default="#6B7280")
    display_order = models.PositiveIntegerField(default=0)
    is_nota = models.BooleanField(default=False, verbose_name="None of the above")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "Political parties"
        ordering = ("display_order", "id")

    def __str__(self) -> str:
        return self.short_name


class ChainLock(models.Model):
    """Singleton row. Chain writers hold it FOR UPDATE from tip read to commit."""

    SINGLETON_ID = 1

    id = models.PositiveSmallIntegerField(primary_key=True, default=SINGLETON_ID, editable=False)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(id=1), name="chk_chain_lock_singleton"),
        ]

    def __str__(self) -> str:
        return "chain-lock"


class BlockQuerySet(models.QuerySet["Block"]):
    def committed(self) -> "BlockQuerySet":
        return self.filter(status=Block.Status.verified)

    def chain_order(self) -> "BlockQuerySet":
        return self.order_by("block_number")

    def tip(self) -> "Block | None":
        return self.only("block_number", "vote_hash").order_by("-block_number").first()


class Block(models.Model):
    class Status(models.TextChoices):
        pending = "pending", "Pending"
        verified = "verified", "Verified"
        rejected = "rejected", "Rejected"

    block_number = models.PositiveIntegerField(unique=True, validators=[MinValueValidator(1)])
    vote_hash = models.CharField(max_length=64, unique=True)

    # Unique so two writers can never extend the chain from the same tip.
    previous_hash = models.CharField(max_length=64, unique=True)

    timestamp = models.DateTimeField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.verified)

    voter = models.OneToOneField(Voter, on_delete=models.PROTECT, related_name="block")
    party = models.ForeignKey(PoliticalParty, on_delete=models.PROTECT, related_name="blocks")
    device_fingerprint = models.CharField(max_length=64, blank=True, default="")

    objects = BlockQuerySet.as_manager()

    class Meta:
        ordering = ("block_number",)
        constraints = [
            models.CheckConstraint(condition=Q(block_number__gte=1), name="chk_block_number_positive"),
        ]
        permissions = [
            ("reset_ledger", "Can clear all blocks and voted flags"),
        ]

    def __str__(self) -> str:
        return f"block:{self.block_number}:{self.vote_hash[:12]}"

    @override
    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise ValueError("blocks are append-only and cannot be updated")
        super().save(*args, **kwargs)

    @classmethod
    def compute_hash(
        cls,
        *,
        voter_ref: int | str,
        option_ref: int | str,
        timestamp: datetime.datetime,
        previous_hash: str | None,
        device_fingerprint: str,
    ) -> str:
        return compute_vote_hash(
            voter_ref=voter_ref,
            option_ref=option_ref,
            timestamp=timestamp,
            previous_hash=previous_hash,
            device_fingerprint=device_fingerprint,
        )

    def recompute_hash(self) -> str:
        return self.compute_hash(
            voter_ref=self.voter_id,
            option_ref=self.party_id,
            timestamp=self.timestamp,
            previous_hash=self.previous_hash,
            device_fingerprint=self.device_fingerprint,
        )


class LedgerAuditEntry(models.Model):
    timestamp = models.DateTimeField(auto_now_add=True)
    event_type = models.CharField(max_length=64)
    payload = models.JSONField(blank=True, default=dict)
    is_public = models.BooleanField(default=False)

    class Meta:
        verbose_name_plural = "Ledger audit entries"
        ordering = ("timestamp", "id")
        indexes = [
            models.Index(fields=["event_type", "timestamp"], name="audit_event_ts"),
        ]

    def __str__(self) -> str:
        return f"{self.event_type}@{self.timestamp:%Y-%m-%d}"
