import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LedgerAuditEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("event_type", models.CharField(max_length=64)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("is_public", models.BooleanField(default=False)),
            ],
            options={
                "verbose_name_plural": "Ledger audit entries",
                "ordering": ("timestamp", "id"),
                "indexes": [models.Index(fields=["event_type", "timestamp"], name="audit_event_ts")],
            },
        ),
        migrations.CreateModel(
            name="PoliticalParty",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("short_name", models.CharField(max_length=32, unique=True)),
                ("description", models.TextField(blank=True, default="")),
                ("color", models.CharField(default="#6B7280", max_length=16)),
                ("display_order", models.PositiveIntegerField(default=0)),
                ("is_nota", models.BooleanField(default=False, verbose_name="None of the above")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name_plural": "Political parties",
                "ordering": ("display_order", "id"),
            },
        ),
        migrations.CreateModel(
            name="Voter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=255, unique=True)),
                ("voter_id", models.CharField(max_length=32, unique=True)),
                ("full_name", models.CharField(max_length=255)),
                ("date_of_birth", models.DateField(blank=True, null=True)),
                ("address", models.TextField(blank=True, default="")),
                ("constituency", models.CharField(blank=True, default="", max_length=255)),
                (
                    "verification_status",
                    models.CharField(
                        choices=[("unverified", "Unverified"), ("otp_sent", "OTP sent"), ("verified", "Verified")],
                        default="unverified",
                        max_length=16,
                    ),
                ),
                ("device_fingerprint", models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ("email", models.EmailField(blank=True, max_length=254, null=True, unique=True)),
                ("phone_number", models.CharField(blank=True, max_length=32, null=True, unique=True)),
                ("has_voted", models.BooleanField(default=False)),
                ("voted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("created_at", "id"),
                "indexes": [models.Index(fields=["verification_status", "has_voted"], name="voter_status_voted")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("has_voted", True), ("voted_at__isnull", False))
                        | models.Q(("has_voted", False), ("voted_at__isnull", True)),
                        name="chk_voter_has_voted_voted_at",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Block",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "block_number",
                    models.PositiveIntegerField(unique=True, validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("vote_hash", models.CharField(max_length=64, unique=True)),
                ("previous_hash", models.CharField(max_length=64, unique=True)),
                ("timestamp", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("verified", "Verified"), ("rejected", "Rejected")],
                        default="verified",
                        max_length=16,
                    ),
                ),
                ("device_fingerprint", models.CharField(blank=True, default="", max_length=64)),
                (
                    "party",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="blocks",
                        to="ledger.politicalparty",
                    ),
                ),
                (
                    "voter",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="block",
                        to="ledger.voter",
                    ),
                ),
            ],
            options={
                "ordering": ("block_number",),
                "permissions": [("reset_ledger", "Can clear all blocks and voted flags")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("block_number__gte", 1)), name="chk_block_number_positive")
                ],
            },
        ),
    ]
