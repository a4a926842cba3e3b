from __future__ import annotations

from django.db import migrations

_VOTE_CONFIRMATION_HTML = (
    "<p>Hello {{ full_name }},</p>\n"
    "<p>Thank you for voting. Your vote has been recorded as block #{{ block_number }} "
    "of the vote ledger.</p>\n"
    "<p>Voter ID: {{ voter_id }}<br>\n"
    "Vote hash: {{ vote_hash }}<br>\n"
    "Previous hash: {{ previous_hash }}<br>\n"
    "Recorded at: {{ timestamp }}</p>\n"
    "<p>You can look up your block in the ledger explorer: "
    "<a href=\"{{ explorer_url }}\">{{ explorer_url }}</a></p>\n"
    "<p>This record is permanent. Your chosen option is not part of this email.</p>\n"
)

_VOTE_CONFIRMATION_TEXT = (
    "Hello {{ full_name }},\n\n"
    "Thank you for voting. Your vote has been recorded as block #{{ block_number }} of the vote ledger.\n\n"
    "Voter ID: {{ voter_id }}\n"
    "Vote hash: {{ vote_hash }}\n"
    "Previous hash: {{ previous_hash }}\n"
    "Recorded at: {{ timestamp }}\n\n"
    "You can look up your block in the ledger explorer: {{ explorer_url }}\n\n"
    "This record is permanent. Your chosen option is not part of this email.\n"
)

_ADMIN_REGISTRATION_HTML = (
    "<p>A new voter registered.</p>\n"
    "<p>Voter ID: {{ voter_id }}<br>\n"
    "Name: {{ full_name }}<br>\n"
    "Constituency: {{ constituency }}<br>\n"
    "Registered at: {{ registered_at }}</p>\n"
)

_ADMIN_REGISTRATION_TEXT = (
    "A new voter registered.\n\n"
    "Voter ID: {{ voter_id }}\n"
    "Name: {{ full_name }}\n"
    "Constituency: {{ constituency }}\n"
    "Registered at: {{ registered_at }}\n"
)


def add_ledger_templates(apps, schema_editor) -> None:
    EmailTemplate = apps.get_model("post_office", "EmailTemplate")

    EmailTemplate.objects.update_or_create(
        name="vote-confirmation",
        defaults={
            "description": "Sent to a voter after their vote is committed to the ledger",
            "subject": "Your vote is recorded (block #{{ block_number }})",
            "html_content": _VOTE_CONFIRMATION_HTML,
            "content": _VOTE_CONFIRMATION_TEXT,
        },
    )
    EmailTemplate.objects.update_or_create(
        name="admin-registration-notice",
        defaults={
            "description": "Sent to the ledger administrator when a voter registers",
            "subject": "New voter registration: {{ voter_id }}",
            "html_content": _ADMIN_REGISTRATION_HTML,
            "content": _ADMIN_REGISTRATION_TEXT,
        },
    )


def noop_reverse(apps, schema_editor) -> None:
    # Keep templates on rollback to avoid losing admin edits.
    return


class Migration(migrations.Migration):
    dependencies = [
        ("ledger", "0001_initial"),
        ("post_office", "0013_email_recipient_delivery_status_alter_log_status"),
    ]

    operations = [
        migrations.RunPython(
            add_ledger_templates,
            reverse_code=noop_reverse,
        ),
    ]
