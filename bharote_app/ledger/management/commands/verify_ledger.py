import json
import logging
from typing_extensions import override

from django.core.management.base import BaseCommand, CommandError

from ledger.models import LedgerAuditEntry
from ledger.verifier import verify_chain

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Replay the vote ledger from block #1 and check every block's digest, "
        "back-link and sequence number. Exits non-zero on the first violation."
    )

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the verification result as JSON.",
        )
        parser.add_argument(
            "--no-audit",
            action="store_true",
            help="Do not record a failed verification in the ledger audit log.",
        )

    @override
    def handle(self, *args, **options) -> None:
        as_json: bool = bool(options.get("json"))
        record_audit: bool = not bool(options.get("no_audit"))

        result = verify_chain()

        if as_json:
            self.stdout.write(json.dumps(result.as_dict(), sort_keys=True))
        elif result.is_valid:
            self.stdout.write(f"Ledger valid: {result.checked} block(s) verified.")

        if result.is_valid:
            return

        logger.error(
            "chain_verification_failed block_number=%s reason=%s detail=%s",
            result.block_number,
            result.reason,
            result.detail,
        )
        if record_audit:
            LedgerAuditEntry.objects.create(
                event_type="chain_verification_failed",
                payload=result.as_dict(),
                is_public=False,
            )

        raise CommandError(
            f"Ledger invalid at block #{result.block_number}: {result.reason} ({result.detail}). "
            "Do not repair automatically; investigate the stored rows."
        )
