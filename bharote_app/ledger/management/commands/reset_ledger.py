import logging
from typing_extensions import override

from django.core.management.base import BaseCommand, CommandError

from ledger.models import Block, Voter
from ledger.store import reset_ledger

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Administrative reset: delete every block and clear every voter's "
        "has-voted flag. Voter identities and parties are kept."
    )

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--actor",
            required=True,
            help="Name of the administrator performing the reset (recorded in the audit log).",
        )
        parser.add_argument(
            "--yes",
            action="store_true",
            help="Confirm the reset. Without this flag nothing is changed.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without changing anything.",
        )

    @override
    def handle(self, *args, **options) -> None:
        actor = str(options.get("actor") or "").strip()
        confirmed: bool = bool(options.get("yes"))
        dry_run: bool = bool(options.get("dry_run"))

        if not actor:
            raise CommandError("--actor must not be empty")

        if dry_run:
            blocks = Block.objects.count()
            voters = Voter.objects.filter(has_voted=True).count()
            self.stdout.write(f"[dry-run] Would delete {blocks} block(s) and clear {voters} voted flag(s).")
            return

        if not confirmed:
            raise CommandError("Refusing to reset the ledger without --yes.")

        counts = reset_ledger(actor=actor)
        self.stdout.write(
            f"Deleted {counts['blocks_deleted']} block(s); cleared {counts['voters_cleared']} voted flag(s)."
        )
