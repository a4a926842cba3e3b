import json
import logging
from pathlib import Path
from typing_extensions import override

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from ledger.models import PoliticalParty

logger = logging.getLogger(__name__)

_NOTA_SHORT_NAME = "NOTA"


class Command(BaseCommand):
    help = (
        "Create or update the ballot options from a JSON file (a list of objects "
        "with name, short_name and optional color, description, display_order). "
        "A NOTA option is always present afterwards."
    )

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument("--file", dest="path", help="Path to the parties JSON file.")

    @override
    def handle(self, *args, **options) -> None:
        rows: list[dict[str, object]] = []
        path = options.get("path")
        if path:
            try:
                data = json.loads(Path(path).read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise CommandError(f"Could not read {path}: {exc}") from exc
            if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
                raise CommandError("The parties file must contain a JSON list of objects.")
            rows = data

        created = 0
        updated = 0
        with transaction.atomic():
            for index, row in enumerate(rows, start=1):
                short_name = str(row.get("short_name") or "").strip()
                name = str(row.get("name") or "").strip()
                if not short_name or not name:
                    raise CommandError(f"Entry {index} needs both name and short_name.")

                display_order = row.get("display_order")
                if display_order is None:
                    display_order = index
                try:
                    display_order = int(display_order)
                except (TypeError, ValueError) as exc:
                    raise CommandError(f"Entry {index} has a non-numeric display_order: {display_order!r}") from exc
                if display_order < 0:
                    raise CommandError(f"Entry {index} has a negative display_order: {display_order}")

                defaults: dict[str, object] = {
                    "name": name,
                    "description": str(row.get("description") or ""),
                    "display_order": display_order,
                    "is_nota": short_name.upper() == _NOTA_SHORT_NAME,
                }
                if row.get("color"):
                    defaults["color"] = str(row["color"])

                _, was_created = PoliticalParty.objects.update_or_create(short_name=short_name, defaults=defaults)
                created += int(was_created)
                updated += int(not was_created)

            if not PoliticalParty.objects.filter(is_nota=True).exists():
                last_order = max((p.display_order for p in PoliticalParty.objects.only("display_order")), default=0)
                PoliticalParty.objects.create(
                    name="None of the Above",
                    short_name=_NOTA_SHORT_NAME,
                    is_nota=True,
                    display_order=last_order + 1,
                )
                created += 1

        logger.info("seed_parties created=%d updated=%d", created, updated)
        self.stdout.write(f"Created {created} party option(s); updated {updated}.")
