from django.db import migrations, models


def create_chain_lock(apps, schema_editor) -> None:
    ChainLock = apps.get_model("ledger", "ChainLock")
    ChainLock.objects.get_or_create(pk=1)


class Migration(migrations.Migration):
    dependencies = [
        ("ledger", "0002_create_ledger_email_templates"),
    ]

    operations = [
        migrations.CreateModel(
            name="ChainLock",
            fields=[
                (
                    "id",
                    models.PositiveSmallIntegerField(default=1, editable=False, primary_key=True, serialize=False),
                ),
            ],
            options={
                "constraints": [models.CheckConstraint(condition=models.Q(("id", 1)), name="chk_chain_lock_singleton")],
            },
        ),
        migrations.RunPython(create_chain_lock, migrations.RunPython.noop),
    ]
