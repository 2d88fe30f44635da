from __future__ import annotations

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Connection",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("pair_low", models.BigIntegerField(editable=False)),
                ("pair_high", models.BigIntegerField(editable=False)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("connected", "Connected"), ("blocked", "Blocked")],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("match_score", models.FloatField(blank=True, null=True)),
                (
                    "user_a",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="connections_sent",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user_b",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="connections_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("pair_low", "pair_high"), name="connections_unique_pair"),
                ],
                "indexes": [
                    models.Index(fields=["user_b", "status"], name="connections_inbox_idx"),
                ],
            },
        ),
    ]
