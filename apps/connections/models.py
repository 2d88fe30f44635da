from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


def pair_key(user_id: int, other_user_id: int) -> tuple[int, int]:
    return min(user_id, other_user_id), max(user_id, other_user_id)


class Connection(BaseModel):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONNECTED = "connected", "Connected"
        BLOCKED = "blocked", "Blocked"

    user_a = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="connections_sent")
    user_b = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="connections_received")
    # Sorted copy of (user_a, user_b); the unique constraint on it allows one row per unordered pair.
    pair_low = models.BigIntegerField(editable=False)
    pair_high = models.BigIntegerField(editable=False)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    match_score = models.FloatField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["pair_low", "pair_high"], name="connections_unique_pair"),
        ]
        indexes = [
            models.Index(fields=["user_b", "status"], name="connections_inbox_idx"),
        ]

    def save(self, *args, **kwargs) -> None:
        self.pair_low, self.pair_high = pair_key(self.user_a_id, self.user_b_id)
        super().save(*args, **kwargs)

    def involves(self, user_id: int) -> bool:
        return user_id in (self.user_a_id, self.user_b_id)

    def other_user_id(self, user_id: int) -> int:
        return self.user_b_id if user_id == self.user_a_id else self.user_a_id

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"Connection<{self.user_a_id}->{self.user_b_id}:{self.status}>"
