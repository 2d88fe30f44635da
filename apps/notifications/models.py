from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class Notification(BaseModel):
    class Type(models.TextChoices):
        MATCH_ACCEPTED = "match_accepted", "Match accepted"
        MESSAGE = "message:new", "New message"
        SYSTEM = "system", "System"

    user = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="notifications")
    type = models.CharField(max_length=64, choices=Type.choices)
    payload = models.JSONField(default=dict, blank=True)
    link = models.CharField(max_length=255, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read"], name="notif_user_unread_idx"),
        ]
