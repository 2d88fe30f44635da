from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class Message(BaseModel):
    sender = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="sent_messages")
    receiver = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="received_messages")
    body = models.TextField()
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["receiver", "is_read"], name="msg_receiver_unread_idx"),
            models.Index(fields=["sender", "receiver", "created_at"], name="msg_pair_created_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"Message<{self.sender_id}->{self.receiver_id}>"
