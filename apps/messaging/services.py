from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.connections.exceptions import ConnectionUnauthorized
from apps.connections.services import can_message
from apps.messaging.models import Message
from apps.notifications.tasks import notify_new_message
from apps.users.models import User

logger = logging.getLogger(__name__)


def _require_connected(user: User, other: User) -> None:
    if not can_message(user.id, other.id):
        logger.info("Chat access denied", extra={"user_id": user.id, "other_user_id": other.id})
        raise ConnectionUnauthorized("You can only chat with users you are connected with.")


def conversation(user: User, other: User) -> QuerySet[Message]:
    _require_connected(user, other)
    return Message.objects.filter(
        Q(sender=user, receiver=other) | Q(sender=other, receiver=user)
    ).select_related("sender", "receiver")


def send_message(sender: User, receiver: User, body: str) -> Message:
    _require_connected(sender, receiver)
    with transaction.atomic():
        message = Message.objects.create(sender=sender, receiver=receiver, body=body)
        transaction.on_commit(lambda: notify_new_message.delay(message.id))
    return message


def mark_conversation_read(user: User, other: User) -> int:
    """Mark everything ``other`` sent to ``user`` as read."""
    _require_connected(user, other)
    return Message.objects.filter(sender=other, receiver=user, is_read=False).update(
        is_read=True,
        read_at=timezone.now(),
    )
