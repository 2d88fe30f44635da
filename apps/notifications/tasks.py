from __future__ import annotations

import logging

from celery import shared_task

from apps.connections.models import Connection
from apps.messaging.models import Message
from apps.users.models import User

from .models import Notification
from .services import NotificationPayload, dispatch_notification, send_push_notification

logger = logging.getLogger(__name__)


def _truncate_text(text: str | None, limit: int = 140) -> str:
    if not text:
        return ""
    stripped = text.strip()
    if len(stripped) <= limit:
        return stripped
    return stripped[: limit - 3] + "..."


@shared_task
def notify_connection_accepted(connection_id: int) -> int | None:
    """Tell the original requester that their request went through."""
    try:
        connection = Connection.objects.select_related("user_a", "user_b").get(id=connection_id)
    except Connection.DoesNotExist:
        logger.info("Connection gone before notification", extra={"connection_id": connection_id})
        return None
    if connection.status != Connection.Status.CONNECTED:
        return None

    accepter = connection.user_b
    payload = NotificationPayload(
        type=Notification.Type.MATCH_ACCEPTED,
        payload={
            "connection_id": connection.id,
            "user_id": accepter.id,
            "user_name": accepter.display_name,
            "content": f"Your vibe check with {accepter.display_name} was successful! Start chatting now.",
        },
        link=f"/chat/{accepter.id}",
    )
    created = dispatch_notification([connection.user_a], payload)
    return created[0].id if created else None


@shared_task
def notify_new_message(message_id: int) -> None:
    try:
        message = Message.objects.select_related("sender", "receiver", "receiver__settings").get(id=message_id)
    except Message.DoesNotExist:
        return
    receiver: User = message.receiver
    payload = NotificationPayload(
        type=Notification.Type.MESSAGE,
        payload={
            "message_id": message.id,
            "sender_id": message.sender_id,
            "sender_name": message.sender.display_name,
            "text": _truncate_text(message.body),
        },
        link=f"/chat/{message.sender_id}",
    )
    send_push_notification([receiver], payload)
