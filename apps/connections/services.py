from __future__ import annotations

import logging
from typing import Set

from django.db import IntegrityError, transaction
from django.db.models import Q

from apps.connections.exceptions import (
    ConnectionConflict,
    ConnectionNotFound,
    ConnectionUnauthorized,
    InvalidTransition,
)
from apps.connections.models import Connection, pair_key
from apps.notifications.tasks import notify_connection_accepted
from apps.users.models import User

logger = logging.getLogger(__name__)

NONE = "none"
ACTIVE_STATUSES = (Connection.Status.PENDING, Connection.Status.CONNECTED)
# A blocked row still occupies the pair, so proposing would only conflict.
EXCLUDED_STATUSES = ACTIVE_STATUSES + (Connection.Status.BLOCKED,)


def _pair_filter(user_id: int, other_user_id: int) -> Q:
    low, high = pair_key(user_id, other_user_id)
    return Q(pair_low=low, pair_high=high)


def _lock(connection_id: int) -> Connection:
    try:
        return Connection.objects.select_for_update().get(pk=connection_id)
    except Connection.DoesNotExist as exc:
        raise ConnectionNotFound(f"Connection {connection_id} does not exist.") from exc


def get_between(user_id: int, other_user_id: int) -> Connection | None:
    return Connection.objects.filter(_pair_filter(user_id, other_user_id)).first()


def status_between(user_id: int, other_user_id: int) -> str:
    connection = get_between(user_id, other_user_id)
    return connection.status if connection else NONE


def can_message(user_id: int, other_user_id: int) -> bool:
    """Chat is allowed only while a connected row exists for the pair."""
    if user_id == other_user_id:
        return False
    return Connection.objects.filter(
        _pair_filter(user_id, other_user_id),
        status=Connection.Status.CONNECTED,
    ).exists()


def excluded_user_ids(user_id: int) -> Set[int]:
    """Users pending, connected or blocked with ``user_id``; never offered as matches."""
    rows = Connection.objects.filter(
        Q(user_a_id=user_id) | Q(user_b_id=user_id),
        status__in=EXCLUDED_STATUSES,
    ).values_list("user_a_id", "user_b_id")
    return {a if b == user_id else b for a, b in rows}


def propose(requester: User, recipient: User, match_score: float | None = None) -> Connection:
    if requester.id == recipient.id:
        raise InvalidTransition("Cannot connect with yourself.")
    try:
        with transaction.atomic():
            if Connection.objects.select_for_update().filter(_pair_filter(requester.id, recipient.id)).exists():
                raise ConnectionConflict("A connection already exists between these users.")
            connection = Connection.objects.create(
                user_a=requester,
                user_b=recipient,
                status=Connection.Status.PENDING,
                match_score=match_score,
            )
    except IntegrityError as exc:
        # Lost a race with a concurrent propose for the same pair.
        raise ConnectionConflict("A connection already exists between these users.") from exc

    logger.info(
        "Connection proposed",
        extra={"connection_id": connection.id, "user_id": requester.id, "recipient_id": recipient.id},
    )
    return connection


def accept(connection_id: int, user: User) -> Connection:
    with transaction.atomic():
        connection = _lock(connection_id)
        if user.id != connection.user_b_id:
            raise ConnectionUnauthorized("Only the recipient can accept this request.")
        if connection.status != Connection.Status.PENDING:
            raise InvalidTransition(f"Cannot accept a {connection.status} connection.")
        connection.status = Connection.Status.CONNECTED
        connection.save(update_fields=["status", "updated_at"])
        transaction.on_commit(lambda: notify_connection_accepted.delay(connection.id))

    logger.info("Connection accepted", extra={"connection_id": connection.id, "user_id": user.id})
    return connection


def reject(connection_id: int, user: User) -> None:
    with transaction.atomic():
        connection = _lock(connection_id)
        if user.id != connection.user_b_id:
            raise ConnectionUnauthorized("Only the recipient can reject this request.")
        if connection.status != Connection.Status.PENDING:
            raise InvalidTransition(f"Cannot reject a {connection.status} connection.")
        connection.delete()

    logger.info("Connection rejected", extra={"connection_id": connection_id, "user_id": user.id})


def remove(connection_id: int, user: User) -> None:
    with transaction.atomic():
        connection = _lock(connection_id)
        if not connection.involves(user.id):
            raise ConnectionUnauthorized("Not a party to this connection.")
        connection.delete()

    logger.info("Connection removed", extra={"connection_id": connection_id, "user_id": user.id})
