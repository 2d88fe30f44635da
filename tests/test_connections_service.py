from __future__ import annotations

from unittest import mock

from django.db.models import Q
from django.test import TestCase

from apps.connections import services
from apps.connections.exceptions import (
    ConnectionConflict,
    ConnectionNotFound,
    ConnectionUnauthorized,
    InvalidTransition,
)
from apps.connections.models import Connection
from apps.notifications.models import Notification
from apps.users.models import User


class ConnectionStateMachineTests(TestCase):
    def setUp(self) -> None:
        self.alice = User.objects.create_user(email="alice@example.com", password="pass1234", handle="alice", name="Alice")
        self.bob = User.objects.create_user(email="bob@example.com", password="pass1234", handle="bob", name="Bob")
        self.carol = User.objects.create_user(email="carol@example.com", password="pass1234", handle="carol")

    def test_propose_creates_pending_row(self) -> None:
        connection = services.propose(self.alice, self.bob, 35)
        self.assertEqual(connection.status, Connection.Status.PENDING)
        self.assertEqual(connection.user_a_id, self.alice.id)
        self.assertEqual(connection.user_b_id, self.bob.id)
        self.assertEqual(connection.match_score, 35)
        self.assertEqual(services.status_between(self.bob.id, self.alice.id), "pending")

    def test_second_propose_conflicts_in_either_direction(self) -> None:
        services.propose(self.alice, self.bob)
        with self.assertRaises(ConnectionConflict):
            services.propose(self.alice, self.bob)
        with self.assertRaises(ConnectionConflict):
            services.propose(self.bob, self.alice)
        self.assertEqual(Connection.objects.count(), 1)

    def test_propose_to_self_is_invalid(self) -> None:
        with self.assertRaises(InvalidTransition):
            services.propose(self.alice, self.alice)

    def test_accept_by_requester_is_unauthorized(self) -> None:
        connection = services.propose(self.alice, self.bob)
        with self.assertRaises(ConnectionUnauthorized):
            services.accept(connection.id, self.alice)
        connection.refresh_from_db()
        self.assertEqual(connection.status, Connection.Status.PENDING)

    def test_accept_by_outsider_is_unauthorized(self) -> None:
        connection = services.propose(self.alice, self.bob)
        with self.assertRaises(ConnectionUnauthorized):
            services.accept(connection.id, self.carol)

    def test_accept_connects_and_notifies_requester_after_commit(self) -> None:
        connection = services.propose(self.alice, self.bob)
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            accepted = services.accept(connection.id, self.bob)
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(accepted.status, Connection.Status.CONNECTED)
        self.assertTrue(services.can_message(self.alice.id, self.bob.id))

        notification = Notification.objects.get(user=self.alice)
        self.assertEqual(notification.type, Notification.Type.MATCH_ACCEPTED)
        self.assertEqual(notification.link, f"/chat/{self.bob.id}")
        self.assertEqual(
            notification.payload["content"],
            "Your vibe check with Bob was successful! Start chatting now.",
        )

    def test_accept_twice_is_invalid(self) -> None:
        connection = services.propose(self.alice, self.bob)
        services.accept(connection.id, self.bob)
        with self.assertRaises(InvalidTransition):
            services.accept(connection.id, self.bob)

    def test_failed_accept_sends_no_notification(self) -> None:
        connection = services.propose(self.alice, self.bob)
        with mock.patch("apps.connections.services.notify_connection_accepted.delay") as delay:
            with self.captureOnCommitCallbacks(execute=True):
                with self.assertRaises(ConnectionUnauthorized):
                    services.accept(connection.id, self.alice)
        delay.assert_not_called()

    def test_reject_deletes_row_and_allows_new_request(self) -> None:
        connection = services.propose(self.alice, self.bob)
        services.reject(connection.id, self.bob)
        self.assertFalse(Connection.objects.filter(id=connection.id).exists())
        self.assertEqual(services.status_between(self.alice.id, self.bob.id), services.NONE)
        again = services.propose(self.bob, self.alice)
        self.assertEqual(again.user_a_id, self.bob.id)

    def test_reject_by_requester_is_unauthorized(self) -> None:
        connection = services.propose(self.alice, self.bob)
        with self.assertRaises(ConnectionUnauthorized):
            services.reject(connection.id, self.alice)

    def test_reject_connected_is_invalid(self) -> None:
        connection = services.propose(self.alice, self.bob)
        services.accept(connection.id, self.bob)
        with self.assertRaises(InvalidTransition):
            services.reject(connection.id, self.bob)

    def test_remove_from_either_side_revokes_messaging(self) -> None:
        connection = services.propose(self.alice, self.bob)
        services.accept(connection.id, self.bob)
        services.remove(connection.id, self.alice)
        self.assertFalse(services.can_message(self.alice.id, self.bob.id))

        pending = services.propose(self.alice, self.bob)
        services.remove(pending.id, self.bob)
        self.assertIsNone(services.get_between(self.alice.id, self.bob.id))

    def test_remove_by_outsider_is_unauthorized(self) -> None:
        connection = services.propose(self.alice, self.bob)
        with self.assertRaises(ConnectionUnauthorized):
            services.remove(connection.id, self.carol)
        self.assertTrue(Connection.objects.filter(id=connection.id).exists())

    def test_missing_connection(self) -> None:
        with self.assertRaises(ConnectionNotFound):
            services.accept(999999, self.bob)

    def test_excluded_user_ids_cover_pending_and_connected(self) -> None:
        services.propose(self.alice, self.bob)
        connected = services.propose(self.carol, self.alice)
        services.accept(connected.id, self.alice)
        self.assertEqual(services.excluded_user_ids(self.alice.id), {self.bob.id, self.carol.id})

    def test_blocked_pair_cannot_message_or_propose(self) -> None:
        Connection.objects.create(user_a=self.alice, user_b=self.bob, status=Connection.Status.BLOCKED)
        self.assertFalse(services.can_message(self.alice.id, self.bob.id))
        with self.assertRaises(ConnectionConflict):
            services.propose(self.bob, self.alice)

    def test_concurrent_propose_maps_unique_violation_to_conflict(self) -> None:
        services.propose(self.alice, self.bob)
        # The pre-check misses the existing row, as it would for a racing request.
        with mock.patch("apps.connections.services._pair_filter", return_value=Q(pk__in=[])):
            with self.assertRaises(ConnectionConflict):
                services.propose(self.bob, self.alice)
        self.assertEqual(Connection.objects.count(), 1)

    def test_excluded_user_ids_cover_blocked(self) -> None:
        Connection.objects.create(user_a=self.carol, user_b=self.alice, status=Connection.Status.BLOCKED)
        self.assertEqual(services.excluded_user_ids(self.alice.id), {self.carol.id})
