from __future__ import annotations


class ConnectionStateError(Exception):
    """Base class for rejected connection transitions."""


class ConnectionConflict(ConnectionStateError):
    """A connection already exists for this pair of users."""


class ConnectionUnauthorized(ConnectionStateError):
    """The acting user may not perform this transition."""


class ConnectionNotFound(ConnectionStateError):
    """No connection row with this id."""


class InvalidTransition(ConnectionStateError):
    """The connection is not in a state that allows this transition."""
