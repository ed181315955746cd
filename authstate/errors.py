"""Exception hierarchy for the auth state store."""

from __future__ import annotations


class AuthStateError(Exception):
    """Base class for all authstate errors."""


class ConfigError(AuthStateError):
    """Invalid configuration value."""


class StoreConnectionError(AuthStateError):
    """The backing SQLite store could not be opened or configured."""


class InvalidKeyError(AuthStateError, ValueError):
    """Unknown key category or malformed identifier."""


class DecodeError(AuthStateError):
    """A stored value could not be deserialized."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Failed to decode value for {key!r}: {reason}")
        self.key = key


class SessionDeletedError(AuthStateError):
    """The session was deleted; its in-memory state must not be reused."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id!r} has been deleted")
        self.session_id = session_id
