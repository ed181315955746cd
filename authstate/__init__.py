"""
authstate - SQLite-backed authentication state for session-based messaging clients.

Stores the credential bundle and every signal key record of a session in
one ``auth_state`` table, partitioned by session id.
"""

from authstate._core import SQLiteAuthState, SQLiteKeyStore, use_sqlite_auth_state
from authstate.config import AuthStateConfig
from authstate.creds import init_auth_creds
from authstate.db import Database, get_database, reset_database
from authstate.errors import (
    AuthStateError,
    ConfigError,
    DecodeError,
    InvalidKeyError,
    SessionDeletedError,
    StoreConnectionError,
)
from authstate.keys import KeyCategory
from authstate.services.records import Delete, RecordStore, Upsert
from authstate.types import (
    AppStateSyncKeyData,
    AuthenticationCreds,
    AuthenticationState,
    KeyPair,
    SignedKeyPair,
)

__all__ = [
    "AppStateSyncKeyData",
    "AuthStateConfig",
    "AuthStateError",
    "AuthenticationCreds",
    "AuthenticationState",
    "ConfigError",
    "Database",
    "DecodeError",
    "Delete",
    "InvalidKeyError",
    "KeyCategory",
    "KeyPair",
    "RecordStore",
    "SQLiteAuthState",
    "SQLiteKeyStore",
    "SessionDeletedError",
    "SignedKeyPair",
    "StoreConnectionError",
    "Upsert",
    "get_database",
    "init_auth_creds",
    "reset_database",
    "use_sqlite_auth_state",
]
