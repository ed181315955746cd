"""SQLite auth state facade - credentials plus the signal key store of one session."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Optional

from authstate.creds import init_auth_creds
from authstate.db import Database, get_database
from authstate.errors import DecodeError, SessionDeletedError
from authstate.keys import CREDS_KEY, KeyCategory, category_prefix, compose, to_category
from authstate.profiling import profile, profiled
from authstate.services.records import RecordStore
from authstate.types import AuthenticationCreds, AuthenticationState

logger = logging.getLogger(__name__)


class SQLiteKeyStore:
    """Key record store of one session (``state.keys``).

    Records are addressed by (category, identifier) and stored under
    ``"{category}-{identifier}"`` in the session's partition.
    """

    def __init__(self, db: Database, session_id: str, log: logging.Logger):
        self._db = db
        self._session_id = session_id
        self._logger = log
        self._deleted = False

    def _check_alive(self) -> None:
        if self._deleted:
            raise SessionDeletedError(self._session_id)

    @profiled("keys.get")
    async def get(self, key_type: KeyCategory | str, ids: list[str]) -> dict[str, Any]:
        """Fetch records by identifier; missing ones are absent from the result."""
        self._check_alive()
        category = to_category(key_type)
        keys = [compose(category, i) for i in ids]
        async with self._db.session() as session:
            return await RecordStore(session, self._session_id).get_many(keys, category)

    @profiled("keys.set")
    async def set(self, data: Mapping[str, Mapping[str, Any]]) -> None:
        """Write ``{category: {id: value}}`` in one transaction.

        A falsy value (or ``Delete()``) removes that record.
        """
        self._check_alive()
        mutations: dict[str, Any] = {}
        for category, entries in data.items():
            for identifier, value in (entries or {}).items():
                mutations[compose(category, identifier)] = value
        async with self._db.session() as session:
            await RecordStore(session, self._session_id).put_many(mutations)

    @profiled("keys.clear")
    async def clear(self) -> None:
        """Remove every key record of the session, keeping the credentials."""
        self._check_alive()
        async with self._db.session() as session:
            await RecordStore(session, self._session_id).delete_keys_except([CREDS_KEY])

    async def list_ids(self, key_type: KeyCategory | str) -> list[str]:
        """Identifiers stored under a category, in key order."""
        self._check_alive()
        prefix = category_prefix(key_type)
        async with self._db.session() as session:
            keys = await RecordStore(session, self._session_id).list_keys(key_type)
        return [k[len(prefix):] for k in keys]

    @profiled("keys.getAll")
    async def get_all(self, key_type: KeyCategory | str) -> dict[str, Any]:
        """Every record stored under a category."""
        self._check_alive()
        async with self._db.session() as session:
            return await RecordStore(session, self._session_id).get_category(key_type)


class SQLiteAuthState:
    """Opened session: ``state``, ``save_creds`` and ``delete_session``.

    Unpacks like a tuple::

        state, save_creds, delete_session = await use_sqlite_auth_state(...)
    """

    def __init__(
        self,
        session_id: str,
        db: Database,
        creds: AuthenticationCreds,
        log: logging.Logger,
    ):
        self.session_id = session_id
        self._db = db
        self._logger = log
        self.keys = SQLiteKeyStore(db, session_id, log)
        self.state = AuthenticationState(creds=creds, keys=self.keys)

    def __iter__(self):
        return iter((self.state, self.save_creds, self.delete_session))

    @property
    def deleted(self) -> bool:
        return self.keys._deleted

    @profiled("saveCreds")
    async def save_creds(self) -> None:
        """Persist the current in-memory credentials."""
        self.keys._check_alive()
        async with self._db.session() as session:
            await RecordStore(session, self.session_id).put_one(CREDS_KEY, self.state.creds)

    @profiled("deleteSession")
    async def delete_session(self) -> None:
        """Remove every row of the session. The in-memory state becomes stale."""
        async with self._db.session() as session:
            count = await RecordStore(session, self.session_id).delete_session()
        self.keys._deleted = True
        self._logger.debug(f"Deleted session {self.session_id} ({count} rows)")


async def use_sqlite_auth_state(
    session_id: str,
    path: str,
    log: Optional[logging.Logger] = None,
    *,
    database: Optional[Database] = None,
    creds_factory: Callable[[], AuthenticationCreds] = init_auth_creds,
) -> SQLiteAuthState:
    """Open the auth state of ``session_id``.

    Args:
        session_id: Partition of the auth_state table to use.
        path: SQLite file; only used to open the shared database.
        log: Logger for setup and timing lines (default: module logger).
        database: Explicitly owned Database; bypasses the shared one.
        creds_factory: Builds credentials when none are stored.
    """
    log = log or logger
    if database is None:
        db = await get_database(path, log)
    else:
        db = database
        if not db.initialized:
            await db.init(log)

    async def read_creds():
        async with db.session() as session:
            return await RecordStore(session, session_id).get_one(CREDS_KEY)

    stored = await profile("readCreds", read_creds, log)
    if stored:
        try:
            creds = AuthenticationCreds.from_dict(stored)
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(CREDS_KEY, str(e)) from e
    else:
        creds = creds_factory()
        log.debug(f"No stored credentials for {session_id}, initialized defaults")

    return SQLiteAuthState(session_id, db, creds, log)
