"""Record store - per-session serialized key/value rows in auth_state."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession

from authstate import codec
from authstate.errors import DecodeError
from authstate.keys import KeyCategory, category_prefix, split_key, to_category
from authstate.models.auth_state import AuthStateRow
from authstate.types import AppStateSyncKeyData


@dataclass(frozen=True)
class Upsert:
    """Write ``value`` under a key, replacing any previous value."""

    value: Any


@dataclass(frozen=True)
class Delete:
    """Remove a key."""


Mutation = Union[Upsert, Delete]


def as_mutation(value: Any) -> Mutation:
    """Tag a raw batch value: falsy means delete, anything else is written."""
    if isinstance(value, (Upsert, Delete)):
        return value
    return Upsert(value) if value else Delete()


def _decode(key: str, text: str) -> Any:
    try:
        return codec.decode(text)
    except (TypeError, ValueError) as e:
        raise DecodeError(key, str(e)) from e


def _transform(category: KeyCategory | None, key: str, value: Any) -> Any:
    if category is not KeyCategory.APP_STATE_SYNC_KEY:
        return value
    try:
        return AppStateSyncKeyData.from_object(value)
    except (TypeError, ValueError) as e:
        raise DecodeError(key, str(e)) from e


class RecordStore:
    """Reads and writes the rows of one session.

    Runs inside the caller's session transaction; use ``Database.session()``
    so a failed ``put_many`` is rolled back as a whole.
    """

    def __init__(self, db: AsyncSession, session_id: str):
        self.db = db
        self.session_id = session_id

    async def get_one(self, key: str) -> Any | None:
        """Decoded value for ``key``, or None if missing or empty."""
        result = await self.db.execute(
            select(AuthStateRow.data_value).where(
                AuthStateRow.session_id == self.session_id,
                AuthStateRow.data_key == key,
            )
        )
        text = result.scalar_one_or_none()
        if not text:
            return None
        return _decode(key, text)

    async def put_one(self, key: str, value: Any) -> None:
        """Upsert a single row."""
        await self._upsert([self._row(key, value)])

    async def get_many(
        self,
        keys: Iterable[str],
        category: KeyCategory | str | None = None,
    ) -> dict[str, Any]:
        """Fetch many keys in one query, keyed by identifier.

        With ``category`` the identifier is whatever follows that category's
        prefix; otherwise the category is inferred from each stored key.
        """
        keys = list(dict.fromkeys(keys))
        if not keys:
            return {}
        cat = to_category(category) if category is not None else None
        result = await self.db.execute(
            select(AuthStateRow.data_key, AuthStateRow.data_value).where(
                AuthStateRow.session_id == self.session_id,
                AuthStateRow.data_key.in_(keys),
            )
        )
        return self._collect(result.all(), cat)

    async def get_category(self, category: KeyCategory | str) -> dict[str, Any]:
        """Every record of a category, keyed by identifier (prefix scan)."""
        cat = to_category(category)
        result = await self.db.execute(
            select(AuthStateRow.data_key, AuthStateRow.data_value)
            .where(
                AuthStateRow.session_id == self.session_id,
                AuthStateRow.data_key.startswith(category_prefix(cat), autoescape=True),
            )
            .order_by(AuthStateRow.data_key)
        )
        # "sender-key-" also prefixes "sender-key-memory-" rows
        rows = [row for row in result.all() if split_key(row[0])[0] is cat]
        return self._collect(rows, cat)

    async def list_keys(self, category: KeyCategory | str | None = None) -> list[str]:
        """Stored keys of this session, optionally one category only (values not decoded)."""
        stmt = select(AuthStateRow.data_key).where(
            AuthStateRow.session_id == self.session_id,
        )
        if category is None:
            result = await self.db.execute(stmt.order_by(AuthStateRow.data_key))
            return list(result.scalars().all())
        cat = to_category(category)
        stmt = stmt.where(
            AuthStateRow.data_key.startswith(category_prefix(cat), autoescape=True)
        )
        result = await self.db.execute(stmt.order_by(AuthStateRow.data_key))
        return [key for key in result.scalars().all() if split_key(key)[0] is cat]

    async def put_many(self, mutations: Mapping[str, Any]) -> None:
        """Apply upserts and deletes together.

        Values are ``Upsert``/``Delete`` or raw values (falsy deletes).
        Upserts go out as one multi-row statement, deletes as one
        ``IN`` statement; an empty side is skipped.
        """
        rows = []
        deletes = []
        for key, value in mutations.items():
            mutation = as_mutation(value)
            if isinstance(mutation, Upsert):
                rows.append(self._row(key, mutation.value))
            else:
                deletes.append(key)

        if rows:
            await self._upsert(rows)
        if deletes:
            await self._delete_keys(deletes)

    async def delete_session(self) -> int:
        """Delete every row of this session. Returns the row count."""
        result = await self.db.execute(
            delete(AuthStateRow).where(AuthStateRow.session_id == self.session_id)
        )
        return result.rowcount

    async def delete_keys_except(self, keep: Iterable[str]) -> int:
        """Delete every row of this session except ``keep``."""
        result = await self.db.execute(
            delete(AuthStateRow).where(
                AuthStateRow.session_id == self.session_id,
                AuthStateRow.data_key.not_in(list(keep)),
            )
        )
        return result.rowcount

    def _row(self, key: str, value: Any) -> dict[str, str]:
        return {
            "session_id": self.session_id,
            "data_key": key,
            "data_value": codec.encode(value),
        }

    async def _upsert(self, rows: list[dict[str, str]]) -> None:
        stmt = insert(AuthStateRow).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["session_id", "data_key"],
            set_={"data_value": stmt.excluded.data_value},
        )
        await self.db.execute(stmt)

    async def _delete_keys(self, keys: list[str]) -> None:
        await self.db.execute(
            delete(AuthStateRow).where(
                AuthStateRow.session_id == self.session_id,
                AuthStateRow.data_key.in_(keys),
            )
        )

    def _collect(self, rows, category: KeyCategory | None) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for key, text in rows:
            if not text:
                continue
            if category is not None:
                row_category = category
                identifier = key[len(category.value) + 1:]
            else:
                row_category, identifier = split_key(key)
            value = _decode(key, text)
            data[identifier] = _transform(row_category, key, value)
        return data
