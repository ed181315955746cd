"""Tests for the session facade (creds + signal key store)."""

import logging

import pytest
from sqlalchemy import select

from authstate import codec
from authstate._core import use_sqlite_auth_state
from authstate.errors import InvalidKeyError, SessionDeletedError
from authstate.keys import CREDS_KEY, KeyCategory
from authstate.models.auth_state import AuthStateRow
from authstate.services.records import RecordStore
from authstate.types import AppStateSyncKeyData, AuthenticationCreds


def _no_defaults():
    raise AssertionError("default credentials must not be created for a stored session")


async def _raw_creds(db, session_id):
    async with db.session() as session:
        result = await session.execute(
            select(AuthStateRow.data_value).where(
                AuthStateRow.session_id == session_id,
                AuthStateRow.data_key == CREDS_KEY,
            )
        )
        return result.scalar_one()


@pytest.mark.asyncio
async def test_first_open_creates_default_creds(db):
    auth = await use_sqlite_auth_state("alice", db.path, database=db)
    creds = auth.state.creds

    assert isinstance(creds, AuthenticationCreds)
    assert creds.registered is False
    assert len(creds.noise_key.public) == 32
    assert len(creds.signed_identity_key.private) == 32
    assert creds.signed_pre_key.key_id == 1
    assert 0 <= creds.registration_id <= 16383

    # defaults are not persisted until save_creds
    async with db.session() as session:
        assert await RecordStore(session, "alice").get_one(CREDS_KEY) is None


@pytest.mark.asyncio
async def test_saved_creds_reload_identically(db):
    state, save_creds, _ = await use_sqlite_auth_state("alice", db.path, database=db)
    state.creds.registered = True
    state.creds.me = {"id": "123@s.whatsapp.net", "name": "Alice"}
    state.creds.routing_info = b"\x08\x01\x08\x05"
    await save_creds()

    raw = await _raw_creds(db, "alice")
    reopened = await use_sqlite_auth_state(
        "alice", db.path, database=db, creds_factory=_no_defaults
    )

    assert reopened.state.creds == state.creds
    assert codec.encode(reopened.state.creds) == raw


@pytest.mark.asyncio
async def test_unknown_creds_fields_preserved(db):
    state, save_creds, _ = await use_sqlite_auth_state("alice", db.path, database=db)
    state.creds.extra["lastPropHash"] = "abc"
    state.creds.extra["futureField"] = {"blob": b"\x01"}
    await save_creds()

    reopened = await use_sqlite_auth_state(
        "alice", db.path, database=db, creds_factory=_no_defaults
    )
    assert reopened.state.creds.last_prop_hash == "abc"
    assert reopened.state.creds.extra == {"futureField": {"blob": b"\x01"}}


@pytest.mark.asyncio
async def test_keys_set_and_get(db):
    state, _, _ = await use_sqlite_auth_state("alice", db.path, database=db)
    await state.keys.set({
        "pre-key": {"1": {"public": b"\x01" * 32, "private": b"\x02" * 32}, "2": {"public": b"p"}},
        "session": {"device-17": b"\xde\xad\xbe\xef"},
    })

    pre_keys = await state.keys.get("pre-key", ["1", "2", "3"])
    assert set(pre_keys) == {"1", "2"}
    assert pre_keys["1"]["private"] == b"\x02" * 32

    sessions = await state.keys.get(KeyCategory.SESSION, ["device-17"])
    assert sessions == {"device-17": b"\xde\xad\xbe\xef"}


@pytest.mark.asyncio
async def test_set_none_deletes(db):
    state, _, _ = await use_sqlite_auth_state("alice", db.path, database=db)
    await state.keys.set({"pre-key": {"5": {"public": b"x"}}})
    assert "5" in await state.keys.get("pre-key", ["5"])

    await state.keys.set({"pre-key": {"5": None}})
    assert await state.keys.get("pre-key", ["5"]) == {}


@pytest.mark.asyncio
async def test_app_state_sync_key_is_transformed(db, app_state_key_payload):
    state, _, _ = await use_sqlite_auth_state("alice", db.path, database=db)
    await state.keys.set({
        "app-state-sync-key": {"AAAAAQ==": app_state_key_payload},
        "session": {"AAAAAQ==": app_state_key_payload},
    })

    synced = await state.keys.get("app-state-sync-key", ["AAAAAQ=="])
    assert isinstance(synced["AAAAAQ=="], AppStateSyncKeyData)
    assert synced["AAAAAQ=="].key_data == app_state_key_payload["keyData"]

    raw = await state.keys.get("session", ["AAAAAQ=="])
    assert raw["AAAAAQ=="] == app_state_key_payload


@pytest.mark.asyncio
async def test_set_unknown_category_rejected(db):
    state, _, _ = await use_sqlite_auth_state("alice", db.path, database=db)
    with pytest.raises(InvalidKeyError):
        await state.keys.set({"bogus": {"1": "x"}})
    with pytest.raises(InvalidKeyError):
        await state.keys.get("bogus", ["1"])


@pytest.mark.asyncio
async def test_clear_keeps_creds(db):
    auth = await use_sqlite_auth_state("alice", db.path, database=db)
    await auth.save_creds()
    await auth.keys.set({"pre-key": {"1": "a"}, "session": {"d": "b"}})

    await auth.keys.clear()

    assert await auth.keys.get("pre-key", ["1"]) == {}
    assert await auth.keys.list_ids("session") == []
    reopened = await use_sqlite_auth_state(
        "alice", db.path, database=db, creds_factory=_no_defaults
    )
    assert reopened.state.creds == auth.state.creds


@pytest.mark.asyncio
async def test_list_ids_and_get_all(db):
    auth = await use_sqlite_auth_state("alice", db.path, database=db)
    await auth.keys.set({
        "sender-key": {"g1::u1::0": "a", "g2::u1::0": "b"},
        "sender-key-memory": {"g1": {"u1": True}},
    })

    assert await auth.keys.list_ids("sender-key") == ["g1::u1::0", "g2::u1::0"]
    assert await auth.keys.get_all("sender-key-memory") == {"g1": {"u1": True}}


@pytest.mark.asyncio
async def test_delete_session_is_final(db):
    auth = await use_sqlite_auth_state("alice", db.path, database=db)
    other = await use_sqlite_auth_state("bob", db.path, database=db)
    await auth.save_creds()
    await auth.keys.set({"pre-key": {"1": "a"}})
    await other.keys.set({"pre-key": {"1": "b"}})

    await auth.delete_session()

    assert auth.deleted
    with pytest.raises(SessionDeletedError):
        await auth.keys.get("pre-key", ["1"])
    with pytest.raises(SessionDeletedError):
        await auth.save_creds()

    fresh = await use_sqlite_auth_state("alice", db.path, database=db)
    assert await fresh.keys.get("pre-key", ["1"]) == {}
    assert fresh.state.creds != auth.state.creds
    assert await other.keys.get("pre-key", ["1"]) == {"1": "b"}


@pytest.mark.asyncio
async def test_operations_are_timed(db, caplog):
    caplog.set_level(logging.DEBUG, logger="authstate")
    auth = await use_sqlite_auth_state("alice", db.path, database=db)
    await auth.keys.set({"pre-key": {"1": "a"}})
    await auth.keys.get("pre-key", ["1"])
    await auth.save_creds()
    await auth.delete_session()

    messages = [r.getMessage() for r in caplog.records]
    for label in ("readCreds", "keys.set", "keys.get", "saveCreds", "deleteSession"):
        assert any(m.startswith(f"{label} took ") and m.endswith(" ms") for m in messages), label


@pytest.mark.asyncio
async def test_custom_logger_receives_lines(db, caplog):
    log = logging.getLogger("client.auth")
    caplog.set_level(logging.DEBUG, logger="client.auth")
    auth = await use_sqlite_auth_state("alice", db.path, log, database=db)
    await auth.keys.get("pre-key", ["1"])
    assert any(
        r.name == "client.auth" and r.getMessage().startswith("keys.get took")
        for r in caplog.records
    )


@pytest.mark.asyncio
async def test_shared_database_used_without_injection(tmp_path, shared_db_reset):
    path = str(tmp_path / "shared.db")
    auth = await use_sqlite_auth_state("alice", path)
    await auth.keys.set({"pre-key": {"1": "a"}})

    again = await use_sqlite_auth_state("alice", str(tmp_path / "ignored.db"))
    assert await again.keys.get("pre-key", ["1"]) == {"1": "a"}


@pytest.mark.asyncio
async def test_injected_database_initialized_on_open(tmp_path):
    from authstate.db import Database

    database = Database(str(tmp_path / "lazy.db"))
    try:
        auth = await use_sqlite_auth_state("alice", database.path, database=database)
        assert database.initialized
        await auth.keys.set({"tctoken": {"123@s.whatsapp.net": {"token": b"\x01"}}})
        assert await auth.keys.get("tctoken", ["123@s.whatsapp.net"]) == {
            "123@s.whatsapp.net": {"token": b"\x01"}
        }
    finally:
        await database.close()
