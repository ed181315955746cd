"""Domain types exchanged with the protocol layer.

Field names in ``to_dict()`` output are camelCase so stored rows stay
readable by other clients of the same protocol.
"""

from __future__ import annotations

import base64
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol


def _as_bytes(value: Any) -> bytes:
    """Coerce bytes, byte lists or base64 text into bytes."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return base64.b64decode(value, validate=True)
    if isinstance(value, list):
        return bytes(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to bytes")


@dataclass
class KeyPair:
    public: bytes
    private: bytes

    def to_dict(self) -> dict:
        return {"private": self.private, "public": self.public}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KeyPair":
        return cls(public=_as_bytes(data["public"]), private=_as_bytes(data["private"]))


@dataclass
class SignedKeyPair:
    key_pair: KeyPair
    signature: bytes
    key_id: int
    timestamp_s: Optional[int] = None

    def to_dict(self) -> dict:
        d = {
            "keyPair": self.key_pair.to_dict(),
            "signature": self.signature,
            "keyId": self.key_id,
        }
        if self.timestamp_s is not None:
            d["timestampS"] = self.timestamp_s
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SignedKeyPair":
        return cls(
            key_pair=KeyPair.from_dict(data["keyPair"]),
            signature=_as_bytes(data["signature"]),
            key_id=int(data["keyId"]),
            timestamp_s=data.get("timestampS"),
        )


# (attribute, stored name) for the plain-valued credential fields
_PLAIN_FIELDS = (
    ("registration_id", "registrationId"),
    ("adv_secret_key", "advSecretKey"),
    ("processed_history_messages", "processedHistoryMessages"),
    ("next_pre_key_id", "nextPreKeyId"),
    ("first_unuploaded_pre_key_id", "firstUnuploadedPreKeyId"),
    ("account_sync_counter", "accountSyncCounter"),
    ("account_settings", "accountSettings"),
    ("registered", "registered"),
    ("me", "me"),
    ("account", "account"),
    ("signal_identities", "signalIdentities"),
    ("my_app_state_key_id", "myAppStateKeyId"),
    ("last_account_sync_timestamp", "lastAccountSyncTimestamp"),
    ("platform", "platform"),
    ("pairing_code", "pairingCode"),
    ("last_prop_hash", "lastPropHash"),
    ("routing_info", "routingInfo"),
)
_KEY_PAIR_FIELDS = (
    ("noise_key", "noiseKey"),
    ("pairing_ephemeral_key_pair", "pairingEphemeralKeyPair"),
    ("signed_identity_key", "signedIdentityKey"),
)
_KNOWN_NAMES = (
    {name for _, name in _PLAIN_FIELDS}
    | {name for _, name in _KEY_PAIR_FIELDS}
    | {"signedPreKey"}
)


@dataclass
class AuthenticationCreds:
    """Long-lived credential bundle of one session.

    Optional fields left as ``None`` are omitted from ``to_dict()``; unknown
    stored fields are kept in ``extra`` and written back unchanged.
    """

    noise_key: KeyPair
    pairing_ephemeral_key_pair: KeyPair
    signed_identity_key: KeyPair
    signed_pre_key: SignedKeyPair
    registration_id: int
    adv_secret_key: str
    processed_history_messages: list = field(default_factory=list)
    next_pre_key_id: int = 1
    first_unuploaded_pre_key_id: int = 1
    account_sync_counter: int = 0
    account_settings: dict = field(default_factory=lambda: {"unarchiveChats": False})
    registered: bool = False
    me: Optional[dict] = None
    account: Optional[dict] = None
    signal_identities: Optional[list] = None
    my_app_state_key_id: Optional[str] = None
    last_account_sync_timestamp: Optional[int] = None
    platform: Optional[str] = None
    pairing_code: Optional[str] = None
    last_prop_hash: Optional[str] = None
    routing_info: Optional[bytes] = None
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {}
        for attr, name in _KEY_PAIR_FIELDS:
            d[name] = getattr(self, attr).to_dict()
        d["signedPreKey"] = self.signed_pre_key.to_dict()
        for attr, name in _PLAIN_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                d[name] = value
        d.update(self.extra)
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuthenticationCreds":
        kwargs: dict[str, Any] = {
            attr: KeyPair.from_dict(data[name]) for attr, name in _KEY_PAIR_FIELDS
        }
        kwargs["signed_pre_key"] = SignedKeyPair.from_dict(data["signedPreKey"])
        for attr, name in _PLAIN_FIELDS:
            if name in data:
                kwargs[attr] = data[name]
        kwargs["extra"] = {k: v for k, v in data.items() if k not in _KNOWN_NAMES}
        return cls(**kwargs)


@dataclass
class AppStateSyncKeyData:
    """Typed form of a stored app-state sync key."""

    key_data: Optional[bytes] = None
    fingerprint: Optional[dict] = None
    timestamp: Optional[int] = None

    @classmethod
    def from_object(cls, obj: Any) -> "AppStateSyncKeyData":
        """Build from a decoded mapping, coercing field types like a message decoder."""
        if isinstance(obj, cls):
            return obj
        if not isinstance(obj, Mapping):
            raise TypeError(f"AppStateSyncKeyData expects a mapping, got {type(obj).__name__}")
        key_data = obj.get("keyData")
        timestamp = obj.get("timestamp")
        fingerprint = obj.get("fingerprint")
        return cls(
            key_data=_as_bytes(key_data) if key_data is not None else None,
            fingerprint=dict(fingerprint) if fingerprint is not None else None,
            timestamp=int(timestamp) if timestamp is not None else None,
        )

    def to_dict(self) -> dict:
        d: dict[str, Any] = {}
        if self.key_data is not None:
            d["keyData"] = self.key_data
        if self.fingerprint is not None:
            d["fingerprint"] = self.fingerprint
        if self.timestamp is not None:
            d["timestamp"] = self.timestamp
        return d


class SignalKeyStore(Protocol):
    async def get(self, key_type: str, ids: list[str]) -> dict[str, Any]: ...

    async def set(self, data: Mapping[str, Mapping[str, Any | None]]) -> None: ...

    async def clear(self) -> None: ...


@dataclass
class AuthenticationState:
    creds: AuthenticationCreds
    keys: SignalKeyStore
