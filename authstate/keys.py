"""Key namespacing: one flat ``data_key`` per (category, identifier) pair."""

from __future__ import annotations

from enum import Enum

from authstate.errors import InvalidKeyError

SEPARATOR = "-"
CREDS_KEY = "auth_creds"


class KeyCategory(str, Enum):
    """Key record categories stored alongside the credentials row."""

    PRE_KEY = "pre-key"
    SESSION = "session"
    SENDER_KEY = "sender-key"
    SENDER_KEY_MEMORY = "sender-key-memory"
    APP_STATE_SYNC_KEY = "app-state-sync-key"
    APP_STATE_SYNC_VERSION = "app-state-sync-version"
    LID_MAPPING = "lid-mapping"
    DEVICE_LIST = "device-list"
    TC_TOKEN = "tctoken"
    IDENTITY_KEY = "identity-key"

    def __str__(self) -> str:
        return self.value


# Longest first so "sender-key-memory" wins over "sender-key".
_BY_LENGTH = sorted(KeyCategory, key=lambda c: len(c.value), reverse=True)


def to_category(category: KeyCategory | str) -> KeyCategory:
    """Validate and coerce a category name."""
    try:
        return KeyCategory(category)
    except ValueError:
        raise InvalidKeyError(f"Unknown key category: {category!r}") from None


def compose(category: KeyCategory | str, identifier: str) -> str:
    """Build the storage key ``"{category}-{identifier}"``."""
    cat = to_category(category)
    identifier = str(identifier)
    if not identifier:
        raise InvalidKeyError(f"Empty identifier for category {cat.value!r}")
    if identifier.startswith(SEPARATOR):
        raise InvalidKeyError(
            f"Identifier {identifier!r} must not start with {SEPARATOR!r}"
        )
    return f"{cat.value}{SEPARATOR}{identifier}"


def decompose(key: str) -> str:
    """Return the identifier part of a storage key.

    Known categories are stripped as a whole, so hyphenated categories and
    hyphenated identifiers both survive: ``"session-device-17"`` gives
    ``"device-17"``. Unknown prefixes fall back to splitting on the first
    separator.
    """
    return split_key(key)[1]


def split_key(key: str) -> tuple[KeyCategory | None, str]:
    """Split a storage key into (category, identifier).

    Keys without a separator (``auth_creds``) come back whole with no category.
    """
    for cat in _BY_LENGTH:
        prefix = cat.value + SEPARATOR
        if key.startswith(prefix):
            if len(key) == len(prefix):
                raise InvalidKeyError(f"Storage key {key!r} has an empty identifier")
            return cat, key[len(prefix):]
    head, sep, tail = key.partition(SEPARATOR)
    if not sep:
        # uncategorized rows such as the credentials key
        return None, key
    return None, tail


def category_prefix(category: KeyCategory | str) -> str:
    """Key prefix shared by every record of a category."""
    return to_category(category).value + SEPARATOR
