"""Default credential material for a brand-new session."""

from __future__ import annotations

import base64
import secrets
from typing import Callable, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from authstate.types import AuthenticationCreds, KeyPair, SignedKeyPair

# Signal-style public keys carry a one-byte type prefix when signed.
KEY_BUNDLE_TYPE = b"\x05"

Signer = Callable[[bytes, bytes], bytes]


def generate_key_pair() -> KeyPair:
    """Generate a raw 32-byte X25519 key pair."""
    private_key = X25519PrivateKey.generate()
    return KeyPair(
        public=private_key.public_key().public_bytes(
            serialization.Encoding.Raw,
            serialization.PublicFormat.Raw,
        ),
        private=private_key.private_bytes(
            serialization.Encoding.Raw,
            serialization.PrivateFormat.Raw,
            serialization.NoEncryption(),
        ),
    )


def signed_key_pair(identity: KeyPair, key_id: int, sign: Optional[Signer] = None) -> SignedKeyPair:
    """Generate a pre-key signed by ``identity``.

    ``sign(private_key, message)`` produces the signature; without it the
    signature is left empty for the protocol layer to fill in.
    """
    pre_key = generate_key_pair()
    signature = b""
    if sign is not None:
        signature = sign(identity.private, KEY_BUNDLE_TYPE + pre_key.public)
    return SignedKeyPair(key_pair=pre_key, signature=signature, key_id=key_id)


def init_auth_creds(sign: Optional[Signer] = None) -> AuthenticationCreds:
    """Fresh credentials for a session that has never been stored."""
    identity_key = generate_key_pair()
    return AuthenticationCreds(
        noise_key=generate_key_pair(),
        pairing_ephemeral_key_pair=generate_key_pair(),
        signed_identity_key=identity_key,
        signed_pre_key=signed_key_pair(identity_key, 1, sign),
        registration_id=secrets.randbits(16) & 16383,
        adv_secret_key=base64.b64encode(secrets.token_bytes(32)).decode("ascii"),
        processed_history_messages=[],
        next_pre_key_id=1,
        first_unuploaded_pre_key_id=1,
        account_sync_counter=0,
        account_settings={"unarchiveChats": False},
        registered=False,
    )
