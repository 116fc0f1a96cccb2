"""
signet_sdk.keys
---------------
Ed25519 key material for Signet entities.

- KeyPair: immutable public/private key value with a text codec
  (urlsafe base64 + '=' suffix). Private keys use the libsodium layout
  (32-byte seed followed by the 32-byte public key) so exported keys are
  interchangeable with other Signet SDKs.
- KeySet: binds one KeyPair to the role of ownership key for an entity.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple

from cryptography.hazmat.primitives.asymmetric import ed25519

from .constants import ED25519_PRIVATE_KEY_LEN, ED25519_PUBLIC_KEY_LEN, ED25519_SEED_LEN
from .errors import DecodeError
from .utils import b64url_key_decode, b64url_key_encode


def _public_from_seed(seed: bytes) -> bytes:
    return ed25519.Ed25519PrivateKey.from_private_bytes(seed).public_key().public_bytes_raw()


@dataclass(frozen=True)
class KeyPair:
    public_key: bytes
    private_key: bytes

    def __post_init__(self):
        if len(self.public_key) != ED25519_PUBLIC_KEY_LEN:
            raise DecodeError(f"public key must be {ED25519_PUBLIC_KEY_LEN} bytes")
        if len(self.private_key) != ED25519_PRIVATE_KEY_LEN:
            raise DecodeError(f"private key must be {ED25519_PRIVATE_KEY_LEN} bytes")

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.export_public()!r})"

    @classmethod
    def generate(cls) -> "KeyPair":
        sk = ed25519.Ed25519PrivateKey.generate()
        seed = sk.private_bytes_raw()
        pub = sk.public_key().public_bytes_raw()
        return cls(public_key=pub, private_key=seed + pub)

    @property
    def seed(self) -> bytes:
        return self.private_key[:ED25519_SEED_LEN]

    def export_public(self) -> str:
        return b64url_key_encode(self.public_key)

    def export_private(self) -> str:
        return b64url_key_encode(self.private_key)

    def export_keys(self) -> Tuple[str, str]:
        return self.export_public(), self.export_private()

    @classmethod
    def import_keys(cls, pub_text: str, priv_text: str) -> "KeyPair":
        """Build a KeyPair from exported text. Raises DecodeError on bad input."""
        pub = b64url_key_decode(pub_text, ED25519_PUBLIC_KEY_LEN)
        priv = b64url_key_decode(priv_text, (ED25519_SEED_LEN, ED25519_PRIVATE_KEY_LEN))
        seed = priv[:ED25519_SEED_LEN]
        if _public_from_seed(seed) != pub:
            raise DecodeError("private key does not match public key")
        if len(priv) == ED25519_PRIVATE_KEY_LEN and priv[ED25519_SEED_LEN:] != pub:
            raise DecodeError("private key carries a different public key")
        return cls(public_key=pub, private_key=seed + pub)


@dataclass
class KeySet:
    ownership_key_pair: KeyPair = field(default_factory=KeyPair.generate)

    @classmethod
    def from_exported(cls, pub_text: str, priv_text: str) -> "KeySet":
        return cls(ownership_key_pair=KeyPair.import_keys(pub_text, priv_text))

    def export_ownership_key_pair(self) -> Tuple[str, str]:
        return self.ownership_key_pair.export_keys()
