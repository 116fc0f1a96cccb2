"""
signet_sdk.crypto
-----------------
Detached Ed25519 signatures over canonical JSON.

- ed25519_sign / ed25519_verify: raw bytes in, raw bytes out
- sign_object / verify_object: key and signature text form
- sign_payload / verify_signed_payload: CanonicalPayload helpers

Signing delegates to the `cryptography` Ed25519 implementation.
"""

from __future__ import annotations
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519

from .constants import (
    ED25519_PRIVATE_KEY_LEN, ED25519_PUBLIC_KEY_LEN, ED25519_SEED_LEN, ED25519_SIGNATURE_LEN,
)
from .errors import DecodeError
from .keys import KeyPair
from .payload import SignedPayload
from .utils import b64url_key_decode, b64url_key_encode, canonical_json


# --------- Ed25519 (sign/verify) ----------
def ed25519_sign(priv_raw: bytes, data: bytes) -> bytes:
    # Accepts either a 32-byte seed or the 64-byte seed||pub layout
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw[:ED25519_SEED_LEN])
    return sk.sign(data)


def ed25519_verify(pub_raw: bytes, sig: bytes, data: bytes) -> bool:
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(pub_raw).verify(sig, data)
        return True
    except (InvalidSignature, ValueError):
        return False


# --------- Text form ----------
def sign_bytes(data: bytes, private_key_text: str) -> str:
    priv = b64url_key_decode(private_key_text, (ED25519_SEED_LEN, ED25519_PRIVATE_KEY_LEN))
    return b64url_key_encode(ed25519_sign(priv, data))


def verify_bytes(data: bytes, signature_text: str, public_key_text: str) -> bool:
    try:
        sig = b64url_key_decode(signature_text, ED25519_SIGNATURE_LEN)
        pub = b64url_key_decode(public_key_text, ED25519_PUBLIC_KEY_LEN)
    except DecodeError:
        return False
    return ed25519_verify(pub, sig, data)


def sign_object(obj: Any, private_key_text: str) -> str:
    """Sign the canonical JSON form of obj. Raises DecodeError on a bad key."""
    return sign_bytes(canonical_json(obj), private_key_text)


def verify_object(obj: Any, signature_text: str, public_key_text: str) -> bool:
    """Never raises: malformed input or a mismatch both give False."""
    try:
        data = canonical_json(obj)
    except (TypeError, ValueError):
        return False
    return verify_bytes(data, signature_text, public_key_text)


# --------- Payload helpers ----------
def sign_payload(payload: dict, key_pair: KeyPair) -> SignedPayload:
    return SignedPayload(payload=payload, sign=sign_object(payload, key_pair.export_private()))


def verify_signed_payload(signed: SignedPayload) -> bool:
    """Check a signed payload against the verify_key it carries."""
    try:
        verify_key = signed.payload["verify"]["verify_key"]
    except (KeyError, TypeError):
        return False
    return verify_object(signed.payload, signed.sign, verify_key)
