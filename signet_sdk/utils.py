"""
signet_sdk.utils
----------------
Helpers for the key text codec, timestamps, GUID generation and the
canonical JSON form every signature is computed over.
"""

from __future__ import annotations
import base64, binascii, hashlib, json, uuid
from datetime import datetime, timezone
from typing import Any

from .constants import CANONICAL_FIELD_ORDER, KEY_TEXT_SUFFIX
from .errors import DecodeError

_FIELD_RANK = {k: i for i, k in enumerate(CANONICAL_FIELD_ORDER)}


# --------- Key / signature text ----------
def b64url_key_encode(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).decode("ascii").rstrip("=") + KEY_TEXT_SUFFIX


def b64url_key_decode(s: str, expected_len: int | tuple | None = None) -> bytes:
    if not isinstance(s, str) or not s.endswith(KEY_TEXT_SUFFIX) or len(s) < 2:
        raise DecodeError(f"key text must be a non-empty string ending in '{KEY_TEXT_SUFFIX}'")
    body = s[:-len(KEY_TEXT_SUFFIX)]
    if "=" in body:
        raise DecodeError("unexpected padding inside key text")
    try:
        raw = base64.urlsafe_b64decode(body + "=" * (-len(body) % 4))
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"key text is not valid base64url: {e}") from e
    # urlsafe_b64decode silently drops foreign characters; re-encode to catch them
    if base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=") != body:
        raise DecodeError("key text is not canonical base64url")
    if expected_len is not None:
        allowed = expected_len if isinstance(expected_len, tuple) else (expected_len,)
        if len(raw) not in allowed:
            raise DecodeError(f"decoded length {len(raw)} not in {allowed}")
    return raw


def key_fingerprint(key_text: str) -> str:
    # Short stable id for log lines; never log full key material
    return hashlib.sha256(key_text.encode("utf-8")).hexdigest()[:16]


# --------- Time / ids ----------
def now_iso_ms() -> str:
    # ISO 8601 UTC, millisecond precision, 'Z' suffix
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def new_guid() -> str:
    # uuid4 draws from os.urandom
    return str(uuid.uuid4())


# --------- Canonical JSON ----------
def _ordered(obj: Any) -> Any:
    if isinstance(obj, dict):
        keys = sorted(obj.keys(), key=lambda k: (_FIELD_RANK.get(k, len(_FIELD_RANK)), k))
        return {k: _ordered(obj[k]) for k in keys}
    if isinstance(obj, (list, tuple)):
        return [_ordered(v) for v in obj]
    return obj


def canonical_json(obj: Any) -> bytes:
    """Deterministic bytes for signing.

    Object keys are emitted in the fixed protocol order, so a payload parsed
    back from the wire serializes to the same bytes it was signed as.
    """
    return json.dumps(_ordered(obj), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def canonical_text(obj: Any) -> str:
    return canonical_json(obj).decode("utf-8")
