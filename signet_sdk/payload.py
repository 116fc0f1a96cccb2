"""
signet_sdk.payload
------------------
Canonical payload construction for registry mutations.

A payload has two sections:

    data:   {guid, xids?, channels?}
    verify: {verify_key, sign_time, prev_sign}

xids / channels are only present when non-empty. The signed envelope is
{payload, sign}; a rekey wraps it again as {signed_payload, old_sign}.
All signing goes through utils.canonical_json, which fixes field order,
so the same bytes come back out of a payload parsed from the wire.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional
import json

from .constants import CHANNEL_SEPARATOR, XID_SEPARATOR
from .errors import ParamInvalid, ParamMissing
from .keys import KeyPair
from .utils import canonical_text, now_iso_ms


def _parts(text: Optional[str], sep: str) -> List[str]:
    # Plain split, padded to three parts; stored registry values are carried as-is
    parts = (text or "").split(sep, 2)
    return parts + [""] * (3 - len(parts))


def _fields_from_dict(kind: str, data: Any, names) -> List[str]:
    if not isinstance(data, dict):
        raise ParamInvalid(f"{kind} entry must be an object, got {type(data).__name__}")
    values = [data.get(n, "") for n in names]
    if not all(isinstance(v, str) for v in values):
        raise ParamInvalid(f"{kind} fields must be strings")
    return values


@dataclass(frozen=True)
class XID:
    nstype: str
    ns: str
    name: str

    def validate(self) -> "XID":
        """Check a caller-supplied XID. Values read back from the registry are not validated."""
        for label, value in (("nstype", self.nstype), ("ns", self.ns), ("name", self.name)):
            if not value:
                raise ParamMissing(f"XID {label} is missing")
        if XID_SEPARATOR in self.nstype or XID_SEPARATOR in self.ns:
            raise ParamInvalid(f"XID namespace parts may not contain '{XID_SEPARATOR}'")
        return self

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    def __str__(self) -> str:
        return XID_SEPARATOR.join((self.nstype, self.ns, self.name))

    @classmethod
    def parse(cls, text: str, strict: bool = True) -> "XID":
        """Parse 'nstype:ns:name'. The name part may itself contain ':'."""
        if strict and len((text or "").split(XID_SEPARATOR, 2)) != 3:
            raise ParamInvalid(f"XID '{text}' is not of the form nstype:ns:name")
        xid = cls(*_parts(text, XID_SEPARATOR))
        return xid.validate() if strict else xid

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "XID":
        return cls(*_fields_from_dict("XID", data, ("nstype", "ns", "name")))


@dataclass(frozen=True)
class Channel:
    chtype: str
    version: str
    endpoint: str

    def validate(self) -> "Channel":
        """Check a caller-supplied channel. Values read back from the registry are not validated."""
        for label, value in (("chtype", self.chtype), ("version", self.version), ("endpoint", self.endpoint)):
            if not value:
                raise ParamMissing(f"Channel {label} is missing")
        if CHANNEL_SEPARATOR in self.chtype or CHANNEL_SEPARATOR in self.version:
            raise ParamInvalid(f"Channel type/version may not contain '{CHANNEL_SEPARATOR}'")
        return self

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    def __str__(self) -> str:
        return CHANNEL_SEPARATOR.join((self.chtype, self.version, self.endpoint))

    @classmethod
    def parse(cls, text: str, strict: bool = True) -> "Channel":
        """Parse 'chtype#version#endpoint'. The endpoint may contain '#'."""
        if strict and len((text or "").split(CHANNEL_SEPARATOR, 2)) != 3:
            raise ParamInvalid(f"Channel '{text}' is not of the form chtype#version#endpoint")
        channel = cls(*_parts(text, CHANNEL_SEPARATOR))
        return channel.validate() if strict else channel

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Channel":
        return cls(*_fields_from_dict("Channel", data, ("chtype", "version", "endpoint")))


def build_payload(
    guid: str,
    key_pair: KeyPair,
    prev_sign: Optional[str] = "",
    xids: Optional[Iterable[XID]] = None,
    channels: Optional[Iterable[Channel]] = None,
    sign_time: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the unsigned payload dict for one mutation.

    key_pair supplies verify_key; prev_sign is "" for the first mutation.
    """
    if not guid:
        raise ParamMissing("guid is missing")
    if key_pair is None:
        raise ParamMissing("key pair is missing")

    data: Dict[str, Any] = {"guid": guid}
    xid_list = [x.to_dict() for x in (xids or [])]
    channel_list = [c.to_dict() for c in (channels or [])]
    if xid_list:
        data["xids"] = xid_list
    if channel_list:
        data["channels"] = channel_list

    return {
        "data": data,
        "verify": {
            "verify_key": key_pair.export_public(),
            "sign_time": sign_time or now_iso_ms(),
            "prev_sign": prev_sign or "",
        },
    }


def _data_list(payload: Dict[str, Any], name: str) -> list:
    value = payload.get("data", {}).get(name, [])
    if not isinstance(value, list):
        raise ParamInvalid(f"data.{name} must be a list")
    return value


def payload_xids(payload: Dict[str, Any]) -> List[XID]:
    return [XID.from_dict(x) for x in _data_list(payload, "xids")]


def payload_channels(payload: Dict[str, Any]) -> List[Channel]:
    return [Channel.from_dict(c) for c in _data_list(payload, "channels")]


@dataclass
class SignedPayload:
    payload: Dict[str, Any]
    sign: str

    @property
    def guid(self) -> str:
        return self.payload["data"]["guid"]

    @property
    def verify_key(self) -> str:
        return self.payload["verify"]["verify_key"]

    @property
    def prev_sign(self) -> str:
        return self.payload["verify"]["prev_sign"]

    def to_dict(self) -> Dict[str, Any]:
        return {"payload": self.payload, "sign": self.sign}

    def to_json(self) -> str:
        return canonical_text(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignedPayload":
        try:
            return cls(payload=data["payload"], sign=data["sign"])
        except (KeyError, TypeError) as e:
            raise ParamInvalid(f"malformed signed payload: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> "SignedPayload":
        try:
            return cls.from_dict(json.loads(text))
        except json.JSONDecodeError as e:
            raise ParamInvalid(f"signed payload is not JSON: {e}") from e


@dataclass
class RekeyPayload:
    signed_payload: SignedPayload
    old_sign: str

    def to_dict(self) -> Dict[str, Any]:
        return {"signed_payload": self.signed_payload.to_dict(), "old_sign": self.old_sign}

    def to_json(self) -> str:
        return canonical_text(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RekeyPayload":
        try:
            return cls(signed_payload=SignedPayload.from_dict(data["signed_payload"]),
                       old_sign=data["old_sign"])
        except (KeyError, TypeError) as e:
            raise ParamInvalid(f"malformed rekey payload: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> "RekeyPayload":
        try:
            return cls.from_dict(json.loads(text))
        except json.JSONDecodeError as e:
            raise ParamInvalid(f"rekey payload is not JSON: {e}") from e
