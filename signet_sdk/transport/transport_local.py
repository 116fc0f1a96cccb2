# signet_sdk/transport/transport_local.py
from __future__ import annotations
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional
from urllib.parse import parse_qs, urlsplit

from signet_sdk.constants import (
    HEADER_ORG_KEY, HEADER_ORG_SIGN,
    PATH_ENTITY, PATH_ENTITY_CREATE, PATH_ENTITY_REKEY, PATH_ENTITY_UPDATE,
)
from signet_sdk.crypto import verify_object, verify_signed_payload
from signet_sdk.errors import ParamInvalid, SignetError
from signet_sdk.logger import get_logger
from signet_sdk.payload import RekeyPayload, SignedPayload, payload_channels, payload_xids
from signet_sdk.transport.transport_base import BaseTransport, Headers, RegistryResponse

log = get_logger("Signet.Transport.Local")


@dataclass
class _EntityRecord:
    guid: str
    verkey: str
    signature: str
    signed_at: str
    entity_json: str
    xid: Optional[str] = None
    channel: Optional[str] = None
    history: list = field(default_factory=list)   # every accepted signature, oldest first

    def to_response(self) -> Dict[str, Any]:
        return {
            "guid": self.guid,
            "verkey": self.verkey,
            "xid": self.xid,
            "channel": self.channel,
            "signature": self.signature,
            "signedAt": self.signed_at,
            "entityJSON": self.entity_json,
        }


def _reject(status: int, message: str) -> RegistryResponse:
    log.info(f"[LOCAL REJECT] {status} {message}")
    return RegistryResponse(status=status, data={"error": message})


def _body_field(params: Dict[str, Any], name: str) -> Any:
    # Agents send the envelope as JSON text; plain objects are accepted too
    value = (params or {}).get(name)
    if isinstance(value, str):
        return json.loads(value)
    return value


def _check_shape(signed: SignedPayload) -> SignedPayload:
    payload = signed.payload
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict) \
            or not isinstance(payload.get("verify"), dict):
        raise ParamInvalid("payload needs data and verify sections")
    if not payload["data"].get("guid"):
        raise ParamInvalid("payload data.guid missing")
    for name in ("verify_key", "sign_time", "prev_sign"):
        if name not in payload["verify"]:
            raise ParamInvalid(f"payload verify.{name} missing")
    return signed


class LocalRegistry(BaseTransport):
    """
    In-process loopback registry.

    Implements the transport contract against an in-memory entity table,
    enforcing the same checks a Signet registry applies to a mutation:
    org signature, entity signature against the current verkey, prev_sign
    chaining, the rekey double signature, and GUID/XID uniqueness.
    Intended for tests and offline development.
    """

    name = "local"

    def __init__(self, trusted_org_keys: Optional[Iterable[str]] = None):
        self.trusted_org_keys = set(trusted_org_keys) if trusted_org_keys else None
        self.entities: Dict[str, _EntityRecord] = {}
        self.requests: list = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Transport contract
    # ------------------------------------------------------------------
    def do_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> RegistryResponse:
        route, query = self._split(path, params)
        self.requests.append(("GET", route, query, None))
        if route != PATH_ENTITY:
            return _reject(404, f"no route {route}")
        with self._lock:
            if "guid" in query:
                rec = self.entities.get(query["guid"])
            elif "xid" in query:
                rec = self._by_xid(query["xid"])
            else:
                return _reject(400, "guid or xid is required")
            if rec is None:
                return _reject(404, "entity not found")
            return RegistryResponse(200, rec.to_response())

    def do_post(self, path: str, params: Dict[str, Any], headers: Optional[Headers] = None) -> RegistryResponse:
        route, _ = self._split(path)
        self.requests.append(("POST", route, params, headers))
        if route != PATH_ENTITY_CREATE:
            return _reject(404, f"no route {route}")
        with self._lock:
            return self._create(params, headers or {})

    def do_patch(self, path: str, params: Dict[str, Any], headers: Optional[Headers] = None) -> RegistryResponse:
        route, query = self._split(path)
        self.requests.append(("PATCH", route, params, headers))
        with self._lock:
            if route == PATH_ENTITY_UPDATE:
                return self._update(query.get("guid"), params, headers or {})
            if route == PATH_ENTITY_REKEY:
                return self._rekey(query.get("guid"), params)
        return _reject(404, f"no route {route}")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def _create(self, params, headers) -> RegistryResponse:
        try:
            signed = _check_shape(SignedPayload.from_dict(_body_field(params, "signed_payload")))
        except (ParamInvalid, ValueError, TypeError) as e:
            return _reject(400, f"bad signed_payload: {e}")

        denied = self._check_org(signed, headers)
        if denied:
            return denied
        if not verify_signed_payload(signed):
            return _reject(401, "payload signature does not verify")
        if signed.prev_sign:
            return _reject(400, "prev_sign must be empty on create")
        if signed.guid in self.entities:
            return _reject(409, "duplicate guid")

        try:
            xid, channel = self._xid_and_channel(signed)
        except SignetError as e:
            return _reject(400, str(e))
        if xid and self._by_xid(xid) is not None:
            return _reject(409, "duplicate xid")

        rec = _EntityRecord(
            guid=signed.guid,
            verkey=signed.verify_key,
            signature=signed.sign,
            signed_at=signed.payload["verify"]["sign_time"],
            entity_json=signed.to_json(),
            xid=xid,
            channel=channel,
            history=[signed.sign],
        )
        self.entities[rec.guid] = rec
        log.info(f"[LOCAL CREATE] guid={rec.guid}")
        return RegistryResponse(200, rec.to_response())

    def _update(self, guid, params, headers) -> RegistryResponse:
        rec = self.entities.get(guid)
        if rec is None:
            return _reject(404, "entity not found")
        try:
            signed = _check_shape(SignedPayload.from_dict(_body_field(params, "signed_payload")))
        except (ParamInvalid, ValueError, TypeError) as e:
            return _reject(400, f"bad signed_payload: {e}")

        denied = self._check_org(signed, headers)
        if denied:
            return denied
        if signed.guid != guid:
            return _reject(400, "guid mismatch")
        if signed.verify_key != rec.verkey:
            return _reject(401, "verify_key is not the entity's current verkey")
        if not verify_signed_payload(signed):
            return _reject(401, "payload signature does not verify")
        if signed.prev_sign != rec.signature:
            return _reject(409, "stale prev_sign")

        try:
            xid, channel = self._xid_and_channel(signed)
        except SignetError as e:
            return _reject(400, str(e))
        holder = self._by_xid(xid) if xid else None
        if holder is not None and holder.guid != guid:
            return _reject(409, "duplicate xid")

        rec.xid, rec.channel = xid, channel
        self._accept(rec, signed)
        log.info(f"[LOCAL UPDATE] guid={guid} xid={xid} channel={channel}")
        return RegistryResponse(200, rec.to_response())

    def _rekey(self, guid, params) -> RegistryResponse:
        rec = self.entities.get(guid)
        if rec is None:
            return _reject(404, "entity not found")
        try:
            rekey = RekeyPayload.from_dict(_body_field(params, "rekey_payload"))
            _check_shape(rekey.signed_payload)
        except (ParamInvalid, ValueError, TypeError) as e:
            return _reject(400, f"bad rekey_payload: {e}")

        signed = rekey.signed_payload
        if signed.guid != guid:
            return _reject(400, "guid mismatch")
        if signed.prev_sign != rec.signature:
            return _reject(409, "stale prev_sign")
        if not verify_object(signed.to_dict(), rekey.old_sign, rec.verkey):
            return _reject(401, "old_sign does not verify against current verkey")
        if not verify_signed_payload(signed):
            return _reject(401, "payload signature does not verify")

        rec.verkey = signed.verify_key
        self._accept(rec, signed)
        log.info(f"[LOCAL REKEY] guid={guid}")
        return RegistryResponse(200, rec.to_response())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _check_org(self, signed: SignedPayload, headers: Headers) -> Optional[RegistryResponse]:
        org_key = headers.get(HEADER_ORG_KEY)
        org_sign = headers.get(HEADER_ORG_SIGN)
        if not org_key or not org_sign:
            return _reject(401, "org key/signature headers missing")
        if self.trusted_org_keys is not None and org_key not in self.trusted_org_keys:
            return _reject(403, "org key not trusted")
        if not verify_object(signed.to_dict(), org_sign, org_key):
            return _reject(401, "org signature does not verify")
        return None

    @staticmethod
    def _xid_and_channel(signed: SignedPayload):
        xids = payload_xids(signed.payload)
        channels = payload_channels(signed.payload)
        return (str(xids[0]) if xids else None), (str(channels[0]) if channels else None)

    @staticmethod
    def _accept(rec: _EntityRecord, signed: SignedPayload) -> None:
        rec.signature = signed.sign
        rec.signed_at = signed.payload["verify"]["sign_time"]
        rec.entity_json = signed.to_json()
        rec.history.append(signed.sign)

    def _by_xid(self, xid: str) -> Optional[_EntityRecord]:
        return next((r for r in self.entities.values() if r.xid == xid), None)

    @staticmethod
    def _split(path: str, params: Optional[Dict[str, Any]] = None):
        parts = urlsplit(path)
        query = {k: v[0] for k, v in parse_qs(parts.query).items()}
        query.update(params or {})
        return parts.path, query
