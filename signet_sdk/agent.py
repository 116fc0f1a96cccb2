"""
signet_sdk.agent
----------------
The Agent holds a keychain (GUID -> KeySet) plus organization credentials
and drives every entity mutation against the registry:

- create_entity(): new GUID + new ownership key, first link of the chain
- set_xid() / set_channel(): signed update chained on entity.prev_sign
- rekey(): payload signed by the new key, then signed again by the old key
- assign_entity(): import key material shared by another agent (co-ownership)

Local precondition violations raise before any network call. Registry
rejections (stale prev_sign, superseded key, duplicate XID ...) are normal
outcomes and come back as a failed Result.

Every update re-submits the entity's full XID and channel set, so changing
one field never drops the other.
"""

from __future__ import annotations
import os
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Optional, Tuple, Union
from urllib.parse import quote

from .constants import (
    ENV_ORG_PRIVATE_KEY, ENV_ORG_PUBLIC_KEY, HEADER_ORG_KEY, HEADER_ORG_SIGN, KEY_TEXT_SUFFIX,
    PATH_ENTITY_CREATE, PATH_ENTITY_REKEY, PATH_ENTITY_UPDATE,
)
from .crypto import sign_object, sign_payload
from .entity import Entity
from .errors import (
    EntityNotOwned, InvalidPreviousSign, OrgKeyNotSet, ParamInvalid, ParamMissing,
    RegistryRejected, Result,
)
from .keychain import KeyChain
from .keys import KeyPair, KeySet
from .logger import get_logger
from .payload import XID, Channel, RekeyPayload, SignedPayload, build_payload
from .transport.transport_base import BaseTransport, RegistryResponse
from .utils import key_fingerprint, new_guid

log = get_logger("Signet.Agent")

XIDLike = Union[XID, Tuple[str, str, str]]
ChannelLike = Union[Channel, Tuple[str, str, str]]


def _as_xid(value: XIDLike) -> XID:
    return (value if isinstance(value, XID) else XID(*value)).validate()


def _as_channel(value: ChannelLike) -> Channel:
    return (value if isinstance(value, Channel) else Channel(*value)).validate()


def _rejected(resp: RegistryResponse, action: str) -> RegistryRejected:
    message = f"{action} rejected with status {resp.status}"
    if isinstance(resp.data, dict) and resp.data.get("error"):
        message += f": {resp.data['error']}"
    return RegistryRejected(resp.status, resp.data, message)


class Agent:
    def __init__(self, transport: BaseTransport, key_chain: Optional[KeyChain] = None):
        self.transport = transport
        self.key_chain = key_chain if key_chain is not None else KeyChain()
        self.org_public_key = ""
        self.org_private_key = ""
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_env(cls, transport: BaseTransport) -> "Agent":
        """Agent with org keys from SIGNET_ORG_PUBLIC_KEY / SIGNET_ORG_PRIVATE_KEY."""
        agent = cls(transport)
        pub = os.getenv(ENV_ORG_PUBLIC_KEY)
        priv = os.getenv(ENV_ORG_PRIVATE_KEY)
        if pub or priv:
            agent.set_org_keys(pub, priv)
        return agent

    # ------------------------------------------------------------------
    # Credentials and keychain
    # ------------------------------------------------------------------
    def set_org_keys(self, pub_key_text: str, priv_key_text: str) -> None:
        """Set the organization key pair (text form, trailing '=')."""
        if not pub_key_text:
            raise ParamMissing("Org Public Key is missing")
        if not priv_key_text:
            raise ParamMissing("Org Private Key is missing")
        if not pub_key_text.endswith(KEY_TEXT_SUFFIX):
            raise ParamInvalid(f"Org Public Key does not end with {KEY_TEXT_SUFFIX} character")
        if not priv_key_text.endswith(KEY_TEXT_SUFFIX):
            raise ParamInvalid(f"Org Private Key does not end with {KEY_TEXT_SUFFIX} character")
        # Normalizes a 32-byte seed to the 64-byte form, and checks the halves match
        org = KeyPair.import_keys(pub_key_text, priv_key_text)
        self.org_public_key, self.org_private_key = org.export_keys()
        log.info(f"[AGENT ORG] org key set fpr={key_fingerprint(self.org_public_key)}")

    def add_entity_key_set_to_key_chain(self, guid: str, key_set: KeySet) -> None:
        self.key_chain.upsert(guid, key_set)

    def get_ownership_key_set(self, guid: str) -> Optional[KeySet]:
        return self.key_chain.get(guid)

    def get_ownership_key_pair(self, guid: str) -> Optional[KeyPair]:
        key_set = self.key_chain.get(guid)
        return key_set.ownership_key_pair if key_set else None

    def owns(self, guid: str) -> bool:
        return guid in self.key_chain

    def export_entity_keys(self, guid: str) -> Tuple[str, str]:
        """Key text to hand to another agent's assign_entity()."""
        key_set = self.key_chain.get(guid)
        if key_set is None:
            raise EntityNotOwned(f"no ownership key for {guid}")
        return key_set.export_ownership_key_pair()

    def drop_entity(self, guid: str) -> bool:
        """Forget an entity: remove its KeySet and its mutation lock."""
        with self._entity_lock(guid):
            removed = self.key_chain.remove(guid) is not None
        with self._locks_guard:
            self._locks.pop(guid, None)
        return removed

    def _require_key_pair(self, guid: str) -> KeyPair:
        key_pair = self.get_ownership_key_pair(guid)
        if key_pair is None:
            raise EntityNotOwned(f"no ownership key for {guid}")
        return key_pair

    @contextmanager
    def _entity_lock(self, guid: str):
        # Serializes mutations per GUID so two calls never sign off the same prev_sign.
        # Callers check ownership first, so unknown GUIDs never get an entry.
        with self._locks_guard:
            lock = self._locks.setdefault(guid, threading.Lock())
        with lock:
            yield

    # ------------------------------------------------------------------
    # Signing helpers
    # ------------------------------------------------------------------
    def get_org_signature(self, obj) -> str:
        if not self.org_private_key:
            raise OrgKeyNotSet("Org private key not set")
        if not self.org_public_key:
            raise OrgKeyNotSet("Org public key not set")
        return sign_object(obj, self.org_private_key)

    def _org_headers(self, signed: SignedPayload) -> Dict[str, str]:
        return {
            HEADER_ORG_KEY: self.org_public_key,
            HEADER_ORG_SIGN: self.get_org_signature(signed.to_dict()),
        }

    def get_signed_payload(
        self,
        guid: str,
        key_pair: KeyPair,
        prev_sign: Optional[str],
        xids: Optional[Iterable[XID]] = None,
        channels: Optional[Iterable[Channel]] = None,
    ) -> SignedPayload:
        payload = build_payload(guid, key_pair, prev_sign, xids, channels)
        return sign_payload(payload, key_pair)

    def get_rekey_payload(
        self,
        guid: str,
        new_key_pair: KeyPair,
        old_key_pair: KeyPair,
        prev_sign: Optional[str],
    ) -> RekeyPayload:
        """Payload signed by the new key, then signed as a whole by the old key."""
        if not prev_sign:
            raise InvalidPreviousSign("Invalid previous sign")
        signed = self.get_signed_payload(guid, new_key_pair, prev_sign, [], [])
        old_sign = sign_object(signed.to_dict(), old_key_pair.export_private())
        return RekeyPayload(signed_payload=signed, old_sign=old_sign)

    # ------------------------------------------------------------------
    # Registry operations
    # ------------------------------------------------------------------
    def create_entity(
        self,
        xid: Optional[XIDLike] = None,
        channel: Optional[ChannelLike] = None,
    ) -> Result[Entity]:
        """Create a new entity owned by this agent.

        The new KeySet only enters the keychain once the registry accepts
        the entity.
        """
        if not self.org_private_key or not self.org_public_key:
            raise OrgKeyNotSet("Org keys must be set before creating entities")

        guid = new_guid()
        key_set = KeySet()
        key_pair = key_set.ownership_key_pair
        xids = [_as_xid(xid)] if xid else []
        channels = [_as_channel(channel)] if channel else []

        signed = self.get_signed_payload(guid, key_pair, "", xids, channels)
        headers = self._org_headers(signed)
        log.info(f"[AGENT CREATE] guid={guid} verkey_fpr={key_fingerprint(key_pair.export_public())}")

        resp = self.transport.do_post(PATH_ENTITY_CREATE, {"signed_payload": signed.to_json()}, headers)
        if not resp.ok or not isinstance(resp.data, dict):
            log.warning(f"[AGENT CREATE] guid={guid} failed status={resp.status}")
            return Result.fail(_rejected(resp, "create"))

        self.add_entity_key_set_to_key_chain(guid, key_set)
        entity = Entity(guid=guid, verkey=key_pair.export_public())
        entity.refresh(resp.data)
        return Result.success(entity)

    def set_xid(self, entity: Entity, nstype: str, ns: str, name: str) -> Result[Entity]:
        xid = XID(nstype, ns, name).validate()
        self._require_key_pair(entity.guid)
        log.info(f"[AGENT SET_XID] guid={entity.guid} xid={xid}")
        with self._entity_lock(entity.guid):
            channel = entity.channel_object()
            return self._submit_update(entity, [xid], [channel] if channel else [])

    def set_channel(self, entity: Entity, chtype: str, version: str, endpoint: str) -> Result[Entity]:
        channel = Channel(chtype, version, endpoint).validate()
        self._require_key_pair(entity.guid)
        log.info(f"[AGENT SET_CHANNEL] guid={entity.guid} channel={channel}")
        with self._entity_lock(entity.guid):
            xid = entity.xid_object()
            return self._submit_update(entity, [xid] if xid else [], [channel])

    def _submit_update(self, entity: Entity, xids, channels) -> Result[Entity]:
        key_pair = self._require_key_pair(entity.guid)
        signed = self.get_signed_payload(entity.guid, key_pair, entity.prev_sign, xids, channels)
        headers = self._org_headers(signed)

        path = f"{PATH_ENTITY_UPDATE}?guid={quote(entity.guid)}"
        resp = self.transport.do_patch(path, {"signed_payload": signed.to_json()}, headers)
        if not resp.ok or not isinstance(resp.data, dict):
            log.warning(f"[AGENT UPDATE] guid={entity.guid} rejected status={resp.status}")
            return Result.fail(_rejected(resp, "update"))

        entity.refresh(resp.data)
        return Result.success(entity)

    def rekey(self, entity: Entity) -> Result[Entity]:
        """Replace the entity's ownership key.

        On success the new KeySet supersedes the old one in the keychain;
        on failure the old one stays.
        """
        self._require_key_pair(entity.guid)
        with self._entity_lock(entity.guid):
            old_key_pair = self._require_key_pair(entity.guid)
            new_key_set = KeySet()
            rekey_payload = self.get_rekey_payload(
                entity.guid, new_key_set.ownership_key_pair, old_key_pair, entity.prev_sign
            )
            log.info(
                f"[AGENT REKEY] guid={entity.guid} "
                f"old_fpr={key_fingerprint(old_key_pair.export_public())} "
                f"new_fpr={key_fingerprint(new_key_set.ownership_key_pair.export_public())}"
            )

            path = f"{PATH_ENTITY_REKEY}?guid={quote(entity.guid)}"
            resp = self.transport.do_patch(path, {"rekey_payload": rekey_payload.to_json()})
            if not resp.ok or not isinstance(resp.data, dict):
                log.warning(f"[AGENT REKEY] guid={entity.guid} rejected status={resp.status}")
                return Result.fail(_rejected(resp, "rekey"))

            self.add_entity_key_set_to_key_chain(entity.guid, new_key_set)
            entity.refresh(resp.data)
            return Result.success(entity)

    def assign_entity(self, entity: Entity, pub_key_text: str, priv_key_text: str) -> Result[KeySet]:
        """Take on co-ownership of an entity from shared key material.

        No network call. Both agents can sign until one of them rekeys.
        Raises DecodeError on malformed key text.
        """
        key_set = KeySet.from_exported(pub_key_text, priv_key_text)
        with self._entity_lock(entity.guid):
            self.add_entity_key_set_to_key_chain(entity.guid, key_set)
        log.info(f"[AGENT ASSIGN] guid={entity.guid} fpr={key_fingerprint(pub_key_text)}")
        return Result.success(key_set)
