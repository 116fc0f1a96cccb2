"""
signet_sdk.entity
-----------------
Local mirror of a registry entity.

The mirror only changes through refresh(), which overwrites every field
from a registry response. Nothing is merged: a field missing from the
response becomes None.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .logger import get_logger
from .payload import XID, Channel

log = get_logger("Signet.Entity")


@dataclass
class Entity:
    guid: str
    verkey: Optional[str] = None
    xid: Optional[str] = None          # nstype:ns:name
    channel: Optional[str] = None      # chtype#version#endpoint
    prev_sign: Optional[str] = None    # signature of the last accepted mutation
    signed_at: Optional[str] = None
    entity_json: Optional[str] = None  # raw registry document, passed through

    def refresh(self, entity_rep: Dict[str, Any]) -> "Entity":
        """Overwrite local state from a registry response body."""
        self.verkey = entity_rep.get("verkey")
        self.xid = entity_rep.get("xid") or None
        self.channel = entity_rep.get("channel") or None
        self.prev_sign = entity_rep.get("signature")
        self.signed_at = entity_rep.get("signedAt")
        self.entity_json = entity_rep.get("entityJSON")
        log.debug(f"[ENTITY REFRESH] guid={self.guid} xid={self.xid} channel={self.channel}")
        return self

    @classmethod
    def from_response(cls, entity_rep: Dict[str, Any]) -> "Entity":
        return cls(guid=entity_rep["guid"]).refresh(entity_rep)

    def xid_object(self) -> Optional[XID]:
        return XID.parse(self.xid, strict=False) if self.xid else None

    def channel_object(self) -> Optional[Channel]:
        return Channel.parse(self.channel, strict=False) if self.channel else None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
