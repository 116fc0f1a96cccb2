"""
signet_sdk.client
-----------------
Entry point object: wraps one registry transport, hands out Agents bound
to it, and fetches entities by GUID or XID.
"""

from __future__ import annotations
from typing import Optional
from urllib.parse import quote

from .agent import Agent
from .constants import PATH_ENTITY
from .entity import Entity
from .errors import RegistryRejected, Result
from .logger import get_logger
from .payload import XID
from .transport import transport_factory
from .transport.transport_base import BaseTransport

log = get_logger("Signet.Client")


class SignetClient:
    def __init__(self, transport: Optional[BaseTransport] = None, config: Optional[dict] = None):
        self.transport = transport or transport_factory(config)

    def create_agent(self) -> Agent:
        return Agent(self.transport)

    def fetch_entity(self, guid: str) -> Result[Entity]:
        return self._fetch(f"{PATH_ENTITY}?guid={quote(guid, safe='')}", f"guid={guid}")

    def fetch_entity_by_xid(self, nstype: str, ns: str, name: str) -> Result[Entity]:
        xid = str(XID(nstype, ns, name).validate())
        return self._fetch(f"{PATH_ENTITY}?xid={quote(xid, safe='')}", f"xid={xid}")

    def _fetch(self, path: str, label: str) -> Result[Entity]:
        resp = self.transport.do_get(path)
        if not resp.ok or not isinstance(resp.data, dict) or not resp.data.get("guid"):
            log.warning(f"[CLIENT FETCH] {label} failed status={resp.status}")
            return Result.fail(RegistryRejected(resp.status, resp.data))
        log.debug(f"[CLIENT FETCH] {label} ok")
        return Result.success(Entity.from_response(resp.data))

    def close(self) -> None:
        self.transport.close()
