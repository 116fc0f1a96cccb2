from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

Headers = Dict[str, str]


@dataclass
class RegistryResponse:
    status: int
    data: Any = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        # Anything but 200 is a failure at the protocol level
        return self.status == 200


class BaseTransport:
    """
    Registry transport contract.

    Every call returns a RegistryResponse; implementations report network
    failures as a non-200 response instead of raising, so callers have a
    single failure branch. Retries and timeouts belong to the transport.
    """
    name: str = "base"

    def do_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> RegistryResponse:
        raise NotImplementedError

    def do_post(
        self,
        path: str,
        params: Dict[str, Any],
        headers: Optional[Headers] = None,
    ) -> RegistryResponse:
        raise NotImplementedError

    def do_patch(
        self,
        path: str,
        params: Dict[str, Any],
        headers: Optional[Headers] = None,
    ) -> RegistryResponse:
        raise NotImplementedError

    def healthz(self) -> dict:
        return {"status": "ok", "transport": self.name}

    def close(self) -> None:
        return
