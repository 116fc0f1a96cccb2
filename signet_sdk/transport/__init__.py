# signet_sdk/transport/__init__.py
import os
from signet_sdk.constants import (
    DEFAULT_API_URL, DEFAULT_HTTP_TIMEOUT, DEFAULT_TRANSPORT,
    ENV_API_URL, ENV_HTTP_TIMEOUT, ENV_TRANSPORT,
)
from signet_sdk.transport.transport_base import BaseTransport, RegistryResponse
from signet_sdk.transport.transport_http import HTTPTransport
from signet_sdk.transport.transport_local import LocalRegistry


def transport_factory(config: dict | None = None) -> BaseTransport:
    """
    Resolve the registry transport.

    mode:
      - "http"  → HTTPTransport against SIGNET_API_URL (default)
      - "local" → in-process LocalRegistry
    Explicit config keys win over the environment.
    """
    config = config or {}
    mode = (config.get("transport") or os.getenv(ENV_TRANSPORT, DEFAULT_TRANSPORT)).lower()

    if mode == "local":
        return LocalRegistry(trusted_org_keys=config.get("trusted_org_keys"))

    if mode == "http":
        url = config.get("api_url") or os.getenv(ENV_API_URL, DEFAULT_API_URL)
        timeout = config.get("timeout") or float(os.getenv(ENV_HTTP_TIMEOUT, DEFAULT_HTTP_TIMEOUT))
        return HTTPTransport(url, timeout=float(timeout))

    raise ValueError(f"Unknown transport: {mode}")


__all__ = [
    "BaseTransport",
    "RegistryResponse",
    "HTTPTransport",
    "LocalRegistry",
    "transport_factory",
]
