# signet_sdk/transport/transport_http.py
from typing import Any, Dict, Optional

import requests

from signet_sdk.constants import DEFAULT_HTTP_TIMEOUT
from signet_sdk.logger import get_logger
from signet_sdk.transport.transport_base import BaseTransport, Headers, RegistryResponse

log = get_logger("Signet.Transport.HTTP")


class HTTPTransport(BaseTransport):
    """
    HTTP transport for the Signet registry API.

    Bodies are sent as JSON. Network errors are logged and reported as
    status 0 so the agent treats them like any other rejected call.
    """

    name = "http"

    def __init__(self, base_url: str, timeout: float = DEFAULT_HTTP_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url

    @staticmethod
    def _to_response(res) -> RegistryResponse:
        try:
            data = res.json()
        except ValueError:
            data = {"error": res.text}
        return RegistryResponse(status=res.status_code, data=data)

    def _call(self, method: str, path: str, **kwargs) -> RegistryResponse:
        url = self._url(path)
        log.debug(f"[HTTP {method}] → {url}")
        try:
            res = getattr(requests, method.lower())(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.error(f"[HTTP {method}] {url} failed: {e}")
            return RegistryResponse(status=0, data={"error": str(e)})

        if res.status_code == 200:
            log.info(f"[HTTP {method}] {res.status_code} {res.reason} {url}")
        else:
            log.warning(f"[HTTP {method}] {res.status_code}: {res.text}")
        return self._to_response(res)

    def do_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> RegistryResponse:
        return self._call("GET", path, params=params or None)

    def do_post(self, path: str, params: Dict[str, Any], headers: Optional[Headers] = None) -> RegistryResponse:
        return self._call("POST", path, json=params, headers=headers or {})

    def do_patch(self, path: str, params: Dict[str, Any], headers: Optional[Headers] = None) -> RegistryResponse:
        return self._call("PATCH", path, json=params, headers=headers or {})
