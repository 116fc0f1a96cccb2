import json

import pytest
import requests

from signet_sdk.crypto import sign_payload
from signet_sdk.keys import KeyPair
from signet_sdk.payload import build_payload
from signet_sdk.transport import transport_factory
from signet_sdk.transport.transport_base import RegistryResponse
from signet_sdk.transport.transport_http import HTTPTransport
from signet_sdk.transport.transport_local import LocalRegistry
from signet_sdk.utils import new_guid

# CMD Line Usage: pytest -v -s --log-cli-level=DEBUG tests/test_transport.py


class _FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self.reason = "OK" if status_code == 200 else "ERR"
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


def test_transport_factory_modes(monkeypatch):
    """transport_factory picks the adapter from config, then SIGNET_TRANSPORT."""
    monkeypatch.delenv("SIGNET_TRANSPORT", raising=False)
    monkeypatch.delenv("SIGNET_API_URL", raising=False)
    default = transport_factory()
    assert isinstance(default, HTTPTransport)
    assert default.base_url == "http://localhost:1337"

    monkeypatch.setenv("SIGNET_TRANSPORT", "local")
    assert isinstance(transport_factory(), LocalRegistry)

    monkeypatch.setenv("SIGNET_API_URL", "https://signet.example.com/")
    monkeypatch.setenv("SIGNET_HTTP_TIMEOUT", "3")
    http = transport_factory({"transport": "http"})
    assert http.base_url == "https://signet.example.com"
    assert http.timeout == 3.0

    with pytest.raises(ValueError):
        transport_factory({"transport": "carrier-pigeon"})


def test_http_post_sends_json_and_headers(monkeypatch):
    calls = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.update(url=url, json=json, headers=headers, timeout=timeout)
        return _FakeResponse(200, {"guid": "g-1"})

    monkeypatch.setattr(requests, "post", fake_post)
    t = HTTPTransport("http://registry:1337/", timeout=2)
    resp = t.do_post("/entity/", {"signed_payload": "{}"}, {"X-Org-Key": "k="})

    assert resp == RegistryResponse(200, {"guid": "g-1"})
    assert resp.ok
    assert calls["url"] == "http://registry:1337/entity/"
    assert calls["json"] == {"signed_payload": "{}"}
    assert calls["headers"] == {"X-Org-Key": "k="}
    assert calls["timeout"] == 2


def test_http_patch_non_200_is_failure(monkeypatch, caplog):
    monkeypatch.setattr(requests, "patch", lambda url, **kw: _FakeResponse(409, text="stale prev_sign"))
    resp = HTTPTransport("http://registry:1337").do_patch("/entity/update?guid=g", {})
    assert not resp.ok
    assert resp.status == 409
    assert resp.data == {"error": "stale prev_sign"}
    assert "[HTTP PATCH] 409" in caplog.text


def test_http_network_error_is_status_zero(monkeypatch):
    def boom(url, **kw):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests, "get", boom)
    resp = HTTPTransport("http://registry:1337").do_get("/entity?guid=g")
    assert resp.status == 0
    assert "connection refused" in resp.data["error"]


def test_local_registry_unknown_routes_and_entities():
    reg = LocalRegistry()
    assert reg.do_get("/nowhere").status == 404
    assert reg.do_get("/entity").status == 400
    assert reg.do_get("/entity?guid=missing").status == 404
    assert reg.do_post("/entity/", {"signed_payload": "{not json"}).status == 400
    assert reg.do_post("/entity/", {"signed_payload": {"payload": {}, "sign": "x="}}).status == 400
    assert reg.do_patch("/entity/update?guid=missing", {}).status == 404
    assert reg.do_patch("/entity/other", {}).status == 404
    assert reg.healthz() == {"status": "ok", "transport": "local"}


def test_local_registry_requires_org_headers(agent, registry):
    entity = agent.create_entity().unwrap()
    key_pair = agent.get_ownership_key_pair(entity.guid)
    signed = agent.get_signed_payload(entity.guid, key_pair, entity.prev_sign)
    resp = registry.do_patch(f"/entity/update?guid={entity.guid}", {"signed_payload": signed.to_json()})
    assert resp.status == 401

    headers = {"X-Org-Key": agent.org_public_key, "X-Org-Sign": "AAAA="}
    resp = registry.do_patch(f"/entity/update?guid={entity.guid}", {"signed_payload": signed.to_json()}, headers)
    assert resp.status == 401


def test_local_registry_accepts_object_bodies(agent, registry):
    entity = agent.create_entity().unwrap()
    key_pair = agent.get_ownership_key_pair(entity.guid)
    signed = agent.get_signed_payload(entity.guid, key_pair, entity.prev_sign)
    headers = {"X-Org-Key": agent.org_public_key, "X-Org-Sign": agent.get_org_signature(signed.to_dict())}
    resp = registry.do_patch(f"/entity/update?guid={entity.guid}", {"signed_payload": signed.to_dict()}, headers)
    assert resp.ok
    assert resp.data["signature"] == signed.sign


def test_local_registry_rejects_malformed_xid_entries(agent, registry):
    kp = KeyPair.generate()
    payload = build_payload(new_guid(), kp, "")
    payload["data"]["xids"] = ["dn:example.com:x1"]
    signed = sign_payload(payload, kp)
    headers = {"X-Org-Key": agent.org_public_key, "X-Org-Sign": agent.get_org_signature(signed.to_dict())}
    resp = registry.do_post("/entity/", {"signed_payload": signed.to_json()}, headers)
    assert resp.status == 400
    assert "XID" in resp.data["error"]

    entity = agent.create_entity().unwrap()
    key_pair = agent.get_ownership_key_pair(entity.guid)
    payload = build_payload(entity.guid, key_pair, entity.prev_sign)
    payload["data"]["channels"] = "REST#v1#abc123"
    signed = sign_payload(payload, key_pair)
    headers = {"X-Org-Key": agent.org_public_key, "X-Org-Sign": agent.get_org_signature(signed.to_dict())}
    resp = registry.do_patch(f"/entity/update?guid={entity.guid}", {"signed_payload": signed.to_json()}, headers)
    assert resp.status == 400
    assert registry.entities[entity.guid].channel is None
