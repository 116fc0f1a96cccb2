from signet_sdk.agent import Agent
from signet_sdk.client import SignetClient
from signet_sdk.errors import RegistryRejected
from signet_sdk.transport.transport_local import LocalRegistry


def test_client_builds_transport_from_config():
    client = SignetClient(config={"transport": "local"})
    assert isinstance(client.transport, LocalRegistry)
    assert isinstance(client.create_agent(), Agent)
    assert client.create_agent().transport is client.transport


def test_agents_are_independent(client):
    a, b = client.create_agent(), client.create_agent()
    assert a.key_chain is not b.key_chain


def test_fetch_entity_by_guid(agent, client):
    created = agent.create_entity(channel=("REST", "v1", "abc123")).unwrap()
    fetched = client.fetch_entity(created.guid).unwrap()
    assert fetched.guid == created.guid
    assert fetched.verkey == created.verkey
    assert fetched.prev_sign == created.prev_sign
    assert fetched.channel == "REST#v1#abc123"
    assert fetched.entity_json


def test_fetch_entity_by_xid(agent, client):
    created = agent.create_entity(xid=("dn", "example.com", "x1")).unwrap()
    fetched = client.fetch_entity_by_xid("dn", "example.com", "x1").unwrap()
    assert fetched.guid == created.guid
    assert fetched.xid == "dn:example.com:x1"


def test_fetch_missing_entity_fails(client):
    res = client.fetch_entity("missing")
    assert not res
    assert isinstance(res.error, RegistryRejected)
    assert res.error.status == 404
    assert not client.fetch_entity_by_xid("dn", "example.com", "nobody")
