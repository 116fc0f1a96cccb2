import pytest

from signet_sdk.client import SignetClient
from signet_sdk.keys import KeyPair
from signet_sdk.transport.transport_local import LocalRegistry


@pytest.fixture
def registry():
    return LocalRegistry()


@pytest.fixture
def org_keys():
    return KeyPair.generate().export_keys()


@pytest.fixture
def client(registry):
    return SignetClient(registry)


@pytest.fixture
def agent(client, org_keys):
    a = client.create_agent()
    a.set_org_keys(*org_keys)
    return a


@pytest.fixture
def make_agent(client, org_keys):
    def _make():
        a = client.create_agent()
        a.set_org_keys(*org_keys)
        return a
    return _make
