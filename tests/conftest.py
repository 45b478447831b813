"""
Pytest fixtures for ClovaLink client tests
"""

import os

import pytest
import requests

# Keep a developer's .env or shell from leaking into Settings()
for _name in list(os.environ):
    if _name.startswith("CLOVALINK_"):
        del os.environ[_name]

from clovalink.api.client import ClovaLinkClient
from clovalink.core.config import Settings
from clovalink.crypto.keys import generate_key_pair
from clovalink.services.conversation import MessagingSession
from clovalink.services.keystore import KeyStore
from tests.fake_api import BASE_URL, FakeApiAdapter, FakeClovaLinkApi


@pytest.fixture(scope="session")
def alice_keys():
    """RSA key pair reused across tests (generation is slow)."""
    return generate_key_pair()


@pytest.fixture(scope="session")
def bob_keys():
    return generate_key_pair()


@pytest.fixture
def api() -> FakeClovaLinkApi:
    """Fake API with two employees, Alice and Bob."""
    fake = FakeClovaLinkApi()
    fake.add_user("alice", "Alice Smith")
    fake.add_user("bob", "Bob Jones")
    fake.add_document("doc_1", "report.pdf", "application/pdf", 2048)
    return fake


@pytest.fixture
def make_client(api):
    """Build a ClovaLinkClient for a user, wired to the fake API."""
    clients = []

    def _make(user_id: str) -> ClovaLinkClient:
        http = requests.Session()
        http.mount(BASE_URL, FakeApiAdapter(api))
        client = ClovaLinkClient(BASE_URL, token=f"token-{user_id}", session=http)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def keystore() -> KeyStore:
    """Unsealed in-memory key store."""
    return KeyStore.from_url("sqlite://")


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url=BASE_URL, keystore_url="sqlite://")


@pytest.fixture
def make_session(make_client, settings):
    """
    Build a MessagingSession for a user.

    Pass `keys` to pre-load the local key store and publish the public key,
    which skips key generation during start().
    """

    def _make(user_id: str, keys=None, start: bool = True, **overrides) -> MessagingSession:
        client = make_client(user_id)
        store = KeyStore.from_url("sqlite://")
        if keys is not None:
            store.store_private_key(user_id, keys.private_key, keys.public_key)
            client.publish_public_key(keys.public_key)
        session_settings = settings.model_copy(update=overrides) if overrides else settings
        session = MessagingSession(user_id, client, store, settings=session_settings)
        if start:
            session.start()
        return session

    return _make


@pytest.fixture
def alice(make_session, alice_keys) -> MessagingSession:
    return make_session("alice", keys=alice_keys)


@pytest.fixture
def bob(make_session, bob_keys) -> MessagingSession:
    return make_session("bob", keys=bob_keys)
