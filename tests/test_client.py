"""
Tests for the ClovaLink API client
"""

import json
from datetime import datetime, timezone

import pytest
import requests
from requests.adapters import BaseAdapter

from clovalink.api.client import ClovaLinkClient
from clovalink.core.config import Settings
from clovalink.core.errors import ApiError
from clovalink.schemas.channel import ChannelCreateRequest
from clovalink.schemas.message import MessageSendRequest
from tests.fake_api import BASE_URL, DownAdapter


def test_bearer_token_is_sent(api, make_client):
    client = make_client("alice")
    assert client.session.headers["Authorization"] == "Bearer token-alice"
    assert client.fetch_direct_messages("bob") == []


def test_unknown_token_is_unauthorized(api, make_client):
    client = make_client("mallory")

    with pytest.raises(ApiError) as exc:
        client.fetch_conversations()

    assert exc.value.status_code == 401
    assert exc.value.detail == "Unauthorized"


def test_transport_failure_raises_api_error():
    http = requests.Session()
    http.mount(BASE_URL, DownAdapter())
    client = ClovaLinkClient(BASE_URL, token="token-alice", session=http)

    with pytest.raises(ApiError) as exc:
        client.fetch_conversations()

    assert exc.value.status_code is None


def test_from_settings():
    settings = Settings(api_base_url="https://clovalink.example.com/", api_token="abc", request_timeout=3)
    client = ClovaLinkClient.from_settings(settings)

    assert client.base_url == "https://clovalink.example.com"
    assert client.timeout == 3
    assert client.session.headers["Authorization"] == "Bearer abc"
    client.close()


def test_public_key_lookup(api, make_client, bob_keys):
    client = make_client("alice")

    assert client.fetch_public_key("bob") is None
    assert client.fetch_public_key("nobody") is None

    api.users["bob"]["publicKey"] = bob_keys.public_key
    assert client.fetch_public_key("bob") == bob_keys.public_key

    record = client.fetch_key_record("bob")
    assert record.has_key is True
    assert record.name == "Bob Jones"


def test_publish_public_key(api, make_client, alice_keys):
    make_client("alice").publish_public_key(alice_keys.public_key)
    assert api.users["alice"]["publicKey"] == alice_keys.public_key


def test_send_and_fetch(api, make_client):
    alice = make_client("alice")
    sent = alice.send_message(MessageSendRequest(content="hi bob", recipient_id="bob", document_ids=["doc_1"]))

    assert sent.id
    assert sent.sender_id == "alice"
    assert sent.attachments[0].document.name == "report.pdf"
    assert api.calls("POST", "/api/messages")[0]["recipientId"] == "bob"

    fetched = make_client("bob").fetch_direct_messages("alice")
    assert [m.content for m in fetched] == ["hi bob"]
    assert fetched[0].sender.name == "Alice Smith"


def test_conversations_newest_first(api, make_client):
    clock = iter(datetime(2024, 3, 1, 9, minute, tzinfo=timezone.utc) for minute in range(60))
    api.now = lambda: next(clock)
    alice = make_client("alice")
    alice.send_message(MessageSendRequest(content="first", recipient_id="bob"))
    alice.send_message(MessageSendRequest(content="second", recipient_id="bob"))

    assert [m.content for m in alice.fetch_conversations()][0] == "second"


def test_mark_read_skips_empty_list(api, make_client):
    make_client("bob").mark_read([])
    assert api.calls("POST", "/api/messages/mark-read") == []


def test_delete_for_everyone_requires_sender(api, make_client):
    sent = make_client("alice").send_message(MessageSendRequest(content="oops", recipient_id="bob"))

    with pytest.raises(ApiError) as exc:
        make_client("bob").delete_message(sent.id, delete_for_everyone=True)
    assert exc.value.status_code == 403

    assert make_client("alice").delete_message(sent.id, delete_for_everyone=True) is True
    assert make_client("bob").fetch_direct_messages("alice") == []


def test_delete_for_me_only_hides_for_caller(api, make_client):
    sent = make_client("alice").send_message(MessageSendRequest(content="hey", recipient_id="bob"))

    assert make_client("bob").delete_message(sent.id) is False
    assert make_client("bob").fetch_direct_messages("alice") == []
    assert len(make_client("alice").fetch_direct_messages("bob")) == 1


def test_channels(api, make_client):
    alice = make_client("alice")
    channel = alice.create_channel(ChannelCreateRequest(name="Finance", member_ids=["bob"]))

    assert channel.name == "Finance"
    assert sorted(channel.member_ids) == ["alice", "bob"]
    assert [c.id for c in make_client("bob").list_channels()] == [channel.id]


def test_server_error_detail(api, make_client):
    api.fail("/api/messages", 500)

    with pytest.raises(ApiError) as exc:
        make_client("alice").fetch_direct_messages("bob")

    assert exc.value.status_code == 500
    assert "Internal server error" in str(exc.value)


def test_malformed_message_row_raises_api_error(api, make_client):
    api.insert_message(sender_id="bob", recipient_id="alice", content=None)

    with pytest.raises(ApiError) as exc:
        make_client("alice").fetch_direct_messages("bob")

    assert exc.value.status_code == 200
    assert "unexpected payload" in str(exc.value)


class StaticAdapter(BaseAdapter):
    """Answers every request with the same JSON body."""

    def __init__(self, payload):
        super().__init__()
        self.payload = payload

    def send(self, request, **kwargs):
        resp = requests.Response()
        resp.status_code = 200
        resp._content = json.dumps(self.payload).encode("utf-8")
        resp.encoding = "utf-8"
        resp.url = request.url
        resp.request = request
        return resp

    def close(self):
        pass


@pytest.mark.parametrize(
    "payload, call",
    [
        ({"ok": True}, lambda c: c.send_message(MessageSendRequest(content="hi", recipient_id="bob"))),
        ({"ok": True}, lambda c: c.create_channel(ChannelCreateRequest(name="Finance", member_ids=["bob"]))),
        ({"channels": [{"name": "no id"}]}, lambda c: c.list_channels()),
        ({"messages": "nope"}, lambda c: c.fetch_channel_messages("ch_1")),
    ],
)
def test_unexpected_payload_shapes(payload, call):
    http = requests.Session()
    http.mount(BASE_URL, StaticAdapter(payload))
    client = ClovaLinkClient(BASE_URL, token="token-alice", session=http)

    with pytest.raises(ApiError) as exc:
        call(client)

    assert "unexpected payload" in exc.value.detail
