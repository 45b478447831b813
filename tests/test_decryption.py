"""
Tests for the receive path building blocks
"""

import threading
import time
from datetime import date, datetime

from clovalink.core.errors import DecryptionError, KeyStoreError
from clovalink.schemas.message import Message
from clovalink.services.decryption import (
    DECRYPTION_FAILED_PLACEHOLDER,
    DecryptedMessageCache,
    DisplayMessage,
    MessageDecryptor,
    date_label,
    group_by_date,
)


def make_message(message_id="msg_1", created_at=None, **overrides) -> Message:
    fields = {
        "id": message_id,
        "content": "Y2lwaGVy",
        "encrypted_key": "a2V5",
        "iv": "aXY=",
        "is_encrypted": True,
        "sender_id": "bob",
        "recipient_id": "alice",
        "created_at": created_at or datetime(2024, 3, 1, 10, 0).astimezone(),
    }
    fields.update(overrides)
    return Message(**fields)


class FakeDecrypt:
    def __init__(self, result="plain", error=None):
        self.result = result
        self.error = error
        self.calls = 0

    def __call__(self, content, encrypted_key, iv, private_key):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


def test_cache_keeps_first_entry():
    cache = DecryptedMessageCache()

    assert cache.put_if_absent("msg_1", "first") == "first"
    assert cache.put_if_absent("msg_1", "second") == "first"
    assert cache.get("msg_1") == "first"
    assert "msg_1" in cache
    assert len(cache) == 1


def test_decrypts_once_and_caches():
    decrypt = FakeDecrypt("hello")
    decryptor = MessageDecryptor(DecryptedMessageCache(), lambda: "private", decrypt=decrypt)
    msg = make_message()

    assert decryptor.display_text(msg) == "hello"
    assert decryptor.display_text(msg) == "hello"
    assert decrypt.calls == 1


def test_plaintext_message_is_not_decrypted():
    decrypt = FakeDecrypt()
    decryptor = MessageDecryptor(DecryptedMessageCache(), lambda: "private", decrypt=decrypt)
    msg = make_message(content="just text", encrypted_key=None, iv=None, is_encrypted=False)

    assert decryptor.display_text(msg) == "just text"
    assert decrypt.calls == 0


def test_failure_is_cached_as_placeholder():
    decrypt = FakeDecrypt(error=DecryptionError("bad tag"))
    decryptor = MessageDecryptor(DecryptedMessageCache(), lambda: "private", decrypt=decrypt)
    msg = make_message()

    assert decryptor.display_text(msg) == DECRYPTION_FAILED_PLACEHOLDER
    assert decryptor.display_text(msg) == DECRYPTION_FAILED_PLACEHOLDER
    assert decrypt.calls == 1


def test_missing_private_key_shows_placeholder():
    decrypt = FakeDecrypt()
    decryptor = MessageDecryptor(DecryptedMessageCache(), lambda: None, decrypt=decrypt)

    assert decryptor.display_text(make_message()) == DECRYPTION_FAILED_PLACEHOLDER
    assert decrypt.calls == 0


def test_locked_key_store_shows_placeholder():
    def locked():
        raise KeyStoreError("wrong passphrase")

    decryptor = MessageDecryptor(DecryptedMessageCache(), locked, decrypt=FakeDecrypt())

    assert decryptor.display_text(make_message()) == DECRYPTION_FAILED_PLACEHOLDER


def test_resolve_marks_own_messages():
    decryptor = MessageDecryptor(DecryptedMessageCache(), lambda: "private", decrypt=FakeDecrypt("x"))
    mine = make_message("msg_1", sender_id="alice", recipient_id="bob")
    theirs = make_message("msg_2")

    display = decryptor.resolve([mine, theirs], "alice")

    assert [d.is_mine for d in display] == [True, False]
    assert [d.id for d in display] == ["msg_1", "msg_2"]


def test_date_labels():
    today = date(2024, 3, 10)

    assert date_label(date(2024, 3, 10), today) == "Today"
    assert date_label(date(2024, 3, 9), today) == "Yesterday"
    assert date_label(date(2024, 3, 1), today) == "March 01, 2024"


def test_group_by_date_orders_and_labels():
    def dm(message_id, when):
        return DisplayMessage(make_message(message_id, created_at=when.astimezone()), message_id, False)

    messages = [
        dm("c", datetime(2024, 3, 10, 9, 0)),
        dm("a", datetime(2024, 3, 1, 18, 0)),
        dm("b", datetime(2024, 3, 9, 8, 0)),
        dm("d", datetime(2024, 3, 10, 7, 30)),
    ]

    groups = group_by_date(messages, today=date(2024, 3, 10))

    assert [label for label, _ in groups] == ["March 01, 2024", "Yesterday", "Today"]
    assert [d.id for d in groups[2][1]] == ["d", "c"]


def test_group_by_date_empty():
    assert group_by_date([]) == []


def test_concurrent_callers_decrypt_once():
    """Test two threads resolving the same message share one decryption."""
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_decrypt(content, encrypted_key, iv, private_key):
        calls.append(content)
        started.set()
        release.wait(5)
        return "hello"

    decryptor = MessageDecryptor(DecryptedMessageCache(), lambda: "private", decrypt=slow_decrypt)
    msg = make_message()
    results = []

    def resolve():
        results.append(decryptor.display_text(msg))

    first = threading.Thread(target=resolve)
    second = threading.Thread(target=resolve)
    first.start()
    assert started.wait(5)
    second.start()
    # let the second caller reach the cache while the first is still decrypting
    time.sleep(0.2)
    release.set()
    first.join(5)
    second.join(5)

    assert results == ["hello", "hello"]
    assert len(calls) == 1


def test_get_or_compute_runs_once():
    cache = DecryptedMessageCache()
    computed = []

    def compute():
        computed.append(1)
        return "text"

    assert cache.get_or_compute("msg_1", compute) == "text"
    assert cache.get_or_compute("msg_1", compute) == "text"
    assert computed == [1]
