"""
Receive path: turn fetched messages into display text.

Each message id is resolved once per session. Plaintext messages and
messages with an incomplete envelope are shown verbatim; encrypted ones are
opened with the local private key, and a failure is shown as a fixed
placeholder for that message only.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from clovalink.core.errors import DecryptionError, KeyStoreError
from clovalink.crypto.envelope import decrypt_message
from clovalink.schemas.message import Message

logger = logging.getLogger(__name__)

DECRYPTION_FAILED_PLACEHOLDER = "[Decryption failed - message may be corrupted]"


class DecryptedMessageCache:
    """Append-only map of message id to display text."""

    def __init__(self):
        self._entries: Dict[str, str] = {}
        self._lock = threading.Lock()
        # message id -> lock held while that id is being resolved
        self._pending: Dict[str, threading.Lock] = {}

    def get(self, message_id: str) -> Optional[str]:
        with self._lock:
            return self._entries.get(message_id)

    def put_if_absent(self, message_id: str, text: str) -> str:
        """Store text unless an entry exists; returns the entry that is kept."""
        with self._lock:
            return self._entries.setdefault(message_id, text)

    def get_or_compute(self, message_id: str, compute: Callable[[], str]) -> str:
        """
        Return the entry for message_id, computing and storing it on a miss.

        Concurrent callers for the same id wait for the first one, so compute
        runs at most once per id.
        """
        with self._lock:
            if message_id in self._entries:
                return self._entries[message_id]
            id_lock = self._pending.setdefault(message_id, threading.Lock())

        with id_lock:
            with self._lock:
                if message_id in self._entries:
                    return self._entries[message_id]
            try:
                text = compute()
                with self._lock:
                    return self._entries.setdefault(message_id, text)
            finally:
                with self._lock:
                    self._pending.pop(message_id, None)

    def __contains__(self, message_id: object) -> bool:
        with self._lock:
            return message_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(frozen=True)
class DisplayMessage:
    message: Message
    text: str
    is_mine: bool

    @property
    def id(self) -> str:
        return self.message.id


class MessageDecryptor:

    def __init__(
        self,
        cache: DecryptedMessageCache,
        private_key_provider: Callable[[], Optional[str]],
        decrypt: Callable[[str, str, str, str], str] = decrypt_message,
    ):
        self.cache = cache
        self._private_key_provider = private_key_provider
        self._decrypt = decrypt

    def display_text(self, message: Message) -> str:
        if not message.has_complete_envelope:
            return self.cache.put_if_absent(message.id, message.content)

        return self.cache.get_or_compute(message.id, lambda: self._open(message))

    def resolve(self, messages: Iterable[Message], user_id: str) -> List[DisplayMessage]:
        return [
            DisplayMessage(message=m, text=self.display_text(m), is_mine=m.sender_id == user_id)
            for m in messages
        ]

    def _open(self, message: Message) -> str:
        try:
            private_key = self._private_key_provider()
        except KeyStoreError as e:
            logger.warning("Cannot decrypt message %s: %s", message.id, e)
            return DECRYPTION_FAILED_PLACEHOLDER

        if private_key is None:
            logger.warning("Cannot decrypt message %s: no local private key", message.id)
            return DECRYPTION_FAILED_PLACEHOLDER

        try:
            return self._decrypt(message.content, message.encrypted_key, message.iv, private_key)
        except DecryptionError as e:
            logger.warning("Message %s could not be decrypted: %s", message.id, e)
            return DECRYPTION_FAILED_PLACEHOLDER


def date_label(day: date, today: date) -> str:
    delta = (today - day).days
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Yesterday"
    return day.strftime("%B %d, %Y")


def group_by_date(
    messages: Iterable[DisplayMessage],
    today: Optional[date] = None,
) -> List[Tuple[str, List[DisplayMessage]]]:
    """Group messages by calendar date of creation, keeping send order."""
    today = today or datetime.now().astimezone().date()
    ordered = sorted(messages, key=lambda d: d.message.created_at)

    groups: List[Tuple[str, List[DisplayMessage]]] = []
    current_day = None
    for dm in ordered:
        day = _local_day(dm.message.created_at)
        if day != current_day:
            groups.append((date_label(day, today), []))
            current_day = day
        groups[-1][1].append(dm)
    return groups


def _local_day(ts: datetime) -> date:
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone().date()
