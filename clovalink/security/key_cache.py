"""
In-memory cache of unlocked private keys.

Keys are wrapped under a per-process master key while cached, expire after a
TTL and are overwritten before being dropped.
"""
import os
import threading
import time
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidTag

from clovalink.crypto.symmetric import seal, unseal


class UnlockedKeyCache:

    def __init__(self, ttl: int = 300):
        self.ttl = ttl
        self._master_key = os.urandom(32)
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def put(self, user_id: str, private_key: str) -> None:
        with self._lock:
            if user_id in self._entries:
                _secure_erase(self._entries[user_id])

            self._entries[user_id] = {
                "private_key": seal(self._master_key, private_key.encode("ascii")),
                "created_at": time.monotonic(),
            }

    def get(self, user_id: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None

            if time.monotonic() - entry["created_at"] > self.ttl:
                self.clear(user_id)
                return None

            try:
                return unseal(self._master_key, entry["private_key"]).decode("ascii")
            except (InvalidTag, ValueError):
                self.clear(user_id)
                return None

    def clear(self, user_id: str) -> None:
        with self._lock:
            if user_id in self._entries:
                _secure_erase(self._entries[user_id])
                del self._entries[user_id]

    def clear_all(self) -> None:
        with self._lock:
            for user_id in list(self._entries):
                self.clear(user_id)


def _secure_erase(entry: Dict[str, Any]) -> None:
    for key in entry:
        if isinstance(entry[key], bytes):
            entry[key] = os.urandom(len(entry[key]))
