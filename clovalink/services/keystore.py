"""
Local private-key persistence.

The client equivalent of the browser's local storage: private keys live only
here, keyed by user id, and are never sent to the server. With a passphrase
configured the PKCS#8 key is sealed with AES-256-GCM under an Argon2id-derived
key, and the user id is bound as associated data.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from clovalink.core.errors import KeyStoreError
from clovalink.crud import keys as keys_crud
from clovalink.crypto.kdf import default_params, derive_sealing_key, new_salt, params_from_json, params_to_json
from clovalink.crypto.keys import fingerprint
from clovalink.crypto.symmetric import seal, unseal
from clovalink.db.session import make_session_factory
from clovalink.security.key_cache import UnlockedKeyCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredKeyInfo:
    user_id: str
    version: int
    public_key: str
    fingerprint: str
    is_sealed: bool


class KeyStore:

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        passphrase: Optional[str] = None,
        cache: Optional[UnlockedKeyCache] = None,
    ):
        self._session_factory = session_factory
        self._passphrase = passphrase
        self._cache = cache or UnlockedKeyCache()

    @classmethod
    def from_url(cls, database_url: str, passphrase: Optional[str] = None, cache_ttl: int = 300) -> "KeyStore":
        return cls(make_session_factory(database_url), passphrase=passphrase, cache=UnlockedKeyCache(ttl=cache_ttl))

    def store_private_key(self, user_id: str, private_key: str, public_key: str) -> StoredKeyInfo:
        """Persist a freshly generated key pair as the user's active key."""
        fp = fingerprint(public_key)
        raw = private_key.encode("ascii")

        salt = None
        params_json = None
        if self._passphrase:
            params = default_params()
            salt = new_salt(params)
            kek = derive_sealing_key(self._passphrase, salt, params)
            raw = seal(kek, raw, aad=user_id.encode("utf-8"))
            params_json = params_to_json(params)

        try:
            with self._session_factory() as db:
                row = keys_crud.store_key(
                    db,
                    user_id=user_id,
                    public_key=public_key,
                    fingerprint=fp,
                    private_key=raw,
                    is_sealed=salt is not None,
                    key_salt=salt,
                    key_kdf_params=params_json,
                )
                info = _info(row)
        except SQLAlchemyError as e:
            raise KeyStoreError(f"Failed to store private key for user {user_id}") from e

        self._cache.put(user_id, private_key)
        logger.info("Stored key version %s for user %s", info.version, user_id)
        return info

    def get_private_key(self, user_id: str) -> Optional[str]:
        """
        Return the user's active private key, or None when none is stored.

        Raises:
            KeyStoreError: If the key store cannot be read, or a sealed key exists
                but cannot be unlocked
        """
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        try:
            with self._session_factory() as db:
                row = keys_crud.get_active_key(db, user_id)
        except SQLAlchemyError as e:
            raise KeyStoreError(f"Failed to read private key for user {user_id}") from e

        if row is None:
            return None

        if not row.is_sealed:
            private_key = row.private_key.decode("ascii")
        else:
            private_key = self._unseal(row.user_id, row.private_key, row.key_salt, row.key_kdf_params)

        self._cache.put(user_id, private_key)
        return private_key

    def get_key_info(self, user_id: str) -> Optional[StoredKeyInfo]:
        try:
            with self._session_factory() as db:
                row = keys_crud.get_active_key(db, user_id)
                return _info(row) if row is not None else None
        except SQLAlchemyError as e:
            raise KeyStoreError(f"Failed to read key info for user {user_id}") from e

    def key_history(self, user_id: str) -> list[StoredKeyInfo]:
        with self._session_factory() as db:
            return [_info(row) for row in keys_crud.list_keys(db, user_id)]

    def clear_private_key(self, user_id: str) -> None:
        self._cache.clear(user_id)
        with self._session_factory() as db:
            removed = keys_crud.clear_keys(db, user_id)
        logger.info("Cleared %s stored key(s) for user %s", removed, user_id)

    def _unseal(self, user_id: str, blob: bytes, salt: Optional[bytes], params_json: Optional[str]) -> str:
        if not self._passphrase:
            raise KeyStoreError(f"Private key for user {user_id} is sealed and no passphrase is configured")
        if salt is None or params_json is None:
            raise KeyStoreError(f"Sealed private key for user {user_id} has no KDF parameters")

        try:
            kek = derive_sealing_key(self._passphrase, salt, params_from_json(params_json))
            return unseal(kek, blob, aad=user_id.encode("utf-8")).decode("ascii")
        except (InvalidTag, ValueError) as e:
            raise KeyStoreError(f"Failed to unlock private key for user {user_id}") from e


def _info(row) -> StoredKeyInfo:
    return StoredKeyInfo(
        user_id=row.user_id,
        version=row.version,
        public_key=row.public_key,
        fingerprint=row.fingerprint,
        is_sealed=row.is_sealed,
    )
