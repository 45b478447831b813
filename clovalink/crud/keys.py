# clovalink/crud/keys.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from clovalink.models.stored_key import StoredKey


def get_active_key(db: Session, user_id: str) -> StoredKey | None:
    stmt = select(StoredKey).where(StoredKey.user_id == user_id, StoredKey.is_active.is_(True))
    return db.execute(stmt).scalar_one_or_none()


def list_keys(db: Session, user_id: str) -> list[StoredKey]:
    stmt = select(StoredKey).where(StoredKey.user_id == user_id).order_by(StoredKey.version)
    return list(db.execute(stmt).scalars())


def store_key(
    db: Session,
    *,
    user_id: str,
    public_key: str,
    fingerprint: str,
    private_key: bytes,
    is_sealed: bool = False,
    key_salt: bytes | None = None,
    key_kdf_params: str | None = None,
) -> StoredKey:
    """Store a new active key for the user, retiring the previous one."""
    current_version = db.execute(
        select(func.max(StoredKey.version)).where(StoredKey.user_id == user_id)
    ).scalar_one()

    db.execute(
        update(StoredKey)
        .where(StoredKey.user_id == user_id, StoredKey.is_active.is_(True))
        .values(is_active=False, retired_at=datetime.now(timezone.utc))
    )

    k = StoredKey(
        user_id=user_id,
        version=(current_version or 0) + 1,
        public_key=public_key,
        fingerprint=fingerprint,
        private_key=private_key,
        is_sealed=is_sealed,
        key_salt=key_salt,
        key_kdf_params=key_kdf_params,
        is_active=True,
    )

    db.add(k)
    db.commit()
    db.refresh(k)
    return k


def clear_keys(db: Session, user_id: str) -> int:
    result = db.execute(delete(StoredKey).where(StoredKey.user_id == user_id))
    db.commit()
    return result.rowcount or 0
