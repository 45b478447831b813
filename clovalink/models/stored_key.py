# clovalink/models/stored_key.py
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Integer, LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clovalink.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredKey(Base):
    __tablename__ = "private_keys"
    __table_args__ = (UniqueConstraint("user_id", "version", name="uq_private_keys_user_version"),)

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Base64 SPKI, as published to the key directory
    public_key: Mapped[str] = mapped_column(Text, nullable=False)
    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)

    # Base64 PKCS#8 bytes, or nonce+ciphertext when sealed with a passphrase
    private_key: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    is_sealed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    key_salt: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    key_kdf_params: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    retired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
