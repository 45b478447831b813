# clovalink/crypto/kdf.py
"""
Passphrase-based key derivation for sealing private keys at rest.

The Argon2id cost parameters are stored next to each sealed key so a key
sealed under older parameters can still be opened after the defaults change.
"""
import json
import os
from dataclasses import asdict, dataclass, fields

from argon2.low_level import Type, hash_secret_raw

# Lower bounds accepted when reading parameters back from the key store
MIN_TIME_COST = 1
MIN_MEMORY_COST = 8 * 1024  # KiB
MIN_SALT_LEN = 16


@dataclass(frozen=True)
class SealingParams:
    time_cost: int = 3
    memory_cost: int = 64 * 1024  # KiB (64 MiB)
    parallelism: int = 1
    hash_len: int = 32  # AES-256 key
    salt_len: int = 16
    type: str = "argon2id"

    def validate(self) -> None:
        if self.type != "argon2id":
            raise ValueError(f"Unsupported KDF type: {self.type}")
        if self.time_cost < MIN_TIME_COST or self.memory_cost < MIN_MEMORY_COST:
            raise ValueError("KDF cost parameters are below the accepted minimum")
        if self.salt_len < MIN_SALT_LEN:
            raise ValueError(f"KDF salt must be at least {MIN_SALT_LEN} bytes")
        if self.hash_len != 32:
            raise ValueError("Sealing key must be 32 bytes")


def default_params() -> SealingParams:
    return SealingParams()


def params_to_json(params: SealingParams) -> str:
    return json.dumps(asdict(params), separators=(",", ":"))


def params_from_json(s: str) -> SealingParams:
    """Parse stored parameters; unknown fields are ignored."""
    d = json.loads(s)
    known = {f.name for f in fields(SealingParams)}
    params = SealingParams(**{k: v for k, v in d.items() if k in known})
    params.validate()
    return params


def new_salt(params: SealingParams) -> bytes:
    return os.urandom(params.salt_len)


def derive_sealing_key(passphrase: str, salt: bytes, params: SealingParams) -> bytes:
    """Derive the key-encryption key that seals a user's private key."""
    if not isinstance(passphrase, str) or not passphrase:
        raise ValueError("Passphrase required")
    params.validate()
    if len(salt) != params.salt_len:
        raise ValueError("Salt length does not match KDF parameters")

    return hash_secret_raw(
        secret=passphrase.encode("utf-8"),
        salt=salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost,
        parallelism=params.parallelism,
        hash_len=params.hash_len,
        type=Type.ID,
    )
