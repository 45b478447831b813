from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM


AESGCM_KEY_LEN = 32
AESGCM_NONCE_LEN = 12
AESGCM_TAG_LEN = 16


@dataclass(frozen=True)
class AeadCiphertext:
    nonce: bytes
    ciphertext: bytes


def generate_msg_key() -> bytes:
    return AESGCM.generate_key(bit_length=256)


def aead_encrypt(*, key: bytes, plaintext: bytes, aad: Optional[bytes] = None) -> AeadCiphertext:
    if len(key) != AESGCM_KEY_LEN:
        raise ValueError('Invalid AES-GCM key length')
    nonce = os.urandom(AESGCM_NONCE_LEN)
    ct = AESGCM(key).encrypt(nonce, plaintext, aad)
    return AeadCiphertext(nonce=nonce, ciphertext=ct)


def aead_decrypt(*, key: bytes, nonce: bytes, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
    if len(key) != AESGCM_KEY_LEN:
        raise ValueError('Invalid AES-GCM key length')
    if len(nonce) != AESGCM_NONCE_LEN:
        raise ValueError('Invalid AES-GCM nonce length')
    return AESGCM(key).decrypt(nonce, ciphertext, aad)


def seal(key: bytes, plaintext: bytes, aad: bytes = b"") -> bytes:
    """Encrypt into a single ``nonce || ciphertext || tag`` blob."""
    out = aead_encrypt(key=key, plaintext=plaintext, aad=aad)
    return out.nonce + out.ciphertext


def unseal(key: bytes, blob: bytes, aad: bytes = b"") -> bytes:
    if len(blob) < AESGCM_NONCE_LEN + AESGCM_TAG_LEN:
        raise ValueError("Invalid sealed blob")
    return aead_decrypt(
        key=key,
        nonce=blob[:AESGCM_NONCE_LEN],
        ciphertext=blob[AESGCM_NONCE_LEN:],
        aad=aad,
    )


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def b64decode(data: str) -> bytes:
    try:
        return base64.b64decode(data.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"Invalid base64 data: {e}") from e
