"""
Message envelope encryption.

Each message gets a fresh AES-256-GCM key. The message text is encrypted with
that key and the key itself is wrapped with the recipient's RSA public key
(RSA-OAEP, SHA-256). The envelope sent to the server is the triple
(encrypted_content, encrypted_key, iv), each base64 encoded.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm

from clovalink.core.errors import DecryptionError
from clovalink.crypto.asymmetric import unwrap_key_for_recipient, wrap_key_for_recipient
from clovalink.crypto.symmetric import (
    AESGCM_KEY_LEN,
    aead_decrypt,
    aead_encrypt,
    b64decode,
    b64encode,
    generate_msg_key,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncryptedEnvelope:
    encrypted_content: str
    encrypted_key: str
    iv: str


def encrypt_message(plaintext: str, recipient_public_key: str) -> EncryptedEnvelope:
    """
    Encrypt a message for one recipient.

    Args:
        plaintext: Message text
        recipient_public_key: Recipient's public key as published in the key directory

    Returns:
        EncryptedEnvelope with base64 ciphertext, wrapped key and IV

    Raises:
        ValueError: If the public key cannot be parsed or is not RSA
    """
    k_msg = generate_msg_key()
    enc = aead_encrypt(key=k_msg, plaintext=plaintext.encode('utf-8'))
    wrapped = wrap_key_for_recipient(recipient_public_key=recipient_public_key, msg_key=k_msg)

    return EncryptedEnvelope(
        encrypted_content=b64encode(enc.ciphertext),
        encrypted_key=b64encode(wrapped),
        iv=b64encode(enc.nonce),
    )


def decrypt_message(encrypted_content: str, encrypted_key: str, iv: str, private_key: str) -> str:
    """
    Open an envelope with the local private key.

    Raises:
        DecryptionError: On a key mismatch, a tampered envelope or malformed fields
    """
    try:
        k_msg = unwrap_key_for_recipient(
            recipient_private_key=private_key,
            wrapped_key=b64decode(encrypted_key),
        )
        if len(k_msg) != AESGCM_KEY_LEN:
            raise ValueError('Unwrapped key has wrong length')
        plaintext = aead_decrypt(
            key=k_msg,
            nonce=b64decode(iv),
            ciphertext=b64decode(encrypted_content),
        )
        return plaintext.decode('utf-8')
    except (InvalidTag, ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise DecryptionError(f"Failed to decrypt message: {type(e).__name__}") from e


@lru_cache(maxsize=1)
def is_encryption_available() -> bool:
    """Check once whether the crypto backend can run a full envelope round trip."""
    from clovalink.crypto.selftest import run_selftest

    try:
        run_selftest()
    except (UnsupportedAlgorithm, AssertionError, ValueError) as e:
        logger.warning("Message encryption unavailable: %s", e)
        return False
    return True
