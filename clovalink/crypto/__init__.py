from .envelope import EncryptedEnvelope, decrypt_message, encrypt_message, is_encryption_available
from .keys import KeyPair, fingerprint, generate_key_pair

__all__ = [
    "EncryptedEnvelope",
    "KeyPair",
    "decrypt_message",
    "encrypt_message",
    "fingerprint",
    "generate_key_pair",
    "is_encryption_available",
]
