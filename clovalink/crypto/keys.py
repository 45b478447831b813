# clovalink/crypto/keys.py
import hashlib
from dataclasses import dataclass

from cryptography.hazmat.primitives.asymmetric import rsa

from clovalink.crypto.asymmetric import private_key_to_b64, public_key_to_b64
from clovalink.crypto.symmetric import b64decode

DEFAULT_KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537


@dataclass(frozen=True)
class KeyPair:
    """
    A user's messaging key pair.

    - public_key: base64 DER SubjectPublicKeyInfo, published to the key directory
    - private_key: base64 DER PKCS#8, kept in the local key store only
    """
    public_key: str
    private_key: str

    def __repr__(self) -> str:
        return f"KeyPair(fingerprint={fingerprint(self.public_key)[:16]})"


def generate_key_pair(key_size: int = DEFAULT_KEY_SIZE) -> KeyPair:
    """Generate an RSA key pair usable for OAEP key wrapping."""
    if key_size < DEFAULT_KEY_SIZE:
        raise ValueError(f"RSA key size must be at least {DEFAULT_KEY_SIZE} bits")

    sk = rsa.generate_private_key(
        public_exponent=PUBLIC_EXPONENT,
        key_size=key_size,
    )

    return KeyPair(
        public_key=public_key_to_b64(sk.public_key()),
        private_key=private_key_to_b64(sk),
    )


def fingerprint(public_key: str) -> str:
    """SHA-256 hex digest of the DER public key."""
    return hashlib.sha256(b64decode(public_key)).hexdigest()
