from __future__ import annotations

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from clovalink.crypto.symmetric import b64decode, b64encode


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def load_public_key(public_key_b64: str) -> rsa.RSAPublicKey:
    """Load a base64 DER SubjectPublicKeyInfo key (the directory format)."""
    pub = serialization.load_der_public_key(b64decode(public_key_b64))
    if not isinstance(pub, rsa.RSAPublicKey):
        raise ValueError('Recipient public key must be RSA for OAEP wrapping')
    return pub


def load_private_key(private_key_b64: str) -> rsa.RSAPrivateKey:
    """Load a base64 DER PKCS#8 private key (the local storage format)."""
    priv = serialization.load_der_private_key(b64decode(private_key_b64), password=None)
    if not isinstance(priv, rsa.RSAPrivateKey):
        raise ValueError('Private key must be RSA for OAEP unwrapping')
    return priv


def wrap_key_for_recipient(*, recipient_public_key: str, msg_key: bytes) -> bytes:
    """
    Hybrid encryption: wrap the per-message AES key for one recipient using RSA-OAEP.

    Args:
        recipient_public_key: Recipient's RSA public key (base64 SPKI)
        msg_key: Message key to wrap (32 bytes for AES-256)

    Returns:
        Wrapped message key (RSA ciphertext)
    """
    pub = load_public_key(recipient_public_key)
    return pub.encrypt(msg_key, _oaep())


def unwrap_key_for_recipient(*, recipient_private_key: str, wrapped_key: bytes) -> bytes:
    """
    Hybrid decryption: recover the per-message AES key with the recipient's private key.

    Args:
        recipient_private_key: Recipient's RSA private key (base64 PKCS#8)
        wrapped_key: Wrapped message key (RSA ciphertext)

    Returns:
        Message key (32 bytes for AES-256)
    """
    priv = load_private_key(recipient_private_key)
    return priv.decrypt(wrapped_key, _oaep())


def public_key_to_b64(pub: rsa.RSAPublicKey) -> str:
    return b64encode(pub.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ))


def private_key_to_b64(priv: rsa.RSAPrivateKey) -> str:
    return b64encode(priv.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ))
