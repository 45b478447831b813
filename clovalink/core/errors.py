"""
Exception hierarchy for the messaging client.

Background work (polling, per-message decryption) catches these at the
operation boundary and logs them. User-initiated actions let them reach the
caller, which decides how to alert the user.
"""
from __future__ import annotations

from typing import Optional


class ClovaLinkError(Exception):
    """Base class for every error raised by this package."""


class ApiError(ClovaLinkError):
    """Non-2xx response or transport failure talking to the ClovaLink API."""

    def __init__(self, status_code: Optional[int], detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code or 'network'}: {detail}")


class EncryptionUnavailableError(ClovaLinkError):
    """The cryptographic backend cannot perform RSA-OAEP / AES-GCM."""


class EncryptionNotReadyError(ClovaLinkError):
    """Key provisioning has not completed; encrypted sending must wait."""


class EncryptionRequiredError(ClovaLinkError):
    """A direct message would have been sent unencrypted while encryption is required."""


class DecryptionError(ClovaLinkError):
    """Envelope could not be opened (wrong key, tampered or malformed data)."""


class KeyStoreError(ClovaLinkError):
    """Local key store could not read or unlock a stored private key."""


class OrphanedKeyError(ClovaLinkError):
    """
    The local private key is gone but the key directory still publishes a
    public key for this user. Messages encrypted under that key are lost.
    """

    def __init__(self, user_id: str, published_fingerprint: Optional[str] = None):
        self.user_id = user_id
        self.published_fingerprint = published_fingerprint
        super().__init__(f"Private key for user {user_id} is missing but a public key is still published")


class NoConversationSelectedError(ClovaLinkError):
    """Operation needs an active direct conversation or channel."""


class SendInProgressError(ClovaLinkError):
    """A send is already running for this session."""
