from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from clovalink.api.client import ClovaLinkClient
from clovalink.core.errors import ClovaLinkError, EncryptionUnavailableError, OrphanedKeyError
from clovalink.core.logging_config import log_key_generated, log_orphaned_key
from clovalink.crypto.envelope import is_encryption_available
from clovalink.crypto.keys import DEFAULT_KEY_SIZE, fingerprint, generate_key_pair
from clovalink.services.keystore import KeyStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisioningResult:
    ready: bool
    generated: bool = False
    rekeyed: bool = False
    fingerprint: Optional[str] = None
    error: Optional[str] = None


class KeyProvisioner:
    """
    Makes sure the signed-in user has a usable key pair.

    A locally stored private key means nothing to do. Otherwise a new pair is
    generated, the private half stored locally and the public half published.
    If the directory still holds an older public key for the user, the old
    private key was lost and every message encrypted under it is unreadable;
    that is reported (`rekeyed`) or refused, depending on `on_lost_key`.
    """

    def __init__(
        self,
        client: ClovaLinkClient,
        keystore: KeyStore,
        key_size: int = DEFAULT_KEY_SIZE,
        on_lost_key: str = "regenerate",
        capability_check: Callable[[], bool] = is_encryption_available,
    ):
        self.client = client
        self.keystore = keystore
        self.key_size = key_size
        self.on_lost_key = on_lost_key
        self.capability_check = capability_check

    def ensure_key_pair(self, user_id: str) -> ProvisioningResult:
        """
        Raises:
            OrphanedKeyError: Only when on_lost_key is "fail" and a stale key is published
        """
        try:
            if not self.capability_check():
                raise EncryptionUnavailableError("Encryption is not available in this environment")

            if self.keystore.get_private_key(user_id) is not None:
                info = self.keystore.get_key_info(user_id)
                return ProvisioningResult(ready=True, fingerprint=info.fingerprint if info else None)

            published = self.client.fetch_public_key(user_id)
            rekeyed = False
            if published:
                published_fp = fingerprint(published)
                if self.on_lost_key == "fail":
                    raise OrphanedKeyError(user_id, published_fp)
                log_orphaned_key(user_id, published_fp)
                rekeyed = True

            kp = generate_key_pair(self.key_size)
            info = self.keystore.store_private_key(user_id, kp.private_key, kp.public_key)
            try:
                self.client.publish_public_key(kp.public_key)
            except ClovaLinkError:
                # An unpublished local key would pass the next check and never be published
                self.keystore.clear_private_key(user_id)
                raise
            log_key_generated(user_id, info.fingerprint)

            return ProvisioningResult(ready=True, generated=True, rekeyed=rekeyed, fingerprint=info.fingerprint)
        except OrphanedKeyError:
            raise
        except (ClovaLinkError, ValueError) as e:
            logger.error("Key provisioning failed for user %s: %s", user_id, e)
            return ProvisioningResult(ready=False, error=str(e))
