from .conversation import ATTACHMENT_PLACEHOLDER, MessagingSession
from .decryption import (
    DECRYPTION_FAILED_PLACEHOLDER,
    DecryptedMessageCache,
    DisplayMessage,
    MessageDecryptor,
    group_by_date,
)
from .keystore import KeyStore, StoredKeyInfo
from .poller import ConversationPoller
from .provisioning import KeyProvisioner, ProvisioningResult

__all__ = [
    "ATTACHMENT_PLACEHOLDER",
    "DECRYPTION_FAILED_PLACEHOLDER",
    "ConversationPoller",
    "DecryptedMessageCache",
    "DisplayMessage",
    "KeyProvisioner",
    "KeyStore",
    "MessageDecryptor",
    "MessagingSession",
    "ProvisioningResult",
    "StoredKeyInfo",
    "group_by_date",
]
