"""
Conversation orchestration for one signed-in user.

MessagingSession is the explicit session context: it owns the decrypted
message cache, the encryption-readiness flag and the active selection, and
drives key provisioning, the send path and the receive path.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

from clovalink.api.client import ClovaLinkClient
from clovalink.core.config import Settings
from clovalink.core.errors import (
    ApiError,
    ClovaLinkError,
    EncryptionNotReadyError,
    EncryptionRequiredError,
    NoConversationSelectedError,
    SendInProgressError,
)
from clovalink.core.logging_config import log_plaintext_fallback
from clovalink.crypto.envelope import encrypt_message
from clovalink.schemas.channel import Channel, ChannelCreateRequest, Selection
from clovalink.schemas.message import Message, MessageSendRequest
from clovalink.security.sanitizer import InputSanitizer
from clovalink.services.decryption import DecryptedMessageCache, DisplayMessage, MessageDecryptor
from clovalink.services.keystore import KeyStore
from clovalink.services.provisioning import KeyProvisioner, ProvisioningResult

logger = logging.getLogger(__name__)

ATTACHMENT_PLACEHOLDER = "📎 Attachment"

MessagesListener = Callable[[List[DisplayMessage]], None]


class MessagingSession:

    def __init__(
        self,
        user_id: str,
        client: ClovaLinkClient,
        keystore: KeyStore,
        settings: Optional[Settings] = None,
        provisioner: Optional[KeyProvisioner] = None,
        listener: Optional[MessagesListener] = None,
    ):
        self.user_id = user_id
        self.client = client
        self.keystore = keystore
        self.settings = settings or Settings()
        self.provisioner = provisioner or KeyProvisioner(
            client,
            keystore,
            key_size=self.settings.rsa_key_size,
            on_lost_key=self.settings.on_lost_key,
        )
        self.listener = listener

        self.cache = DecryptedMessageCache()
        self.decryptor = MessageDecryptor(self.cache, lambda: self.keystore.get_private_key(self.user_id))

        self.encryption_ready = False
        self.provisioning: Optional[ProvisioningResult] = None
        self.selection: Optional[Selection] = None
        self.messages: List[DisplayMessage] = []
        self.conversations: List[Message] = []
        self.channels: List[Channel] = []

        self._generation = 0
        self._sending = False
        self._lock = threading.RLock()

    @property
    def require_encryption(self) -> bool:
        return self.settings.require_encryption

    # --- lifecycle ---

    def start(self) -> ProvisioningResult:
        """Provision keys, then load the conversation and channel lists."""
        result = self.provisioner.ensure_key_pair(self.user_id)
        with self._lock:
            self.provisioning = result
            self.encryption_ready = result.ready
        if not result.ready:
            logger.warning("Encryption not ready for user %s: %s", self.user_id, result.error)

        self.load_conversations()
        self.load_channels()
        return result

    def load_conversations(self) -> List[Message]:
        try:
            conversations = self.client.fetch_conversations()
        except ApiError as e:
            logger.error("Error fetching conversations: %s", e)
            return self.conversations
        with self._lock:
            self.conversations = conversations
        return conversations

    def load_channels(self) -> List[Channel]:
        try:
            channels = self.client.list_channels()
        except ApiError as e:
            logger.error("Error fetching channels: %s", e)
            return self.channels
        with self._lock:
            self.channels = channels
        return channels

    # --- selection ---

    def select_direct(self, recipient_id: str) -> bool:
        return self._select(Selection("direct", recipient_id))

    def select_channel(self, channel_id: str) -> bool:
        return self._select(Selection("groups", channel_id))

    def clear_selection(self) -> None:
        with self._lock:
            self._generation += 1
            self.selection = None
            self.messages = []

    def _select(self, selection: Selection) -> bool:
        with self._lock:
            self._generation += 1
            self.selection = selection
            self.messages = []
        return self.refresh()

    # --- receive path ---

    def refresh(self, raise_errors: bool = False) -> bool:
        """
        Fetch and decrypt the active conversation.

        A response that arrives after the selection changed is discarded.
        Failures keep the messages already shown; they are logged, or raised
        when `raise_errors` is set.
        """
        with self._lock:
            selection = self.selection
            generation = self._generation
        if selection is None:
            return False

        try:
            if selection.kind == "direct":
                fetched = self.client.fetch_direct_messages(selection.target_id)
            else:
                fetched = self.client.fetch_channel_messages(selection.target_id)
        except ApiError as e:
            if raise_errors:
                raise
            logger.warning("Error fetching messages for %s %s: %s", selection.kind, selection.target_id, e)
            return False

        now = datetime.now(timezone.utc)
        visible = [m for m in fetched if m.is_visible_to(self.user_id, now)]
        display = self.decryptor.resolve(visible, self.user_id)

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding stale messages for %s %s", selection.kind, selection.target_id)
                return False
            self.messages = display

        self._mark_incoming_read(visible)
        if self.listener is not None:
            self.listener(display)
        return True

    def _mark_incoming_read(self, messages: List[Message]) -> None:
        unread = [m.id for m in messages if not m.is_read and m.recipient_id == self.user_id]
        if not unread:
            return
        try:
            self.client.mark_read(unread)
        except ApiError as e:
            logger.warning("Error marking messages as read: %s", e)

    # --- send path ---

    def send(
        self,
        text: str,
        document_ids: Optional[List[str]] = None,
        disappear_after: Optional[int] = None,
    ) -> Message:
        """
        Send to the active conversation.

        Direct messages are encrypted for the recipient when possible. When
        they cannot be, they go out as plaintext with a warning, unless
        require_encryption is set, in which case nothing is sent.

        Raises:
            NoConversationSelectedError, ValueError, EncryptionNotReadyError,
            EncryptionRequiredError, SendInProgressError, ApiError
        """
        document_ids = list(document_ids or [])
        with self._lock:
            selection = self.selection
            if selection is None:
                raise NoConversationSelectedError("Select a conversation or channel first")
            if self._sending:
                raise SendInProgressError("A message is already being sent")
            self._sending = True

        try:
            content = InputSanitizer.sanitize_message_text(text or "")
            if not content.strip():
                if not document_ids:
                    raise ValueError("Message content or attachments are required")
                content = ATTACHMENT_PLACEHOLDER

            if selection.kind == "groups":
                request = MessageSendRequest(
                    content=content,
                    channel_id=selection.target_id,
                    document_ids=document_ids,
                    disappear_after=disappear_after,
                )
            else:
                request = self._build_direct_request(content, selection.target_id, document_ids, disappear_after)

            sent = self.client.send_message(request)
        finally:
            with self._lock:
                self._sending = False

        # The sender cannot unwrap a key wrapped for the recipient
        self.cache.put_if_absent(sent.id, content)
        logger.info("Sent message %s (encrypted=%s)", sent.id, sent.is_encrypted)

        self.refresh()
        self.load_conversations()
        return sent

    def _build_direct_request(
        self,
        content: str,
        recipient_id: str,
        document_ids: List[str],
        disappear_after: Optional[int],
    ) -> MessageSendRequest:
        envelope = None

        if not self.encryption_ready:
            if self.require_encryption:
                raise EncryptionNotReadyError("Please wait, encryption is initializing")
            log_plaintext_fallback(recipient_id, "encryption not initialized")
        else:
            try:
                recipient_key = self.client.fetch_public_key(recipient_id)
                if recipient_key is not None:
                    envelope = encrypt_message(content, recipient_key)
            except (ValueError, ClovaLinkError) as e:
                if self.require_encryption:
                    raise EncryptionRequiredError(f"Encryption failed for {recipient_id}") from e
                log_plaintext_fallback(recipient_id, f"encryption failed ({type(e).__name__})")
            else:
                if recipient_key is None:
                    if self.require_encryption:
                        raise EncryptionRequiredError(f"Recipient {recipient_id} has no public key")
                    log_plaintext_fallback(recipient_id, "recipient has no public key")

        if envelope is None:
            return MessageSendRequest(
                content=content,
                is_encrypted=False,
                recipient_id=recipient_id,
                document_ids=document_ids,
                disappear_after=disappear_after,
            )

        return MessageSendRequest(
            content=envelope.encrypted_content,
            encrypted_key=envelope.encrypted_key,
            iv=envelope.iv,
            is_encrypted=True,
            recipient_id=recipient_id,
            document_ids=document_ids,
            disappear_after=disappear_after,
        )

    # --- other user actions ---

    def delete_message(self, message_id: str, for_everyone: bool = False) -> None:
        self.client.delete_message(message_id, delete_for_everyone=for_everyone)
        with self._lock:
            self.messages = [dm for dm in self.messages if dm.id != message_id]

    def create_group(
        self,
        name: str,
        member_ids: List[str],
        description: Optional[str] = None,
        is_public: bool = False,
    ) -> Channel:
        request = ChannelCreateRequest(
            name=name,
            description=description,
            member_ids=member_ids,
            is_public=is_public,
        )
        channel = self.client.create_channel(request)
        with self._lock:
            self.channels = [channel] + [c for c in self.channels if c.id != channel.id]
        return channel

    def unread_count(self, sender_id: str) -> int:
        with self._lock:
            return sum(
                1 for m in self.conversations
                if not m.is_read and m.sender_id == sender_id and m.recipient_id == self.user_id
            )
