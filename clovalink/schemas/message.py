from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for models exchanged with the ClovaLink JSON API (camelCase on the wire)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class UserRef(ApiModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    profile_picture: Optional[str] = None


class DocumentRef(ApiModel):
    id: str
    name: str
    mime_type: str
    size: int


class AttachmentRef(ApiModel):
    id: str
    document: DocumentRef


class Message(ApiModel):
    """
    A message as returned by the API.

    `content` is plaintext when `is_encrypted` is false and base64 AES-GCM
    ciphertext when it is true. Only the flag decides which interpretation
    applies.
    """
    id: str
    content: str
    encrypted_key: Optional[str] = None
    iv: Optional[str] = None
    is_encrypted: bool = False

    sender_id: str
    recipient_id: Optional[str] = None
    channel_id: Optional[str] = None

    is_read: bool = False
    created_at: datetime
    attachments: List[AttachmentRef] = Field(default_factory=list)

    sender: Optional[UserRef] = None
    recipient: Optional[UserRef] = None

    disappear_after: Optional[int] = None
    expires_at: Optional[datetime] = None
    deleted_for_everyone: bool = False
    deleted_for: List[str] = Field(default_factory=list)

    @property
    def has_complete_envelope(self) -> bool:
        return self.is_encrypted and bool(self.content) and bool(self.encrypted_key) and bool(self.iv)

    def is_visible_to(self, user_id: str, now: Optional[datetime] = None) -> bool:
        """Tombstoned, deleted-for-this-user and expired messages are hidden."""
        if self.deleted_for_everyone:
            return False
        if user_id in self.deleted_for:
            return False
        if self.expires_at is not None:
            now = now or datetime.now(timezone.utc)
            expires_at = self.expires_at
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at < now:
                return False
        return True


class MessageSendRequest(ApiModel):
    """Body of POST /api/messages."""

    content: str = Field(..., min_length=1)
    encrypted_key: Optional[str] = None
    iv: Optional[str] = None
    is_encrypted: bool = False

    recipient_id: Optional[str] = None
    channel_id: Optional[str] = None

    document_ids: List[str] = Field(default_factory=list)
    disappear_after: Optional[int] = Field(default=None, gt=0, description='Seconds after reading')

    @model_validator(mode='after')
    def check_addressing_and_envelope(self) -> 'MessageSendRequest':
        if (self.recipient_id is None) == (self.channel_id is None):
            raise ValueError('Exactly one of recipientId or channelId is required')

        if self.is_encrypted:
            if not self.encrypted_key or not self.iv:
                raise ValueError('Encrypted messages need both encryptedKey and iv')
            if self.channel_id is not None:
                raise ValueError('Channel messages are not encrypted')
        elif self.encrypted_key is not None or self.iv is not None:
            raise ValueError('Plaintext messages must not carry encryptedKey or iv')

        return self


class MessageListResponse(ApiModel):
    messages: List[Message] = Field(default_factory=list)


class ConversationListResponse(ApiModel):
    conversations: List[Message] = Field(default_factory=list)


class MarkReadRequest(ApiModel):
    message_ids: List[str]


class DeleteMessageRequest(ApiModel):
    message_id: str
    delete_for_everyone: bool = False


class PublicKeyRecord(ApiModel):
    user_id: str
    name: Optional[str] = None
    public_key: Optional[str] = None
    has_key: bool = False
