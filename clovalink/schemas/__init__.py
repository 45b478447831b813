from .channel import Channel, ChannelCreateRequest, ChannelListResponse, ChannelMember, Selection
from .message import (
    AttachmentRef,
    ConversationListResponse,
    DeleteMessageRequest,
    DocumentRef,
    MarkReadRequest,
    Message,
    MessageListResponse,
    MessageSendRequest,
    PublicKeyRecord,
    UserRef,
)

__all__ = [
    "AttachmentRef",
    "Channel",
    "ChannelCreateRequest",
    "ChannelListResponse",
    "ChannelMember",
    "ConversationListResponse",
    "DeleteMessageRequest",
    "DocumentRef",
    "MarkReadRequest",
    "Message",
    "MessageListResponse",
    "MessageSendRequest",
    "PublicKeyRecord",
    "Selection",
    "UserRef",
]
