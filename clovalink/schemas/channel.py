from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from clovalink.schemas.message import ApiModel, UserRef
from clovalink.security.sanitizer import InputSanitizer


class ChannelMember(ApiModel):
    employee_id: Optional[str] = None
    is_admin: bool = False
    employee: Optional[UserRef] = None


class Channel(ApiModel):
    """A named group conversation."""
    id: str
    name: str
    description: Optional[str] = None
    is_public: bool = False
    members: List[ChannelMember] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    @property
    def member_ids(self) -> List[str]:
        ids = []
        for m in self.members:
            member_id = m.employee_id or (m.employee.id if m.employee else None)
            if member_id:
                ids.append(member_id)
        return ids


class ChannelListResponse(ApiModel):
    channels: List[Channel] = Field(default_factory=list)


class ChannelCreateRequest(ApiModel):
    """Body of POST /api/messages/channels."""

    name: str
    description: Optional[str] = None
    member_ids: List[str] = Field(..., min_length=1)
    is_public: bool = False

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return InputSanitizer.sanitize_channel_name(v)

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return InputSanitizer.sanitize_description(v)


@dataclass(frozen=True)
class Selection:
    """The conversation currently open: a direct chat or a group channel."""
    kind: Literal["direct", "groups"]
    target_id: str
