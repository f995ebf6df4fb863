"""Pydantic schemas for request, response and event bodies."""
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..shared.utils import parse_user_id


class LoginRequest(BaseModel):
    username: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str


class MessageOut(BaseModel):
    """Canonical message record as stored, plus the sender's display name."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    created_at: datetime
    sender_id: int
    receiver_id: int
    sender_name: Optional[str] = None

    @field_validator("created_at")
    @classmethod
    def _mark_utc(cls, value: datetime) -> datetime:
        # Rows hold naive UTC; serialize with an explicit offset.
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SendMessageIn(BaseModel):
    """Inbound send payload; accepts camelCase and snake_case field names."""

    sender_id: int = Field(validation_alias=AliasChoices("senderId", "sender_id"))
    receiver_id: int = Field(validation_alias=AliasChoices("receiverId", "receiver_id"))
    content: str

    @field_validator("sender_id", "receiver_id", mode="before")
    @classmethod
    def _normalize_user_id(cls, value: Any) -> int:
        return parse_user_id(value)


class EventIn(BaseModel):
    event: str
    data: Any = None


class EventOut(BaseModel):
    event: str
    data: Any = None
