"""Shared data transfer object helpers."""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def _pick(payload: Dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    value = payload.get(snake)
    if value is None:
        value = payload.get(camel)
    return default if value is None else value


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    # Producers without an offset send UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@dataclass
class UserDTO:
    id: int
    username: str


@dataclass
class MessageDTO:
    id: int
    content: str
    created_at: Optional[datetime]
    sender_id: int
    receiver_id: int
    sender_name: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "MessageDTO":
        """Build a message from a producer payload in either camelCase or snake_case."""
        return cls(
            id=int(payload["id"]),
            content=payload.get("content", ""),
            created_at=_parse_timestamp(_pick(payload, "created_at", "createdAt")),
            sender_id=int(_pick(payload, "sender_id", "senderId")),
            receiver_id=int(_pick(payload, "receiver_id", "receiverId")),
            sender_name=_pick(payload, "sender_name", "senderName", "Unknown"),
        )

    def involves(self, user_id: int, other_user_id: int) -> bool:
        return {self.sender_id, self.receiver_id} == {user_id, other_user_id}
