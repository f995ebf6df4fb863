"""Conversation history lookups."""
from typing import List

from . import schemas
from .store import MessageStore, message_store


class HistoryService:
    def __init__(self, store: MessageStore):
        self.store = store

    def get_conversation(self, user_id: int, other_user_id: int, after_id: int = 0) -> List[schemas.MessageOut]:
        return self.store.fetch_conversation(user_id, other_user_id, after_id=after_id)


history_service = HistoryService(message_store)
