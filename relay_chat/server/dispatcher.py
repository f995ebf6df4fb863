"""Persist-then-fan-out relay for new messages."""
from enum import Enum

from fastapi.concurrency import run_in_threadpool

from . import schemas
from .errors import InvalidMessage, NotFound, StorageError
from .logging_config import configure_logging
from .registry import ChannelRegistry, registry
from .store import MessageStore, message_store

logger = configure_logging()

RECEIVE_MESSAGE_EVENT = "receiveMessage"


class DispatchState(str, Enum):
    RECEIVED = "received"
    PERSISTED = "persisted"
    DELIVERED = "delivered"
    FAILED = "failed"


class RelayDispatcher:
    """Stores a message, reads back the canonical row and delivers it to both users.

    The receiver's channel is served first, then the sender's; the echo on
    the sender's channel is the only confirmation the sender gets.
    """

    def __init__(self, store: MessageStore, channels: ChannelRegistry):
        self.store = store
        self.channels = channels

    async def send(self, sender_id: int, receiver_id: int, content: str) -> schemas.MessageOut:
        state = DispatchState.RECEIVED
        if not content or not content.strip():
            logger.info("SEND_REJECTED sender_id=%s receiver_id=%s reason=blank", sender_id, receiver_id)
            raise InvalidMessage("Message content must not be empty")

        try:
            persisted = await run_in_threadpool(self.store.append, sender_id, receiver_id, content)
        except StorageError:
            self._fail(state, sender_id, receiver_id, None)
            raise
        state = DispatchState.PERSISTED
        logger.info(
            "MESSAGE_PERSISTED sender_id=%s receiver_id=%s message_id=%s",
            sender_id,
            receiver_id,
            persisted.id,
        )

        try:
            canonical = await run_in_threadpool(self.store.fetch_by_id, persisted.id)
        except (NotFound, StorageError):
            # Row exists but could not be read back; history will still show it.
            self._fail(state, sender_id, receiver_id, persisted.id)
            raise

        event = schemas.EventOut(event=RECEIVE_MESSAGE_EVENT, data=canonical.model_dump(mode="json"))
        payload = event.model_dump(mode="json")
        reached = await self.channels.deliver(receiver_id, payload)
        if sender_id != receiver_id:
            reached += await self.channels.deliver(sender_id, payload)

        state = DispatchState.DELIVERED
        logger.info(
            "MESSAGE_DELIVERED message_id=%s state=%s connections=%s",
            canonical.id,
            state.value,
            reached,
        )
        return canonical

    def _fail(self, state: DispatchState, sender_id: int, receiver_id: int, message_id) -> None:
        logger.error(
            "MESSAGE_FAILED sender_id=%s receiver_id=%s message_id=%s from_state=%s",
            sender_id,
            receiver_id,
            message_id,
            state.value,
        )


dispatcher = RelayDispatcher(message_store, registry)
