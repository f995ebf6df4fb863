"""WebSocket session adapter between one client connection and the relay core.

Protocol, JSON text frames of the form {"event": ..., "data": ...}:
    - join: data is the user id (int or numeric string)
    - sendMessage / send: data is {senderId, receiverId, content}
Outbound events are joined, receiveMessage and error.
"""
import json

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from . import schemas
from .dispatcher import RelayDispatcher
from .errors import RelayError
from .logging_config import configure_logging
from .registry import ChannelRegistry
from ..shared.utils import parse_user_id

logger = configure_logging()

SEND_EVENTS = {"sendMessage", "send"}


class ClientSession:
    def __init__(self, websocket: WebSocket, channels: ChannelRegistry, dispatcher: RelayDispatcher):
        self.websocket = websocket
        self.channels = channels
        self.dispatcher = dispatcher

    async def run(self) -> None:
        await self.websocket.accept()
        logger.info("CONNECTION_OPEN client=%s", self.websocket.client)
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
                text = message.get("text")
                if text is None:
                    await self.send_error("invalid_payload", "Binary frames are not supported")
                    continue
                await self.handle(text)
        except WebSocketDisconnect:
            pass
        except Exception as exc:  # noqa: BLE001
            logger.warning("CONNECTION_ERROR client=%s error=%s", self.websocket.client, exc)
        finally:
            user_id = self.channels.leave(self.websocket)
            logger.info("CONNECTION_CLOSED client=%s user_id=%s", self.websocket.client, user_id)

    async def handle(self, raw: str) -> None:
        try:
            event = schemas.EventIn.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            await self.send_error("invalid_payload", "Expected a JSON object with an 'event' field")
            return

        if event.event == "join":
            await self.on_join(event.data)
        elif event.event in SEND_EVENTS:
            await self.on_send(event.data)
        else:
            await self.send_error("unknown_event", f"Unknown event: {event.event}")

    async def on_join(self, data) -> None:
        try:
            user_id = parse_user_id(data)
        except ValueError as exc:
            await self.send_error("invalid_payload", str(exc))
            return
        self.channels.join(user_id, self.websocket)
        await self.emit("joined", {"userId": user_id})

    async def on_send(self, data) -> None:
        try:
            request = schemas.SendMessageIn.model_validate(data)
        except ValidationError:
            await self.send_error("invalid_payload", "Expected senderId, receiverId and content")
            return
        try:
            await self.dispatcher.send(request.sender_id, request.receiver_id, request.content)
        except RelayError as exc:
            await self.send_error(exc.kind, exc.detail)

    async def emit(self, event: str, data) -> None:
        await self.websocket.send_json(schemas.EventOut(event=event, data=data).model_dump(mode="json"))

    async def send_error(self, kind: str, detail: str) -> None:
        await self.emit("error", {"error": kind, "detail": detail})
