"""Live WebSocket connection to the relay."""
import json
import logging
import threading
from typing import Callable, Dict, Optional

from websockets.exceptions import ConnectionClosed
from websockets.sync.client import ClientConnection, connect

from ..shared.dto import MessageDTO

logger = logging.getLogger(__name__)


def websocket_url(base_url: str) -> str:
    """Turn http(s)://host into ws(s)://host/ws."""
    url = base_url.rstrip("/")
    if url.startswith("https://"):
        url = "wss://" + url[len("https://"):]
    elif url.startswith("http://"):
        url = "ws://" + url[len("http://"):]
    return f"{url}/ws"


class LiveConnection:
    """Joins the user's channel and dispatches incoming events on a background thread."""

    def __init__(
        self,
        base_url: str,
        on_message: Callable[[MessageDTO], None],
        on_error: Optional[Callable[[Dict], None]] = None,
    ):
        self.url = websocket_url(base_url)
        self.on_message = on_message
        self.on_error = on_error
        self._ws: Optional[ClientConnection] = None
        self._reader: Optional[threading.Thread] = None

    def open(self, user_id: int) -> None:
        self._ws = connect(self.url)
        self._emit("join", user_id)
        self._reader = threading.Thread(target=self._read_loop, daemon=True)
        self._reader.start()

    def send(self, sender_id: int, receiver_id: int, content: str) -> None:
        self._emit("sendMessage", {"senderId": sender_id, "receiverId": receiver_id, "content": content})

    def close(self) -> None:
        if self._ws is not None:
            self._ws.close()
        if self._reader is not None:
            self._reader.join(timeout=2)

    def _emit(self, event: str, data) -> None:
        if self._ws is None:
            raise RuntimeError("Connection is not open")
        self._ws.send(json.dumps({"event": event, "data": data}))

    def _read_loop(self) -> None:
        try:
            for raw in self._ws:
                self.handle_event(json.loads(raw))
        except ConnectionClosed:
            logger.info("Live connection closed")

    def handle_event(self, event: Dict) -> None:
        name = event.get("event")
        data = event.get("data")
        if name == "receiveMessage":
            self.on_message(MessageDTO.from_payload(data))
        elif name == "error" and self.on_error:
            self.on_error(data)
