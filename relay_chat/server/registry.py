"""Channel registry mapping user ids to their live connections.

A user may be connected from several devices at once; every bound connection
receives each delivery. Nothing is queued for users with no connection.

The map is mutated by join/leave and read by deliver from any task or thread,
so every access goes through a lock and deliver works on a snapshot.
"""
import asyncio
import threading
from typing import Any, Dict, List, Optional, Set

from .logging_config import configure_logging

logger = configure_logging()


class ChannelRegistry:
    """Thread-safe registry of user id -> set of connections.

    A connection is anything with an awaitable ``send_json(payload)``, in
    practice a FastAPI WebSocket.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # user_id -> connections bound to that user
        self._channels: Dict[int, Set[Any]] = {}
        # connection -> user_id, for leave on disconnect
        self._bindings: Dict[Any, int] = {}

    def join(self, user_id: int, connection: Any) -> None:
        with self._lock:
            current = self._bindings.get(connection)
            if current == user_id:
                return
            if current is not None:
                self._unbind(connection, current)
            self._channels.setdefault(user_id, set()).add(connection)
            self._bindings[connection] = user_id
            count = len(self._channels[user_id])
        logger.info("CHANNEL_JOIN user_id=%s connections=%s", user_id, count)

    def leave(self, connection: Any) -> Optional[int]:
        """Unbind a connection; returns the user it was bound to, if any."""
        with self._lock:
            user_id = self._bindings.pop(connection, None)
            if user_id is None:
                return None
            self._unbind(connection, user_id)
        logger.info("CHANNEL_LEAVE user_id=%s", user_id)
        return user_id

    def _unbind(self, connection: Any, user_id: int) -> None:
        connections = self._channels.get(user_id)
        if connections is None:
            return
        connections.discard(connection)
        if not connections:
            del self._channels[user_id]
        self._bindings.pop(connection, None)

    def connections_for(self, user_id: int) -> List[Any]:
        with self._lock:
            return list(self._channels.get(user_id, ()))

    def connection_count(self, user_id: int) -> int:
        with self._lock:
            return len(self._channels.get(user_id, ()))

    def user_for(self, connection: Any) -> Optional[int]:
        with self._lock:
            return self._bindings.get(connection)

    def clear(self) -> None:
        with self._lock:
            self._channels.clear()
            self._bindings.clear()

    async def deliver(self, user_id: int, payload: dict) -> int:
        """Send payload to every connection bound to user_id.

        Returns the number of connections that received it. Connections whose
        send fails are unbound.
        """
        connections = self.connections_for(user_id)
        if not connections:
            logger.info("DELIVERY_GAP user_id=%s", user_id)
            return 0

        results = await asyncio.gather(
            *[self._safe_send(conn, payload) for conn in connections],
            return_exceptions=True,
        )
        failed = [conn for conn, ok in zip(connections, results) if ok is not True]
        for conn in failed:
            self.leave(conn)
        return len(connections) - len(failed)

    async def _safe_send(self, connection: Any, payload: dict) -> bool:
        try:
            await connection.send_json(payload)
            return True
        except Exception as exc:  # noqa: BLE001
            logger.warning("SEND_FAILED user_id=%s error=%s", self.user_for(connection), exc)
            return False


registry = ChannelRegistry()
