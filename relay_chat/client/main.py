"""Console client for the relay chat application."""
import sys
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set

import requests
from websockets.exceptions import WebSocketException

from . import api
from .live import LiveConnection
from .storage import clear_user, get_server_url, get_user, store_server_url, store_user
from ..shared.dto import MessageDTO, UserDTO


def format_message(msg: MessageDTO, current_user_id: int) -> str:
    direction = "(you)" if msg.sender_id == current_user_id else msg.sender_name
    timestamp = msg.created_at.astimezone().strftime("%H:%M") if msg.created_at else "--:--"
    return f"[{timestamp}] {direction}: {msg.content}"


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _display_order(msg: MessageDTO):
    return (msg.created_at or _EPOCH, msg.id)


class ConversationView:
    """Prints one conversation in store order, each message once.

    Live messages that arrive before the history has loaded are held back and
    merged into it, so nothing newer is printed ahead of older history.
    """

    def __init__(self, user_id: int, peer_id: int, printer: Callable[[str], None] = print):
        self.user_id = user_id
        self.peer_id = peer_id
        self.printer = printer
        self._lock = threading.Lock()
        self._seen: Set[int] = set()
        self._pending: List[MessageDTO] = []
        self._loaded = False

    def on_live(self, msg: MessageDTO) -> None:
        if not msg.involves(self.user_id, self.peer_id):
            return
        with self._lock:
            if not self._loaded:
                self._pending.append(msg)
                return
            self._show(msg)

    def load_history(self, messages: Iterable[MessageDTO]) -> None:
        with self._lock:
            merged = sorted([*messages, *self._pending], key=_display_order)
            self._pending = []
            self._loaded = True
            for msg in merged:
                self._show(msg)

    def _show(self, msg: MessageDTO) -> None:
        if msg.id in self._seen:
            return
        self._seen.add(msg.id)
        self.printer(format_message(msg, self.user_id))


class ChatClient:
    """Interactive console client: login, pick a peer, then chat live."""

    def __init__(self, server_url: str):
        self.server_url = server_url
        self.api = api.APIClient(server_url)
        stored = get_user()
        self.current_user: Optional[UserDTO] = UserDTO(**stored) if stored else None

    def login(self) -> bool:
        print("=== Login ===")
        username = input("Username: ").strip()
        if not username:
            print("Username must not be blank.")
            return False
        try:
            self.current_user = self.api.login(username)
        except requests.RequestException as exc:
            print(f"Login failed: {exc}")
            return False
        store_user({"id": self.current_user.id, "username": self.current_user.username})
        print(f"Welcome, {self.current_user.username}!")
        return True

    def list_users(self) -> Dict[int, UserDTO]:
        try:
            users = {u.id: u for u in self.api.list_users()}
        except requests.RequestException as exc:
            print(f"Could not fetch users: {exc}")
            return {}
        for u in users.values():
            marker = " (you)" if self.current_user and u.id == self.current_user.id else ""
            print(f"- {u.id}: {u.username}{marker}")
        return users

    def start_chat(self) -> None:
        users = self.list_users()
        username = input("Chat with (username): ").strip()
        peer = next((u for u in users.values() if u.username == username), None)
        if not peer:
            print("User not found.")
            return

        me = self.current_user.id
        view = ConversationView(me, peer.id)

        def show_error(data: Dict) -> None:
            print(f"! {data.get('detail', 'error')}")

        live = LiveConnection(self.server_url, on_message=view.on_live, on_error=show_error)
        try:
            live.open(me)
        except (OSError, WebSocketException) as exc:
            print(f"Could not connect: {exc}")
            return
        history: List[MessageDTO] = []
        try:
            # Join precedes the history fetch; the view merges the overlap.
            history = self.api.get_messages(me, peer.id)
        except requests.RequestException as exc:
            print(f"Could not fetch messages: {exc}")
        view.load_history(history)

        print("Type a message and press enter; /b to go back.")
        try:
            while True:
                text = input()
                if text.strip() == "/b":
                    break
                if not text.strip():
                    continue
                live.send(me, peer.id, text)
        finally:
            live.close()

    def logout(self) -> None:
        clear_user()
        self.current_user = None
        print("Logged out.")


def main():
    print("Relay Chat Client")
    default_url = get_server_url() or "http://127.0.0.1:5000"
    server_url = input(f"Server URL [{default_url}]: ").strip() or default_url
    store_server_url(server_url)
    client = ChatClient(server_url)

    while True:
        if not client.current_user:
            print("\nMenu: [l]ogin, [q]uit")
            choice = input("> ").strip().lower()
            if choice == "q":
                sys.exit(0)
            if choice == "l":
                client.login()
            continue
        print("\nUser menu: [u]sers, [c]hat, [o]logout, [q]uit")
        sub = input("> ").strip().lower()
        if sub == "q":
            sys.exit(0)
        if sub == "o":
            client.logout()
        if sub == "u":
            client.list_users()
        if sub == "c":
            client.start_chat()


if __name__ == "__main__":
    main()
