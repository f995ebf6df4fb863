"""Local client storage for the server URL and logged-in user."""
import json
from pathlib import Path
from typing import Any, Dict, Optional

STORAGE_FILE = Path.home() / ".relay_chat_client.json"


def load_state() -> Dict[str, Any]:
    if STORAGE_FILE.exists():
        with STORAGE_FILE.open("r", encoding="utf-8") as f:
            return json.load(f)
    return {}


def save_state(data: Dict[str, Any]) -> None:
    STORAGE_FILE.parent.mkdir(parents=True, exist_ok=True)
    with STORAGE_FILE.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def store_server_url(url: str) -> None:
    state = load_state()
    state["server_url"] = url
    save_state(state)


def get_server_url() -> Optional[str]:
    return load_state().get("server_url")


def store_user(user: Dict[str, Any]) -> None:
    state = load_state()
    state["user"] = user
    save_state(state)


def clear_user() -> None:
    state = load_state()
    state.pop("user", None)
    save_state(state)


def get_user() -> Optional[Dict[str, Any]]:
    return load_state().get("user")
