"""HTTP API client for the relay chat server."""
from typing import Any, Dict, List

import requests

from ..shared.dto import MessageDTO, UserDTO


class APIClient:
    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def login(self, username: str) -> UserDTO:
        resp = requests.post(f"{self.base_url}/api/login", json={"username": username}, timeout=10)
        resp.raise_for_status()
        data = resp.json()
        return UserDTO(id=data["id"], username=data["username"])

    def list_users(self) -> List[UserDTO]:
        resp = requests.get(f"{self.base_url}/api/users", timeout=10)
        resp.raise_for_status()
        return [UserDTO(id=u["id"], username=u["username"]) for u in resp.json()]

    def get_messages(self, user_id: int, other_user_id: int, after_message_id: int = 0) -> List[MessageDTO]:
        params: Dict[str, Any] = {}
        if after_message_id:
            params["after_message_id"] = after_message_id
        resp = requests.get(
            f"{self.base_url}/api/messages/{user_id}/{other_user_id}",
            params=params,
            timeout=10,
        )
        resp.raise_for_status()
        return [MessageDTO.from_payload(m) for m in resp.json()]
