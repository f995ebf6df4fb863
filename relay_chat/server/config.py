"""Server configuration values."""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
DATABASE_URL = os.getenv("RELAY_CHAT_DATABASE_URL", f"sqlite:///{BASE_DIR / 'relay_chat.db'}")
HOST = os.getenv("RELAY_CHAT_HOST", "0.0.0.0")
PORT = int(os.getenv("RELAY_CHAT_PORT", "5000"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("RELAY_CHAT_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]
LOG_FILE = Path(os.getenv("RELAY_CHAT_LOG_FILE", str(BASE_DIR / "server.log")))
