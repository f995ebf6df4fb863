"""FastAPI application entrypoint for the relay chat server."""
import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from . import auth, messages, users
from .config import CORS_ORIGINS, HOST, PORT
from .database import Base, engine
from .dispatcher import dispatcher
from .logging_config import configure_logging
from .registry import registry
from .session import ClientSession

logger = configure_logging()

# Create tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Relay Chat Server", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(messages.router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.websocket("/ws")
async def relay_socket(websocket: WebSocket):
    await ClientSession(websocket, registry, dispatcher).run()


def run() -> None:
    logger.info("SERVER_START host=%s port=%s", HOST, PORT)
    uvicorn.run("relay_chat.server.main:app", host=HOST, port=PORT, reload=False)


if __name__ == "__main__":
    run()
