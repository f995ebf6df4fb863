"""Append-only message storage backed by SQLAlchemy.

Every operation opens its own session so the store can be called from any
worker thread. SQLAlchemy failures are wrapped into StorageError here and do
not propagate further.
"""
from typing import Callable, List

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import schemas
from .database import SessionLocal
from .errors import NotFound, StorageError
from .logging_config import configure_logging
from .models import Message, User

logger = configure_logging()


class MessageStore:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def append(self, sender_id: int, receiver_id: int, content: str) -> schemas.MessageOut:
        """Persist a new message and return it without the sender name."""
        db = self.session_factory()
        try:
            message = Message(sender_id=sender_id, receiver_id=receiver_id, content=content)
            db.add(message)
            db.commit()
            db.refresh(message)
            return schemas.MessageOut.model_validate(message)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "STORAGE_ERROR op=append sender_id=%s receiver_id=%s error=%s",
                sender_id,
                receiver_id,
                exc.__class__.__name__,
            )
            raise StorageError("Could not store message") from exc
        finally:
            db.close()

    def fetch_by_id(self, message_id: int) -> schemas.MessageOut:
        """Return the message joined with its sender's username."""
        db = self.session_factory()
        try:
            row = (
                db.query(Message, User.username)
                .join(User, Message.sender_id == User.id)
                .filter(Message.id == message_id)
                .first()
            )
        except SQLAlchemyError as exc:
            logger.error("STORAGE_ERROR op=fetch_by_id message_id=%s error=%s", message_id, exc.__class__.__name__)
            raise StorageError("Could not read message") from exc
        finally:
            db.close()
        if row is None:
            raise NotFound(f"Message {message_id} not found")
        return _to_schema(*row)

    def fetch_conversation(self, user_a: int, user_b: int, after_id: int = 0) -> List[schemas.MessageOut]:
        """Return every message between the two users, oldest first.

        Ties on created_at are broken by id so the order is total.
        """
        db = self.session_factory()
        try:
            rows = (
                db.query(Message, User.username)
                .join(User, Message.sender_id == User.id)
                .filter(
                    Message.id > after_id,
                    or_(
                        and_(Message.sender_id == user_a, Message.receiver_id == user_b),
                        and_(Message.sender_id == user_b, Message.receiver_id == user_a),
                    ),
                )
                .order_by(Message.created_at.asc(), Message.id.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            logger.error(
                "STORAGE_ERROR op=fetch_conversation user_a=%s user_b=%s error=%s",
                user_a,
                user_b,
                exc.__class__.__name__,
            )
            raise StorageError("Could not read conversation") from exc
        finally:
            db.close()
        return [_to_schema(message, username) for message, username in rows]


def _to_schema(message: Message, sender_name: str) -> schemas.MessageOut:
    return schemas.MessageOut(
        id=message.id,
        content=message.content,
        created_at=message.created_at,
        sender_id=message.sender_id,
        receiver_id=message.receiver_id,
        sender_name=sender_name,
    )


message_store = MessageStore()
