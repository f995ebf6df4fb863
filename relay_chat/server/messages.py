"""Conversation history routes."""
from typing import List

from fastapi import APIRouter, HTTPException, Query

from . import schemas
from .errors import StorageError
from .history import history_service

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("/{user_id}/{other_user_id}", response_model=List[schemas.MessageOut])
def get_conversation(
    user_id: int,
    other_user_id: int,
    after_message_id: int = Query(0, ge=0),
):
    try:
        return history_service.get_conversation(user_id, other_user_id, after_id=after_message_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Database error")
