"""User listing routes."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import schemas
from .database import get_db
from .logging_config import configure_logging
from .models import User

router = APIRouter(prefix="/api/users", tags=["users"])
logger = configure_logging()


@router.get("", response_model=List[schemas.UserOut])
def list_users(db: Session = Depends(get_db)):
    try:
        return db.query(User).order_by(User.id).all()
    except SQLAlchemyError:
        logger.exception("STORAGE_ERROR op=list_users")
        raise HTTPException(status_code=500, detail="Database error")
