"""Username login: returns the existing user or creates one."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import schemas
from .database import get_db
from .logging_config import configure_logging
from .models import User
from ..shared.utils import normalize_username

router = APIRouter(prefix="/api", tags=["auth"])
logger = configure_logging()


def get_or_create_user(db: Session, username: str) -> User:
    user: Optional[User] = db.query(User).filter(User.username == username).first()
    if user:
        return user

    user = User(username=username)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Another login created the same username first.
        db.rollback()
        return db.query(User).filter(User.username == username).one()
    db.refresh(user)
    logger.info("USER_CREATED username=%s user_id=%s", username, user.id)
    return user


@router.post("/login", response_model=schemas.UserOut)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    try:
        username = normalize_username(payload.username)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        user = get_or_create_user(db, username)
    except SQLAlchemyError:
        logger.exception("STORAGE_ERROR op=login username=%s", username)
        raise HTTPException(status_code=500, detail="Database error")

    logger.info("LOGIN_SUCCESS username=%s user_id=%s", user.username, user.id)
    return user
