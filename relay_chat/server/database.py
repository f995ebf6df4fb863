"""SQLAlchemy engine, session factory and declarative base."""
import threading

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    # In-memory databases live and die with a single connection.
    if url in IN_MEMORY_URLS:
        options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

if engine.dialect.name == "sqlite":

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


if DATABASE_URL in IN_MEMORY_URLS:
    # Every session shares the one StaticPool connection, so only one may hold it at a time.
    # A plain Lock: FastAPI may close a request's session on a different worker thread.
    _shared_connection_lock = threading.Lock()

    @event.listens_for(engine, "checkout")
    def _acquire_shared_connection(dbapi_connection, connection_record, connection_proxy):
        _shared_connection_lock.acquire()

    @event.listens_for(engine, "checkin")
    def _release_shared_connection(dbapi_connection, connection_record):
        _shared_connection_lock.release()


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
