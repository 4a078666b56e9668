# research_chat/database.py
import logging
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from .config import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False  # needed for SQLite + FastAPI

engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    future=True,
    echo=SQL_ECHO,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, future=True)
Base = declarative_base()


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


@event.listens_for(Engine, "connect")
def _configure_sqlite(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        # SQLite ignores ON DELETE CASCADE unless this is set per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        # built-in lower() only folds ASCII, so "ÉCOLE" would never match "école"
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def init_db(bind=None) -> None:
    from . import models  # noqa: F401  register tables on Base

    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_rollback(db: Session, action: str) -> None:
    """Commit the pending unit of work, rolling back and re-raising on failure."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("%s failed", action)
        raise
