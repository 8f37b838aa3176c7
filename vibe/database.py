"""
Database engine, session factory and declarative base.
"""
import re
import secrets

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import get_settings

settings = get_settings()

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

ID_LENGTH = 24
_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def enable_sqlite_foreign_keys(bind) -> None:
    """Turn on FK enforcement for every new SQLite connection of an engine."""
    if bind.dialect.name != "sqlite":
        return

    @event.listens_for(bind, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)


def new_id() -> str:
    """Opaque 24-hex-char entity id."""
    return secrets.token_hex(ID_LENGTH // 2)


def is_valid_id(value) -> bool:
    return isinstance(value, str) and bool(_ID_PATTERN.match(value))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace(escape, escape * 2).replace("%", escape + "%").replace("_", escape + "_")
