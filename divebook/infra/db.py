from typing import AsyncGenerator, Literal

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from divebook.settings import settings

Base = declarative_base()

_engine = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

ConstraintKind = Literal["unique", "foreign_key"]


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _engine, _session_factory
    if _session_factory is None:
        _engine = create_async_engine(settings.database_url, pool_pre_ping=True)
        if _engine.dialect.name == "sqlite":
            enable_sqlite_foreign_keys(_engine)
        _session_factory = async_sessionmaker(
            _engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )
    return _session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    session_factory = get_session_factory()
    async with session_factory() as session:
        yield session


def enable_sqlite_foreign_keys(engine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record) -> None:  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def classify_integrity_error(exc: IntegrityError) -> ConstraintKind | None:
    """Map a driver-level constraint failure to the kind of constraint violated.

    PostgreSQL drivers expose the SQLSTATE code; SQLite only reports a message.
    Returns None when the violation is neither a unique nor a foreign-key one.
    """

    original = getattr(exc, "orig", None)
    code = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if code == UNIQUE_VIOLATION:
        return "unique"
    if code == FOREIGN_KEY_VIOLATION:
        return "foreign_key"

    message = str(original or exc).upper()
    if "UNIQUE CONSTRAINT FAILED" in message:
        return "unique"
    if "FOREIGN KEY CONSTRAINT FAILED" in message:
        return "foreign_key"
    return None
