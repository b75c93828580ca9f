"""
Engine and session management.

MySQL in deployment; an in-memory SQLite URL gets a single shared connection
so tests, the app and socket handlers all see the same schema.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from managertc.core.config import settings
from managertc.core.logging import get_logger

logger = get_logger(__name__)


def build_engine(url: str) -> Engine:
    if make_url(url).get_backend_name() == "sqlite":
        return create_engine(
            url,
            echo=settings.DEBUG,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=settings.DEBUG, pool_pre_ping=True, pool_recycle=3600)


engine = build_engine(settings.database_url)


def create_database() -> None:
    """CREATE DATABASE IF NOT EXISTS on the MySQL server; nothing to do for SQLite."""
    if engine.dialect.name == "sqlite":
        return
    server = create_engine(settings.database_url_without_db)
    try:
        with server.begin() as conn:
            conn.execute(
                text(
                    f"CREATE DATABASE IF NOT EXISTS `{settings.DB_NAME}` "
                    f"CHARACTER SET {settings.DB_CHARSET}"
                )
            )
        logger.info(f"Database '{settings.DB_NAME}' ready")
    except Exception as e:
        logger.error(f"Could not create database '{settings.DB_NAME}': {e}")
        raise
    finally:
        server.dispose()


def create_db_and_tables(*models) -> None:
    """Create the schema, then tables for ``models`` (every registered table when none given)."""
    create_database()
    tables = [model.__table__ for model in models] or None
    SQLModel.metadata.create_all(engine, tables=tables)
    logger.info(f"Tables ready: {len(tables) if tables else len(SQLModel.metadata.tables)}")


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for socket handlers and background work, outside FastAPI DI."""
    with Session(engine) as session:
        yield session
