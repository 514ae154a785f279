"""Database configuration and session management."""

import asyncio
import logging
from collections.abc import Iterator

from fastapi import Request
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

CONNECTED = "connected"
DISCONNECTED = "disconnected"


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Database:
    """Process-scoped handle on the relational store.

    ``connect`` never raises on an unreachable server: it logs the failure and
    keeps retrying in the background every ``retry_delay`` seconds until a
    connection succeeds. The application stays up meanwhile and reports the
    database as disconnected.
    """

    def __init__(self, url: str, retry_delay: float = 5.0, **engine_kwargs):
        self.url = url
        self.retry_delay = retry_delay
        self.engine_kwargs = engine_kwargs
        if url.startswith("sqlite"):
            self.engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        self.engine: Engine | None = None
        self.session_factory: sessionmaker[Session] | None = None
        self._retry_task: asyncio.Task | None = None

    def _try_connect(self) -> bool:
        """Create the engine, ping it and create missing tables."""
        engine = create_engine(self.url, pool_pre_ping=True, **self.engine_kwargs)
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as exc:
            engine.dispose()
            logger.error("Database connection error: %s", exc)
            return False
        self.engine = engine
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info("Database connected successfully")
        return True

    async def connect(self) -> None:
        """Connect, or schedule background retries when the server is unreachable."""
        if self.engine is not None or self._retry_task is not None:
            return
        logger.info("Connecting to database...")
        if not await asyncio.to_thread(self._try_connect):
            self._retry_task = asyncio.create_task(self._retry_forever())

    async def _retry_forever(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.retry_delay)
                logger.info("Retrying database connection...")
                if await asyncio.to_thread(self._try_connect):
                    return
        finally:
            self._retry_task = None

    async def disconnect(self) -> None:
        """Stop retrying and close all pooled connections."""
        if self._retry_task is not None:
            self._retry_task.cancel()
            try:
                await self._retry_task
            except asyncio.CancelledError:
                pass
            self._retry_task = None
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database disconnected")

    def get_connection_status(self) -> str:
        """Return ``"connected"`` when the database answers a ping."""
        if self.engine is None:
            return DISCONNECTED
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            return DISCONNECTED
        return CONNECTED

    def session(self) -> Session:
        """Open a new ORM session."""
        if self.session_factory is None:
            raise ServiceUnavailableError("Database is not connected")
        return self.session_factory()


def get_database(request: Request) -> Database:
    """Dependency returning the application's database handle."""
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    """Dependency for getting database session."""
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
