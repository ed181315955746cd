"""Database management - engine, session factory, initialization."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from authstate.config import AuthStateConfig
from authstate.errors import StoreConnectionError

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class Database:
    """Async SQLite manager; every pooled connection gets the configured PRAGMAs."""

    def __init__(self, path: str, config: AuthStateConfig | None = None):
        self.path = str(path)
        self.config = config or AuthStateConfig()
        engine_kwargs = {"echo": self.config.echo}
        if self.path != MEMORY_PATH:
            engine_kwargs["pool_size"] = self.config.pool_size
        self.engine = create_async_engine(f"sqlite+aiosqlite:///{self.path}", **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        event.listen(self.engine.sync_engine, "connect", self._apply_pragmas)
        self._initialized = False

    def _apply_pragmas(self, dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            for pragma in self.config.pragmas():
                cursor.execute(pragma)
        finally:
            cursor.close()

    @asynccontextmanager
    async def session(self):
        """Context manager that yields a session with auto-commit/rollback."""
        async with self.session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    async def init(self, log: logging.Logger | None = None) -> None:
        """Create the auth_state table and its index if they do not exist."""
        from authstate.models.base import Base
        import authstate.models.auth_state  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise StoreConnectionError(f"Cannot open auth store at {self.path!r}: {e}") from e

        self._initialized = True
        (log or logger).debug("Database connection established and configured")

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def close(self) -> None:
        """Dispose engine and release all connections."""
        await self.engine.dispose()


# Process-wide shared handle: the first caller's path wins.
_shared: Database | None = None
_shared_lock = asyncio.Lock()


async def get_database(
    path: str,
    log: logging.Logger | None = None,
    config: AuthStateConfig | None = None,
) -> Database:
    """Return the shared Database, opening and initializing it on first call.

    Later calls return the same instance and ignore ``path`` and ``config``.
    Concurrent first calls are serialized so setup runs exactly once.
    """
    global _shared
    if _shared is None:
        async with _shared_lock:
            if _shared is None:
                db = Database(path, config)
                try:
                    await db.init(log)
                except StoreConnectionError:
                    await db.close()
                    raise
                _shared = db
    if str(path) != _shared.path:
        (log or logger).debug(
            f"Shared database already open at {_shared.path}, ignoring {path}"
        )
    return _shared


async def reset_database() -> None:
    """Dispose the shared Database so the next get_database() opens a new one."""
    global _shared, _shared_lock
    async with _shared_lock:
        if _shared is not None:
            await _shared.close()
            _shared = None
    # a lock that saw contention stays bound to its event loop
    _shared_lock = asyncio.Lock()
