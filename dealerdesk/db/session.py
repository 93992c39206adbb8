"""
db/session.py
-------------
Async SQLAlchemy store client.

Design decisions:
  - No module-level engine. A Database is built once in the application
    lifespan, kept on app.state, handed to requests through get_db /
    get_database, and disposed on shutdown.
  - Connection pool sized for typical SaaS workloads:
      pool_size=10, max_overflow=20 → max 30 concurrent DB connections.
    pool_timeout bounds how long a request waits for a connection.
  - pool_pre_ping=True: validates connections before checkout to handle
    stale connections after DB restarts or idle timeouts.
  - expire_on_commit=False: avoids lazy-load errors after commit in async
    context (attributes are already loaded, no implicit SELECT needed).
  - unit_of_work() runs a callable inside its own session and transaction:
    everything the callable writes commits together or not at all.
  - Store failures surface as InfrastructureError from both session() and
    unit_of_work(). asyncpg reports a refused or dropped connection as a bare
    OSError that SQLAlchemy does not wrap, so STORE_ERRORS lists both.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dealerdesk.core.config import Settings
from dealerdesk.core.errors import InfrastructureError
from dealerdesk.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

STORE_ERRORS = (SQLAlchemyError, OSError)


class Database:

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        **engine_kwargs: Any,
    ) -> None:
        if not url.startswith("sqlite"):
            engine_kwargs.setdefault("pool_size", pool_size)
            engine_kwargs.setdefault("max_overflow", max_overflow)
            engine_kwargs.setdefault("pool_timeout", pool_timeout)
            engine_kwargs.setdefault("pool_recycle", 3600)  # Recycle connections every hour
        self.engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            **engine_kwargs,
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            echo=settings.DEBUG,  # Log SQL in development
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Session committed on clean exit, rolled back on any exception.
        Store failures are re-raised as InfrastructureError.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except STORE_ERRORS as exc:
                await session.rollback()
                logger.error("Session rolled back", error=str(exc))
                raise InfrastructureError("Database unavailable") from exc
            except Exception:
                await session.rollback()
                raise

    async def unit_of_work(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """
        Run `work` inside a single transaction.

        Domain errors raised by `work` roll the transaction back and propagate
        unchanged; store failures roll back and surface as InfrastructureError.
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    return await work(session)
        except STORE_ERRORS as exc:
            logger.error("Transaction rolled back", error=str(exc))
            raise InfrastructureError("Database transaction failed") from exc

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the process-wide Database built at startup."""
    return request.app.state.database


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that yields a request-scoped database session.
    The session is committed when the request finishes and rolled back
    on exceptions; a store failure during the request answers 503.

    Usage:
        @router.get("/example")
        async def handler(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_database(request).session() as session:
        yield session
