"""Database connection management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

# Registers the alert_records table on SQLModel.metadata
from replywatch.domain.entities.alert_record import AlertRecord  # noqa: F401


class Database:
    """Non-blocking database connection manager.

    Manages the alert state database using SQLModel and aiosqlite.

    Attributes:
        url: SQLAlchemy connection URL.
        engine: Async database engine (available after initialize()).

    Example:
        >>> database = Database("sqlite+aiosqlite:///./data/replywatch.db")
        >>> await database.initialize()
        >>> async with database.get_session() as session:
        ...     result = await session.exec(select(AlertRecord))
        >>> await database.close()
    """

    def __init__(self, url: str) -> None:
        """Initialize Database with connection URL.

        Args:
            url: SQLAlchemy-style connection URL.

        Raises:
            ValueError: If URL is empty or invalid format.
        """
        if not url:
            raise ValueError("Database URL cannot be empty")

        self._validate_url(url)
        self._url = url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def _validate_url(self, url: str) -> None:
        """Reject URLs without an async driver (``dialect+driver://``)."""
        parsed = urlparse(url)
        if not parsed.scheme or "+" not in parsed.scheme:
            raise ValueError(f"Invalid database URL format: {url}")

    @property
    def url(self) -> str:
        """Get the connection URL."""
        return self._url

    @property
    def engine(self) -> AsyncEngine:
        """Get the async engine.

        Raises:
            RuntimeError: If database is not initialized.
        """
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._engine

    async def initialize(self) -> None:
        """Create the engine and the alert state tables.

        The parent directory of a SQLite file is created when missing.
        """
        self._ensure_parent_directory()

        self._engine = create_async_engine(self._url, echo=False)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    def _ensure_parent_directory(self) -> None:
        parsed = urlparse(self._url)
        if not parsed.scheme.startswith("sqlite"):
            return
        db_path = parsed.path
        if db_path.startswith("///"):
            db_path = db_path[3:]
        elif db_path.startswith("/") and not parsed.netloc:
            # sqlite+aiosqlite:///data/x.db has path "/data/x.db" (relative)
            db_path = db_path[1:]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def close(self) -> None:
        """Close database connection and dispose engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Get a database session.

        Yields:
            AsyncSession: Database session with auto-commit on success
                and auto-rollback on exception.

        Raises:
            RuntimeError: If database is not initialized or has been closed.
        """
        if self._session_factory is None:
            raise RuntimeError("Database not initialized or has been closed.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
