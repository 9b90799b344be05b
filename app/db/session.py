"""
Database session management.

The engine and session factory are owned by an explicitly constructed
``Database`` handle. The application lifespan creates one at startup, keeps
it on ``app.state`` and disposes it on shutdown.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.base import Base


class Database:
    """Engine plus session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False, engine: Optional[Engine] = None):
        self.url = url
        self.engine = engine or create_engine(url, echo=echo, **self._engine_options(url))
        self.session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

    @staticmethod
    def _engine_options(url: str) -> dict:
        if url.startswith("sqlite"):
            options = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url or url.rstrip("/") == "sqlite:":
                # One shared connection, otherwise every session sees an empty database
                options["poolclass"] = StaticPool
            return options
        return {"pool_pre_ping": True, "pool_recycle": 300}

    def create_all(self) -> None:
        """Create any missing tables."""
        # Registers every mapped class on Base.metadata
        import app.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables ensured")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Yield a session that is always closed.

        Callers commit explicitly; anything left uncommitted is rolled back.
        """
        db = self.session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
        logger.info("Database engine disposed")
