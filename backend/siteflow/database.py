"""Database engine/session lifecycle.

The engine is owned by an explicitly constructed ``Database`` object. The
FastAPI app builds one in its lifespan hook and keeps it on ``app.state``;
scripts build their own with ``Database.from_settings()``.
"""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import Settings, settings as default_settings

Base = declarative_base()


class Database:
    """Owns the connection pool and hands out sessions."""

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 20,
        max_overflow: int = 10,
        echo: bool = False,
    ) -> None:
        self.url = url
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Database":
        cfg = settings or default_settings
        return cls(
            cfg.DATABASE_URL,
            pool_size=cfg.DATABASE_POOL_SIZE,
            max_overflow=cfg.DATABASE_MAX_OVERFLOW,
            echo=cfg.DATABASE_ECHO,
        )

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not initialized; call init() first")
        return self._engine

    def init(self) -> None:
        """Create the engine and session factory (idempotent)."""
        if self._engine is not None:
            return
        kwargs: dict = {"echo": self._echo, "future": True}
        if not self.url.startswith("sqlite"):
            kwargs.update(
                pool_pre_ping=True,
                pool_size=self._pool_size,
                max_overflow=self._max_overflow,
            )
        self._engine = create_engine(self.url, **kwargs)
        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )

    def dispose(self) -> None:
        """Close pooled connections and forget the engine."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not initialized; call init() first")
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Session for scripts: commit on success, rollback on error."""
        db = self.session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency: one session per request from the app's Database."""
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
