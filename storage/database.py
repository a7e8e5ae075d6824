"""
Database
Engine, session factory and transactional scope for the relational store.
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


class Database:
    """Owns one engine and its session factory."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self.engine: Engine = _build_engine(url, echo=echo)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )

    def create_all(self) -> None:
        # models register themselves on Base.metadata at import time
        from storage import models  # noqa: F401

        Base.metadata.create_all(self.engine)

    def session(self) -> Session:
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a session and always close it; repositories commit explicitly."""
        session = self._session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def _build_engine(url: str, *, echo: bool) -> Engine:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            database = make_url(url).database
            if database:
                Path(database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, echo=echo, future=True, **kwargs)
    return create_engine(url, echo=echo, future=True, pool_pre_ping=True)


_default_database: Optional[Database] = None


def get_database(url: Optional[str] = None, *, echo: Optional[bool] = None) -> Database:
    """Process-wide database built from DATABASE_* settings unless a URL is given."""
    global _default_database
    if url is not None:
        return Database(url, echo=bool(echo))
    if _default_database is None:
        from config import get_database_settings

        settings = get_database_settings()
        _default_database = Database(settings.url, echo=settings.echo if echo is None else echo)
    return _default_database
