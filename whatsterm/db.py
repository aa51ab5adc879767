"""Database wiring: declarative base and the process-lifetime engine holder."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """
    Owns the engine and session factory for one database.

    Constructed once by the composition root and passed to whoever needs the
    store. The engine is created on first use and reused until dispose().
    """

    def __init__(
        self,
        url: Union[str, URL],
        pool_size: int = 10,
        max_overflow: int = 20,
        echo: bool = False,
    ) -> None:
        self.url = make_url(url) if isinstance(url, str) else url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._lock = threading.Lock()

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == "sqlite"

    @property
    def engine(self) -> Engine:
        return self._ensure_engine()[0]

    @property
    def session_factory(self) -> sessionmaker:
        return self._ensure_engine()[1]

    def _ensure_engine(self) -> tuple[Engine, sessionmaker]:
        if self._engine is None or self._session_factory is None:
            with self._lock:
                if self._engine is None or self._session_factory is None:
                    self._engine = self._create_engine()
                    self._session_factory = sessionmaker(
                        bind=self._engine, autoflush=False, expire_on_commit=False
                    )
        return self._engine, self._session_factory

    def _create_engine(self) -> Engine:
        if self.is_sqlite:
            engine = create_engine(
                self.url,
                echo=self.echo,
                connect_args={"check_same_thread": False},
            )
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            return engine
        return create_engine(
            self.url,
            echo=self.echo,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_pre_ping=True,
        )

    def session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def db_session(self) -> Iterator[Session]:
        """Yield a session; roll back on error and always close."""
        db = self.session()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_all(self) -> None:
        """Create any missing tables for the registered models."""
        import whatsterm.models  # noqa: F401  (registers tables on Base.metadata)

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._session_factory = None
