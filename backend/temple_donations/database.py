"""
Database Engine & Session Management
A single Database object owns the SQLAlchemy engine. It is constructed by the
application factory, initialized at startup and closed at shutdown.
"""
import logging
import os
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base, Session

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Lazily connected database client shared by all requests."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            connect_args = {}
            if self.url.startswith("sqlite"):
                connect_args["check_same_thread"] = False  # Required for SQLite
                path = self.url.replace("sqlite:///", "")
                if path and path != ":memory:" and os.path.dirname(path):
                    os.makedirs(os.path.dirname(path), exist_ok=True)

            self._engine = create_engine(self.url, connect_args=connect_args, echo=self.echo)
            self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
            logger.info("Database engine created (%s)", self._engine.url.render_as_string(hide_password=True))
        return self._engine

    def session(self) -> Session:
        """Open a new request-scoped session."""
        if self._session_factory is None:
            _ = self.engine
        return self._session_factory()

    def init(self) -> None:
        """Create all tables. Called once at application startup."""
        from temple_donations.models import donation as _donation_model  # noqa: F401
        from temple_donations.models import catalog as _catalog_model    # noqa: F401
        from temple_donations.models import audit as _audit_model        # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False

    def close(self) -> None:
        """Dispose the engine. Safe to call more than once."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database connection closed")
        self._engine = None
        self._session_factory = None


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency: yields a database session, auto-closes on finish."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
