"""Engine and session handling for the score store."""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import config
from .models import Base

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict:
    if not database_url.startswith("sqlite"):
        return {}
    # Backfill workers share the engine across threads
    options = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
        # Keep the single in-memory connection alive, otherwise the tables vanish
        options["poolclass"] = StaticPool
    return options


class Database:
    """Score store connection."""

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        self.database_url = database_url or config.DATABASE_URL
        self.engine = create_engine(self.database_url, echo=echo, **_engine_options(self.database_url))
        self.session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def create_tables(self):
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self):
        Base.metadata.drop_all(bind=self.engine)

    def reset(self):
        """Drop and recreate every table."""
        logger.warning(f"Resetting score store at {self.database_url}")
        self.drop_tables()
        self.create_tables()

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Transactional session; commits on success and rolls back on error."""
        with self.session_factory() as session, session.begin():
            yield session

    def close(self):
        self.engine.dispose()


_db: Optional[Database] = None


def get_db(database_url: Optional[str] = None) -> Database:
    """Shared store, created with its tables on first use."""
    global _db
    if _db is None:
        _db = Database(database_url)
        _db.create_tables()
    return _db


def close_db():
    global _db
    if _db is not None:
        _db.close()
        _db = None
