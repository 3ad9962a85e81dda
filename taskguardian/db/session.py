"""
Task Guardian Database Session Management.

A Database object owns one engine and its session factory. It is built from
DatabaseConfig and passed to the stores; there is no global engine.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from taskguardian.db.base import Base, create_db_engine
from taskguardian.engine.config import DatabaseConfig


class Database:
    """
    Engine + session factory for one database.

    Usage:
        db = Database(config.database)
        db.create_tables()
        with db.session_scope() as session:
            session.query(User).filter_by(username="alice").first()
    """

    def __init__(self, database: DatabaseConfig):
        self.engine = create_db_engine(database)
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        """Create all tables (idempotent)."""
        # Register models on Base.metadata
        from taskguardian.db import models  # noqa: F401
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Session with commit on success, rollback on error."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def health_check(self) -> bool:
        """Check if the engine can connect."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    def dispose(self) -> None:
        """Close the connection pool."""
        self.engine.dispose()
