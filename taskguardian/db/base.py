"""
Task Guardian Database Base — SQLAlchemy declarative base, mixins, engine factory.

Provides:
- Base: SQLAlchemy declarative base for all models
- TimestampMixin: created_at, updated_at
- new_id: generated string identifiers
- create_db_engine: engine factory honouring DatabaseConfig pool settings
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from taskguardian.engine.config import DatabaseConfig


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all Task Guardian models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a record identifier (24 hex chars)."""
    return uuid.uuid4().hex[:24]


class TimestampMixin:
    """Adds created_at and updated_at columns."""
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


def create_db_engine(database: DatabaseConfig, **kwargs: Any) -> Engine:
    """
    Create an engine for the configured URL.

    SQLite gets check_same_thread=False (FastAPI runs handlers on a thread
    pool); in-memory SQLite additionally shares one connection via
    StaticPool. Other backends get the configured pool settings.
    """
    url = database.url
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs.setdefault("poolclass", StaticPool)
        engine = create_engine(url, echo=database.echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        url,
        echo=database.echo,
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
        pool_timeout=database.pool_timeout,
        pool_recycle=database.pool_recycle,
        pool_pre_ping=database.pool_pre_ping,
        **kwargs,
    )
