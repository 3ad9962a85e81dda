"""Shared plumbing for the record stores."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from taskguardian.db.session import Database
from taskguardian.engine.errors import (
    TaskGuardianConflictError,
    TaskGuardianError,
    TaskGuardianRecordError,
)

logger = logging.getLogger("taskguardian.stores")


class BaseStore:
    record_type: str = "record"

    def __init__(self, db: Database):
        self._db = db

    @contextmanager
    def _scope(
        self,
        operation: str,
        conflict_message: Optional[str] = None,
    ) -> Generator[Session, None, None]:
        """
        Transactional session. Unexpected SQLAlchemy failures become
        TaskGuardianRecordError (500); integrity failures become
        TaskGuardianConflictError (409) when conflict_message is given.
        """
        try:
            with self._db.session_scope() as session:
                yield session
        except TaskGuardianError:
            raise
        except IntegrityError as e:
            if conflict_message is not None:
                raise TaskGuardianConflictError(
                    conflict_message, record_type=self.record_type, operation=operation,
                ) from e
            logger.error(f"{self.record_type} {operation} violated a constraint: {e.orig}")
            raise TaskGuardianRecordError(
                f"{self.record_type} {operation} failed",
                record_type=self.record_type,
                operation=operation,
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"{self.record_type} {operation} failed: {e}")
            raise TaskGuardianRecordError(
                f"{self.record_type} {operation} failed",
                record_type=self.record_type,
                operation=operation,
            ) from e
