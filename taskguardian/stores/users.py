"""Credential store — user records with bcrypt-hashed passwords."""

from __future__ import annotations

import logging
from typing import Optional

from taskguardian.db.models import User
from taskguardian.db.session import Database
from taskguardian.engine.security import hash_password
from taskguardian.stores.base import BaseStore

logger = logging.getLogger("taskguardian.stores.users")


class UserStore(BaseStore):
    record_type = "user"

    def __init__(self, db: Database, bcrypt_rounds: int = 10):
        super().__init__(db)
        self._bcrypt_rounds = bcrypt_rounds

    def create(self, username: str, password: str, role: str) -> User:
        """
        Insert a user. The password is hashed here and never stored in clear.

        Raises:
            TaskGuardianConflictError: username already taken.
        """
        user = User(
            username=username,
            password_hash=hash_password(password, rounds=self._bcrypt_rounds),
            role=role,
        )
        with self._scope("create", conflict_message="Username already exists") as session:
            session.add(user)
            session.flush()
        logger.info(f"User created: {user.id} ({role})")
        return user

    def get(self, user_id: str) -> Optional[User]:
        with self._scope("get") as session:
            return session.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        with self._scope("get_by_username") as session:
            return session.query(User).filter_by(username=username).first()

    def update_role(self, user_id: str, role: str) -> Optional[User]:
        """Overwrite a user's role. Returns None if the user does not exist."""
        with self._scope("update_role") as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            user.role = role
            session.flush()
            session.refresh(user)
            return user
