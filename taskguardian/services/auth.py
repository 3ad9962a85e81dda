"""
Authentication service — signup and login.

Both return a fresh session token. Missing fields and unknown roles are
reported as 401 (credential errors), length violations as 400.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from taskguardian.engine.config import ROLES
from taskguardian.engine.errors import TaskGuardianSecurityError
from taskguardian.engine.logging import log, log_security_event, log_user_operation
from taskguardian.engine.security import SessionManager, verify_password
from taskguardian.services.validation import (
    PASSWORD_LENGTH,
    USERNAME_LENGTH,
    is_blank,
    require_length,
)
from taskguardian.stores.users import UserStore

logger = logging.getLogger("taskguardian.services.auth")


class AuthService:
    def __init__(self, users: UserStore, sessions: SessionManager, roles: Iterable[str] = ROLES):
        self._users = users
        self._sessions = sessions
        self._roles = tuple(roles)

    def signup(
        self,
        username: Optional[str],
        password: Optional[str],
        role: Optional[str],
    ) -> str:
        """
        Create a user and return a session token for it.

        Raises:
            TaskGuardianSecurityError: missing field or invalid role (401).
            TaskGuardianValidationError: username/password length (400).
            TaskGuardianConflictError: duplicate username (409).
        """
        if is_blank(username) or is_blank(password) or is_blank(role):
            raise TaskGuardianSecurityError("Please provide all required fields", operation="signup")
        if role not in self._roles:
            raise TaskGuardianSecurityError("Invalid Role", operation="signup", role=role)

        require_length("username", username, USERNAME_LENGTH)
        require_length("password", password, PASSWORD_LENGTH)

        user = self._users.create(username, password, role)
        log(log_user_operation("signup", target_user_id=user.id, user_id=user.id, role=role))
        return self._sessions.issue(user.id, user.role, user.username)

    def login(self, name: Optional[str], password: Optional[str]) -> str:
        """
        Verify credentials and return a session token.

        Raises:
            TaskGuardianSecurityError: missing field or bad credentials (401).
        """
        if is_blank(name) or is_blank(password):
            raise TaskGuardianSecurityError("Please provide all required fields", operation="login")

        user = self._users.get_by_username(name)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            log(log_security_event(
                event="login_failed",
                area="auth",
                reason="invalid_username" if user is None else "invalid_password",
                user_id=user.id if user else None,
                operation="login",
            ))
            raise TaskGuardianSecurityError("Invalid Credentials", operation="login")

        log(log_user_operation("login", target_user_id=user.id, user_id=user.id))
        return self._sessions.issue(user.id, user.role, user.username)
