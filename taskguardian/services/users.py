"""User management service — role changes (ADMIN only)."""

from __future__ import annotations

import logging
from typing import Optional

from taskguardian.db.models import User
from taskguardian.engine.context import RequestContext
from taskguardian.engine.errors import TaskGuardianNotFoundError, TaskGuardianValidationError
from taskguardian.engine.logging import log, log_user_operation
from taskguardian.engine.policy import TaskOperation, TaskPolicy
from taskguardian.services.validation import is_blank, require_choice
from taskguardian.stores.users import UserStore

logger = logging.getLogger("taskguardian.services.users")


class UserService:
    def __init__(self, users: UserStore, policy: TaskPolicy):
        self._users = users
        self._policy = policy

    def update_role(self, caller: RequestContext, user_id: Optional[str], role: Optional[str]) -> User:
        """
        Overwrite another user's role.

        Raises:
            TaskGuardianSecurityError: caller is not ADMIN (401).
            TaskGuardianValidationError: missing field or invalid role (400).
            TaskGuardianNotFoundError: target user does not exist (404).
        """
        self._policy.enforce(caller, TaskOperation.UPDATE_ROLE)
        if is_blank(user_id) or is_blank(role):
            raise TaskGuardianValidationError("Please provide all required fields")
        require_choice("role", role, self._policy.roles, "Invalid Role")

        user = self._users.update_role(user_id, role)
        if user is None:
            raise TaskGuardianNotFoundError("User not found", record_type="user", record_id=user_id)

        logger.info(f"Role of user {user_id} set to {role} by {caller.user_id}")
        log(log_user_operation(
            "role_updated",
            target_user_id=user_id,
            user_id=caller.user_id,
            request_id=caller.request_id,
            role=role,
        ))
        return user
