"""
Task Guardian Authorization Policy — Role × ownership rules for task operations.

A single pure decision function over (caller, operation, task state, assignee
state). Services call TaskPolicy.enforce() before touching the stores; the
table is testable without HTTP or a database.

    Operation      Allowed when
    ─────────────  ──────────────────────────────────────────────────────────
    CREATE         any authenticated caller
    LIST           any authenticated caller
    UPDATE_STATUS  ADMIN / MANAGER; REGULAR only when caller is the assignee
    DELETE         same as UPDATE_STATUS
    ASSIGN         ADMIN / MANAGER; assignee REGULAR; task not COMPLETED;
                   task not already assigned
    UPDATE_ROLE    ADMIN only

Assignment denials are InvalidAssignmentError (400); role/ownership denials
are TaskGuardianSecurityError (401).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Type

from taskguardian.engine.config import ROLES
from taskguardian.engine.context import RequestContext
from taskguardian.engine.errors import (
    InvalidAssignmentError,
    TaskGuardianError,
    TaskGuardianSecurityError,
)
from taskguardian.engine.logging import log, log_security_event

logger = logging.getLogger("taskguardian.engine.policy")


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    REGULAR = "REGULAR"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    INPROGRESS = "INPROGRESS"
    COMPLETED = "COMPLETED"


class TaskOperation(str, Enum):
    CREATE = "create"
    LIST = "list"
    UPDATE_STATUS = "update_status"
    DELETE = "delete"
    ASSIGN = "assign"
    UPDATE_ROLE = "update_role"


DISPATCHER_ROLES = frozenset({Role.ADMIN.value, Role.MANAGER.value})
ASSIGNABLE_ROLES = frozenset({Role.REGULAR.value})


@dataclass(frozen=True)
class TaskState:
    """The parts of a task the policy looks at."""

    task_id: str
    status: str
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None


@dataclass(frozen=True)
class AssigneeState:
    user_id: str
    role: str


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: str = ""
    error: Optional[Type[TaskGuardianError]] = None

    @classmethod
    def allow(cls) -> "PolicyDecision":
        return cls(allowed=True)

    @classmethod
    def unauthorized(cls, reason: str = "Unauthorized") -> "PolicyDecision":
        return cls(allowed=False, reason=reason, error=TaskGuardianSecurityError)

    @classmethod
    def invalid_assignment(cls, reason: str) -> "PolicyDecision":
        return cls(allowed=False, reason=reason, error=InvalidAssignmentError)


class TaskPolicy:
    """
    Decides whether a caller may perform an operation on a task.

    Args:
        restrict_regular_to_assignee: When True, REGULAR callers may only
            update or delete tasks assigned to them. When False, REGULAR
            callers are treated like dispatchers for update/delete.
        roles: Recognised role names (PlatformConfig.roles).
    """

    def __init__(self, restrict_regular_to_assignee: bool = True, roles: Iterable[str] = ROLES):
        self._restrict_regular = restrict_regular_to_assignee
        self._roles = tuple(roles)

    @property
    def roles(self) -> tuple:
        return self._roles

    def evaluate(
        self,
        caller: RequestContext,
        operation: TaskOperation,
        task: Optional[TaskState] = None,
        assignee: Optional[AssigneeState] = None,
    ) -> PolicyDecision:
        """
        Evaluate the policy table.

        For ASSIGN, task and assignee may be omitted to run only the caller
        role check (done before any lookups).
        """
        if caller.role not in self._roles:
            return PolicyDecision.unauthorized()

        if operation in (TaskOperation.CREATE, TaskOperation.LIST):
            return PolicyDecision.allow()

        if operation in (TaskOperation.UPDATE_STATUS, TaskOperation.DELETE):
            if task is None:
                raise ValueError(f"{operation.value} requires a task state")
            return self._check_ownership(caller, task)

        if operation == TaskOperation.ASSIGN:
            return self._check_assignment(caller, task, assignee)

        if operation == TaskOperation.UPDATE_ROLE:
            if caller.role != Role.ADMIN.value:
                return PolicyDecision.unauthorized()
            return PolicyDecision.allow()

        raise ValueError(f"Unknown operation: {operation!r}")

    def _check_ownership(self, caller: RequestContext, task: TaskState) -> PolicyDecision:
        if caller.role != Role.REGULAR.value or not self._restrict_regular:
            return PolicyDecision.allow()
        if task.assigned_to is not None and task.assigned_to == caller.user_id:
            return PolicyDecision.allow()
        return PolicyDecision.unauthorized()

    @staticmethod
    def _check_assignment(
        caller: RequestContext,
        task: Optional[TaskState],
        assignee: Optional[AssigneeState],
    ) -> PolicyDecision:
        if caller.role not in DISPATCHER_ROLES:
            return PolicyDecision.unauthorized()
        if task is None or assignee is None:
            return PolicyDecision.allow()

        if assignee.role == Role.ADMIN.value:
            return PolicyDecision.invalid_assignment("Cannot assign task to ADMIN")
        if task.status == TaskStatus.COMPLETED.value:
            return PolicyDecision.invalid_assignment("Cannot assign completed task")
        if assignee.role == Role.MANAGER.value:
            return PolicyDecision.invalid_assignment("Cannot assign task to MANAGER")
        if assignee.role not in ASSIGNABLE_ROLES:
            return PolicyDecision.invalid_assignment(f"Cannot assign task to {assignee.role}")
        if task.assigned_to is not None:
            return PolicyDecision.invalid_assignment("Task already assigned")
        return PolicyDecision.allow()

    def enforce(
        self,
        caller: RequestContext,
        operation: TaskOperation,
        task: Optional[TaskState] = None,
        assignee: Optional[AssigneeState] = None,
    ) -> None:
        """Evaluate and raise the mapped error on denial."""
        decision = self.evaluate(caller, operation, task, assignee)
        if decision.allowed:
            return

        task_id = task.task_id if task else None
        area = "users" if operation == TaskOperation.UPDATE_ROLE else "tasks"
        logger.warning(
            f"Denied {operation.value} for user {caller.user_id} ({caller.role}): {decision.reason}"
        )
        log(log_security_event(
            event="operation_denied",
            area=area,
            reason=decision.reason,
            user_id=caller.user_id,
            role=caller.role,
            operation=operation.value,
            request_id=caller.request_id,
            target_id=task_id,
        ))

        error_cls = decision.error or TaskGuardianSecurityError
        raise error_cls(
            decision.reason,
            user_id=caller.user_id,
            role=caller.role,
            operation=operation.value,
            request_id=caller.request_id,
            task_id=task_id,
            assignee_id=assignee.user_id if assignee else None,
        )
