"""
Task service — task operations gated by TaskPolicy.

Order of checks per operation:
    update_status  missing → invalid status → task exists → policy → write
    delete         task exists → policy → delete
    assign         caller role → assignedTo present → task exists →
                   assignee exists → assignment rules → conditional write
"""

from __future__ import annotations

import logging
from typing import List, Optional

from taskguardian.db.models import Task
from taskguardian.engine.context import RequestContext
from taskguardian.engine.errors import (
    InvalidAssignmentError,
    TaskGuardianNotFoundError,
    TaskGuardianValidationError,
)
from taskguardian.engine.logging import log, log_task_operation
from taskguardian.engine.policy import (
    AssigneeState,
    TaskOperation,
    TaskPolicy,
    TaskState,
    TaskStatus,
)
from taskguardian.services.validation import (
    DESCRIPTION_LENGTH,
    TITLE_LENGTH,
    is_blank,
    require_choice,
    require_length,
)
from taskguardian.stores.tasks import TaskStore
from taskguardian.stores.users import UserStore

logger = logging.getLogger("taskguardian.services.tasks")

STATUSES = tuple(s.value for s in TaskStatus)


def task_state(task: Task) -> TaskState:
    return TaskState(
        task_id=task.id,
        status=task.status,
        assigned_to=task.assigned_to,
        created_by=task.created_by,
    )


class TaskService:
    def __init__(self, tasks: TaskStore, users: UserStore, policy: TaskPolicy):
        self._tasks = tasks
        self._users = users
        self._policy = policy

    def _require_task(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskGuardianNotFoundError("Task not found", record_type="task", record_id=task_id)
        return task

    def list_tasks(self, caller: RequestContext) -> List[Task]:
        self._policy.enforce(caller, TaskOperation.LIST)
        return self._tasks.list_all()

    def create_task(
        self,
        caller: RequestContext,
        title: Optional[str],
        description: Optional[str],
    ) -> Task:
        self._policy.enforce(caller, TaskOperation.CREATE)
        if is_blank(title) or is_blank(description):
            raise TaskGuardianValidationError("Please provide all required fields")
        require_length("title", title, TITLE_LENGTH)
        require_length("description", description, DESCRIPTION_LENGTH)

        task = self._tasks.create(title, description, created_by=caller.user_id)
        logger.info(f"Task {task.id} created by {caller.user_id}")
        log(log_task_operation("create", task.id, caller.user_id, request_id=caller.request_id))
        return task

    def update_status(self, caller: RequestContext, task_id: str, status: Optional[str]) -> Task:
        if is_blank(status):
            raise TaskGuardianValidationError("Please provide all required fields", field="status")
        require_choice("status", status, STATUSES, "Invalid status")

        task = self._require_task(task_id)
        self._policy.enforce(caller, TaskOperation.UPDATE_STATUS, task=task_state(task))

        updated = self._tasks.update_status(task_id, status)
        if updated is None:
            raise TaskGuardianNotFoundError("Task not found", record_type="task", record_id=task_id)
        log(log_task_operation(
            "update_status", task_id, caller.user_id,
            request_id=caller.request_id,
            fields_changed=["status"],
            previous_status=task.status,
            status=status,
        ))
        return updated

    def delete_task(self, caller: RequestContext, task_id: str) -> Task:
        task = self._require_task(task_id)
        self._policy.enforce(caller, TaskOperation.DELETE, task=task_state(task))

        deleted = self._tasks.delete(task_id)
        if deleted is None:
            raise TaskGuardianNotFoundError("Task not found", record_type="task", record_id=task_id)
        logger.info(f"Task {task_id} deleted by {caller.user_id}")
        log(log_task_operation("delete", task_id, caller.user_id, request_id=caller.request_id))
        return deleted

    def assign_task(self, caller: RequestContext, task_id: str, assigned_to: Optional[str]) -> Task:
        # REGULAR callers are rejected before any lookup
        self._policy.enforce(caller, TaskOperation.ASSIGN)
        if is_blank(assigned_to):
            raise TaskGuardianValidationError("Please provide all required fields", field="assignedTo")

        task = self._require_task(task_id)
        assignee = self._users.get(assigned_to)
        if assignee is None:
            raise TaskGuardianNotFoundError("User not found", record_type="user", record_id=assigned_to)

        self._policy.enforce(
            caller,
            TaskOperation.ASSIGN,
            task=task_state(task),
            assignee=AssigneeState(user_id=assignee.id, role=assignee.role),
        )

        updated = self._tasks.assign_if_unassigned(task_id, assignee.id)
        if updated is None:
            # Lost a race with another assignment, a completion or a delete
            current = self._require_task(task_id)
            reason = (
                "Cannot assign completed task"
                if current.status == TaskStatus.COMPLETED.value
                else "Task already assigned"
            )
            raise InvalidAssignmentError(
                reason,
                task_id=task_id,
                assignee_id=assignee.id,
                user_id=caller.user_id,
                request_id=caller.request_id,
            )

        logger.info(f"Task {task_id} assigned to {assignee.id} by {caller.user_id}")
        log(log_task_operation(
            "assign", task_id, caller.user_id,
            request_id=caller.request_id,
            fields_changed=["assignedTo"],
            assignee_id=assignee.id,
        ))
        return updated
