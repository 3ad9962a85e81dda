"""Task store — task records and the conditional assignment write."""

from __future__ import annotations

import logging
from typing import List, Optional

from taskguardian.db.base import utcnow
from taskguardian.db.models import Task
from taskguardian.db.session import Database
from taskguardian.engine.policy import TaskStatus
from taskguardian.stores.base import BaseStore

logger = logging.getLogger("taskguardian.stores.tasks")


class TaskStore(BaseStore):
    record_type = "task"

    def __init__(self, db: Database):
        super().__init__(db)

    def create(self, title: str, description: str, created_by: str) -> Task:
        """Insert a PENDING, unassigned task owned by created_by."""
        task = Task(
            title=title,
            description=description,
            status=TaskStatus.PENDING.value,
            created_by=created_by,
            assigned_to=None,
        )
        with self._scope("create") as session:
            session.add(task)
            session.flush()
        return task

    def list_all(self) -> List[Task]:
        with self._scope("list") as session:
            return session.query(Task).order_by(Task.created_at, Task.id).all()

    def get(self, task_id: str) -> Optional[Task]:
        with self._scope("get") as session:
            return session.get(Task, task_id)

    def update_status(self, task_id: str, status: str) -> Optional[Task]:
        """Set the status. Returns None if the task does not exist."""
        with self._scope("update_status") as session:
            task = session.get(Task, task_id)
            if task is None:
                return None
            task.status = status
            session.flush()
            session.refresh(task)
            return task

    def delete(self, task_id: str) -> Optional[Task]:
        """Remove the task and return it as it was. None if absent."""
        with self._scope("delete") as session:
            task = session.get(Task, task_id)
            if task is None:
                return None
            session.delete(task)
            return task

    def assign_if_unassigned(self, task_id: str, assignee_id: str) -> Optional[Task]:
        """
        Set assigned_to in a single conditional UPDATE.

        The row only changes while it is still unassigned and not COMPLETED,
        so two concurrent assignments cannot both succeed.

        Returns:
            The updated task, or None if the condition no longer held.
        """
        with self._scope("assign") as session:
            rowcount = (
                session.query(Task)
                .filter(
                    Task.id == task_id,
                    Task.assigned_to.is_(None),
                    Task.status != TaskStatus.COMPLETED.value,
                )
                .update(
                    {Task.assigned_to: assignee_id, Task.updated_at: utcnow()},
                    synchronize_session=False,
                )
            )
            if rowcount != 1:
                logger.info(f"Conditional assignment of task {task_id} matched no row")
                return None
            return session.get(Task, task_id, populate_existing=True)
