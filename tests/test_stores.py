"""Unit tests for taskguardian.stores against in-memory SQLite."""

import pytest
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from taskguardian.engine.errors import TaskGuardianConflictError, TaskGuardianRecordError
from taskguardian.engine.security import verify_password


@pytest.fixture
def owner(user_store):
    return user_store.create("owner", "secret1", "MANAGER")


@pytest.fixture
def worker(user_store):
    return user_store.create("worker", "secret1", "REGULAR")


class TestUserStore:
    def test_create_hashes_password(self, user_store):
        user = user_store.create("alice", "secret1", "REGULAR")
        assert len(user.id) == 24
        assert user.password_hash != "secret1"
        assert verify_password("secret1", user.password_hash)

    def test_duplicate_username_conflicts(self, user_store):
        user_store.create("alice", "secret1", "REGULAR")
        with pytest.raises(TaskGuardianConflictError, match="Username already exists"):
            user_store.create("alice", "other12", "ADMIN")

    def test_get_by_username(self, user_store):
        created = user_store.create("alice", "secret1", "REGULAR")
        assert user_store.get_by_username("alice").id == created.id
        assert user_store.get_by_username("bob") is None

    def test_update_role(self, user_store, worker):
        updated = user_store.update_role(worker.id, "MANAGER")
        assert updated.role == "MANAGER"
        assert user_store.get(worker.id).role == "MANAGER"

    def test_update_role_unknown_user(self, user_store):
        assert user_store.update_role("missing", "ADMIN") is None

    def test_to_dict_hides_hash(self, worker):
        data = worker.to_dict()
        assert set(data) == {"id", "username", "role", "createdAt", "updatedAt"}

    def test_database_failure_becomes_record_error(self, user_store):
        with patch.object(
            user_store._db, "session_scope", side_effect=OperationalError("SELECT", {}, Exception("down")),
        ):
            with pytest.raises(TaskGuardianRecordError):
                user_store.get("anything")


class TestTaskStore:
    def test_create_defaults(self, task_store, owner):
        task = task_store.create("Write report", "Quarterly numbers", created_by=owner.id)
        assert task.status == "PENDING"
        assert task.assigned_to is None
        assert task.created_by == owner.id
        assert task.created_at is not None

    def test_list_all(self, task_store, owner):
        a = task_store.create("First", "one two", created_by=owner.id)
        b = task_store.create("Second", "three four", created_by=owner.id)
        assert {t.id for t in task_store.list_all()} == {a.id, b.id}

    def test_update_status(self, task_store, owner):
        task = task_store.create("Write report", "Quarterly numbers", created_by=owner.id)
        updated = task_store.update_status(task.id, "INPROGRESS")
        assert updated.status == "INPROGRESS"
        assert task_store.get(task.id).status == "INPROGRESS"

    def test_update_status_missing(self, task_store):
        assert task_store.update_status("missing", "COMPLETED") is None

    def test_delete(self, task_store, owner):
        task = task_store.create("Write report", "Quarterly numbers", created_by=owner.id)
        deleted = task_store.delete(task.id)
        assert deleted.id == task.id
        assert deleted.title == "Write report"
        assert task_store.get(task.id) is None
        assert task_store.delete(task.id) is None

    def test_unknown_creator_rejected(self, task_store):
        with pytest.raises(TaskGuardianRecordError):
            task_store.create("Write report", "Quarterly numbers", created_by="nobody")


class TestConditionalAssign:
    def test_assigns_unassigned_task(self, task_store, owner, worker):
        task = task_store.create("Write report", "Quarterly numbers", created_by=owner.id)
        updated = task_store.assign_if_unassigned(task.id, worker.id)
        assert updated.assigned_to == worker.id

    def test_second_assignment_matches_nothing(self, task_store, user_store, owner, worker):
        other = user_store.create("worker2", "secret1", "REGULAR")
        task = task_store.create("Write report", "Quarterly numbers", created_by=owner.id)

        assert task_store.assign_if_unassigned(task.id, worker.id) is not None
        assert task_store.assign_if_unassigned(task.id, other.id) is None
        assert task_store.get(task.id).assigned_to == worker.id

    def test_completed_task_not_assigned(self, task_store, owner, worker):
        task = task_store.create("Write report", "Quarterly numbers", created_by=owner.id)
        task_store.update_status(task.id, "COMPLETED")
        assert task_store.assign_if_unassigned(task.id, worker.id) is None
        assert task_store.get(task.id).assigned_to is None

    def test_missing_task(self, task_store, worker):
        assert task_store.assign_if_unassigned("missing", worker.id) is None
