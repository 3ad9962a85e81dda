"""Unit tests for taskguardian.services — auth, task and user services."""

import pytest
from unittest.mock import MagicMock

from taskguardian.engine.errors import (
    InvalidAssignmentError,
    TaskGuardianConflictError,
    TaskGuardianNotFoundError,
    TaskGuardianSecurityError,
    TaskGuardianValidationError,
)
from taskguardian.engine.policy import TaskPolicy
from taskguardian.services.auth import AuthService
from taskguardian.services.tasks import TaskService
from taskguardian.services.users import UserService
from taskguardian.services.validation import is_blank, require_length


@pytest.fixture
def auth(user_store, sessions):
    return AuthService(user_store, sessions)


@pytest.fixture
def task_service(task_store, user_store):
    return TaskService(task_store, user_store, TaskPolicy())


@pytest.fixture
def user_service(user_store):
    return UserService(user_store, TaskPolicy())


@pytest.fixture
def people(user_store, make_context):
    """Persisted users plus a RequestContext for each."""
    created = {
        role: user_store.create(f"{role.lower()}_one", "secret1", role)
        for role in ("ADMIN", "MANAGER", "REGULAR")
    }
    return {
        role: (user, make_context(role, user_id=user.id))
        for role, user in created.items()
    }


class TestValidationHelpers:
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank(self, value):
        assert is_blank(value)

    def test_not_blank(self):
        assert not is_blank("x")

    def test_require_length(self):
        assert require_length("title", "abc", (3, 50)) == "abc"
        with pytest.raises(TaskGuardianValidationError) as exc_info:
            require_length("title", "ab", (3, 50))
        assert exc_info.value.field == "title"


class TestAuthService:
    def test_signup_then_login(self, auth, sessions):
        token = auth.signup("alice", "secret1", "REGULAR")
        assert sessions.validate(token).username == "alice"

        identity = sessions.validate(auth.login("alice", "secret1"))
        assert identity.role == "REGULAR"

    def test_signup_unknown_role(self, auth):
        with pytest.raises(TaskGuardianSecurityError, match="Invalid Role"):
            auth.signup("alice", "secret1", "USER")

    def test_signup_duplicate(self, auth):
        auth.signup("alice", "secret1", "REGULAR")
        with pytest.raises(TaskGuardianConflictError):
            auth.signup("alice", "secret1", "REGULAR")

    def test_login_bad_password(self, auth):
        auth.signup("alice", "secret1", "REGULAR")
        with pytest.raises(TaskGuardianSecurityError, match="Invalid Credentials"):
            auth.login("alice", "nope-nope")

    def test_login_missing_password(self, auth):
        with pytest.raises(TaskGuardianSecurityError, match="required fields"):
            auth.login("alice", None)


class TestTaskService:
    def test_create_records_creator(self, task_service, people):
        _, ctx = people["REGULAR"]
        task = task_service.create_task(ctx, "Write report", "Quarterly numbers")
        assert task.created_by == ctx.user_id

    def test_create_requires_fields(self, task_service, people):
        _, ctx = people["REGULAR"]
        with pytest.raises(TaskGuardianValidationError, match="required fields"):
            task_service.create_task(ctx, "Write report", " ")

    def test_update_status_checks_order(self, task_service, people):
        _, ctx = people["ADMIN"]
        # invalid status is reported before the missing task
        with pytest.raises(TaskGuardianValidationError, match="Invalid status"):
            task_service.update_status(ctx, "missing", "DONE")
        with pytest.raises(TaskGuardianNotFoundError):
            task_service.update_status(ctx, "missing", "COMPLETED")

    def test_assign_and_work(self, task_service, people):
        _, manager_ctx = people["MANAGER"]
        worker, worker_ctx = people["REGULAR"]
        task = task_service.create_task(manager_ctx, "Write report", "Quarterly numbers")

        assigned = task_service.assign_task(manager_ctx, task.id, worker.id)
        assert assigned.assigned_to == worker.id
        done = task_service.update_status(worker_ctx, task.id, "COMPLETED")
        assert done.status == "COMPLETED"

    def test_regular_assign_rejected_before_lookup(self, task_store, user_store, make_context):
        tasks = MagicMock(wraps=task_store)
        service = TaskService(tasks, user_store, TaskPolicy())
        with pytest.raises(TaskGuardianSecurityError):
            service.assign_task(make_context("REGULAR"), "any", "someone")
        tasks.get.assert_not_called()

    def test_lost_race_reports_already_assigned(self, task_store, user_store, people):
        """A stale read passes the policy; the conditional write still refuses."""
        _, manager_ctx = people["MANAGER"]
        worker, _ = people["REGULAR"]
        rival = user_store.create("rival", "secret1", "REGULAR")
        task = task_store.create("Write report", "Quarterly numbers", created_by=manager_ctx.user_id)
        stale = task_store.get(task.id)
        task_store.assign_if_unassigned(task.id, rival.id)

        tasks = MagicMock(wraps=task_store)
        tasks.get.side_effect = [stale, task_store.get(task.id)]
        service = TaskService(tasks, user_store, TaskPolicy())

        with pytest.raises(InvalidAssignmentError, match="Task already assigned"):
            service.assign_task(manager_ctx, task.id, worker.id)
        assert task_store.get(task.id).assigned_to == rival.id

    def test_lost_race_to_completion(self, task_store, user_store, people):
        _, manager_ctx = people["MANAGER"]
        worker, _ = people["REGULAR"]
        task = task_store.create("Write report", "Quarterly numbers", created_by=manager_ctx.user_id)
        stale = task_store.get(task.id)
        task_store.update_status(task.id, "COMPLETED")

        tasks = MagicMock(wraps=task_store)
        tasks.get.side_effect = [stale, task_store.get(task.id)]
        service = TaskService(tasks, user_store, TaskPolicy())

        with pytest.raises(InvalidAssignmentError, match="Cannot assign completed task"):
            service.assign_task(manager_ctx, task.id, worker.id)


class TestUserService:
    def test_admin_updates_role(self, user_service, people):
        _, admin_ctx = people["ADMIN"]
        worker, _ = people["REGULAR"]
        assert user_service.update_role(admin_ctx, worker.id, "MANAGER").role == "MANAGER"

    def test_policy_checked_before_fields(self, user_service, people):
        _, manager_ctx = people["MANAGER"]
        with pytest.raises(TaskGuardianSecurityError):
            user_service.update_role(manager_ctx, None, None)

    def test_unknown_user(self, user_service, people):
        _, admin_ctx = people["ADMIN"]
        with pytest.raises(TaskGuardianNotFoundError, match="User not found"):
            user_service.update_role(admin_ctx, "missing", "MANAGER")


class TestConfiguredRolesInServices:
    def test_signup_rejects_role_outside_config(self, user_store, sessions):
        auth = AuthService(user_store, sessions, roles=("ADMIN", "REGULAR"))
        with pytest.raises(TaskGuardianSecurityError, match="Invalid Role"):
            auth.signup("alice", "secret1", "MANAGER")

    def test_update_role_uses_policy_roles(self, user_store, people):
        _, admin_ctx = people["ADMIN"]
        worker, _ = people["REGULAR"]
        service = UserService(user_store, TaskPolicy(roles=("ADMIN", "REGULAR")))
        with pytest.raises(TaskGuardianValidationError, match="Invalid Role"):
            service.update_role(admin_ctx, worker.id, "MANAGER")
