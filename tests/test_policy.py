"""Unit tests for taskguardian.engine.policy: the role and ownership table in isolation."""

import pytest

from taskguardian.engine.errors import InvalidAssignmentError, TaskGuardianSecurityError
from taskguardian.engine.policy import (
    AssigneeState,
    Role,
    TaskOperation,
    TaskPolicy,
    TaskState,
    TaskStatus,
)


def _task(status="PENDING", assigned_to=None):
    return TaskState(task_id="t1", status=status, assigned_to=assigned_to, created_by="creator")


class TestCreateAndList:
    @pytest.mark.parametrize("role", ["ADMIN", "MANAGER", "REGULAR"])
    @pytest.mark.parametrize("operation", [TaskOperation.CREATE, TaskOperation.LIST])
    def test_any_role_allowed(self, make_context, role, operation):
        decision = TaskPolicy().evaluate(make_context(role), operation)
        assert decision.allowed is True

    def test_unknown_role_denied(self, make_context):
        decision = TaskPolicy().evaluate(make_context("USER"), TaskOperation.LIST)
        assert decision.allowed is False
        assert decision.error is TaskGuardianSecurityError


class TestUpdateAndDelete:
    @pytest.mark.parametrize("operation", [TaskOperation.UPDATE_STATUS, TaskOperation.DELETE])
    @pytest.mark.parametrize("role", ["ADMIN", "MANAGER"])
    def test_dispatchers_allowed_on_any_task(self, make_context, operation, role):
        decision = TaskPolicy().evaluate(make_context(role), operation, task=_task(assigned_to="someone"))
        assert decision.allowed is True

    @pytest.mark.parametrize("operation", [TaskOperation.UPDATE_STATUS, TaskOperation.DELETE])
    def test_regular_assignee_allowed(self, make_context, operation):
        caller = make_context("REGULAR", user_id="r1")
        decision = TaskPolicy().evaluate(caller, operation, task=_task(assigned_to="r1"))
        assert decision.allowed is True

    @pytest.mark.parametrize("operation", [TaskOperation.UPDATE_STATUS, TaskOperation.DELETE])
    def test_regular_non_assignee_denied(self, make_context, operation):
        caller = make_context("REGULAR", user_id="r1")
        decision = TaskPolicy().evaluate(caller, operation, task=_task(assigned_to="r2"))
        assert decision.allowed is False
        assert decision.error is TaskGuardianSecurityError

    def test_regular_denied_on_unassigned_task(self, make_context):
        caller = make_context("REGULAR", user_id="r1")
        decision = TaskPolicy().evaluate(caller, TaskOperation.UPDATE_STATUS, task=_task())
        assert decision.allowed is False

    def test_restriction_can_be_disabled(self, make_context):
        policy = TaskPolicy(restrict_regular_to_assignee=False)
        caller = make_context("REGULAR", user_id="r1")
        decision = policy.evaluate(caller, TaskOperation.DELETE, task=_task(assigned_to="r2"))
        assert decision.allowed is True

    def test_task_state_required(self, make_context):
        with pytest.raises(ValueError):
            TaskPolicy().evaluate(make_context("ADMIN"), TaskOperation.DELETE)


class TestAssign:
    def setup_method(self):
        self.policy = TaskPolicy()
        self.regular = AssigneeState(user_id="r1", role=Role.REGULAR.value)

    def test_regular_caller_denied_before_lookup(self, make_context):
        decision = self.policy.evaluate(make_context("REGULAR"), TaskOperation.ASSIGN)
        assert decision.allowed is False
        assert decision.error is TaskGuardianSecurityError

    @pytest.mark.parametrize("role", ["ADMIN", "MANAGER"])
    def test_dispatcher_role_precheck(self, make_context, role):
        assert self.policy.evaluate(make_context(role), TaskOperation.ASSIGN).allowed is True

    @pytest.mark.parametrize("role", ["ADMIN", "MANAGER"])
    def test_assign_pending_unassigned_to_regular(self, make_context, role):
        decision = self.policy.evaluate(
            make_context(role), TaskOperation.ASSIGN, task=_task(), assignee=self.regular,
        )
        assert decision.allowed is True

    def test_assign_inprogress_allowed(self, make_context):
        decision = self.policy.evaluate(
            make_context("MANAGER"), TaskOperation.ASSIGN,
            task=_task(status=TaskStatus.INPROGRESS.value), assignee=self.regular,
        )
        assert decision.allowed is True

    @pytest.mark.parametrize("assignee_role,reason", [
        ("ADMIN", "Cannot assign task to ADMIN"),
        ("MANAGER", "Cannot assign task to MANAGER"),
    ])
    def test_assignee_must_be_regular(self, make_context, assignee_role, reason):
        decision = self.policy.evaluate(
            make_context("MANAGER"), TaskOperation.ASSIGN,
            task=_task(), assignee=AssigneeState(user_id="x", role=assignee_role),
        )
        assert decision.allowed is False
        assert decision.error is InvalidAssignmentError
        assert decision.reason == reason

    def test_completed_task_rejected(self, make_context):
        decision = self.policy.evaluate(
            make_context("ADMIN"), TaskOperation.ASSIGN,
            task=_task(status="COMPLETED"), assignee=self.regular,
        )
        assert decision.error is InvalidAssignmentError
        assert decision.reason == "Cannot assign completed task"

    def test_already_assigned_rejected(self, make_context):
        decision = self.policy.evaluate(
            make_context("ADMIN"), TaskOperation.ASSIGN,
            task=_task(assigned_to="r9"), assignee=self.regular,
        )
        assert decision.error is InvalidAssignmentError
        assert decision.reason == "Task already assigned"

    def test_admin_assignee_checked_before_completed(self, make_context):
        decision = self.policy.evaluate(
            make_context("ADMIN"), TaskOperation.ASSIGN,
            task=_task(status="COMPLETED"), assignee=AssigneeState(user_id="a", role="ADMIN"),
        )
        assert decision.reason == "Cannot assign task to ADMIN"


class TestUpdateRole:
    def test_admin_allowed(self, make_context):
        assert TaskPolicy().evaluate(make_context("ADMIN"), TaskOperation.UPDATE_ROLE).allowed is True

    @pytest.mark.parametrize("role", ["MANAGER", "REGULAR"])
    def test_others_denied(self, make_context, role):
        decision = TaskPolicy().evaluate(make_context(role), TaskOperation.UPDATE_ROLE)
        assert decision.allowed is False
        assert decision.error is TaskGuardianSecurityError


class TestEnforce:
    def test_allowed_returns_none(self, make_context):
        assert TaskPolicy().enforce(make_context("ADMIN"), TaskOperation.UPDATE_ROLE) is None

    def test_raises_security_error(self, make_context):
        with pytest.raises(TaskGuardianSecurityError) as exc_info:
            TaskPolicy().enforce(make_context("REGULAR", user_id="r1"), TaskOperation.ASSIGN)
        err = exc_info.value
        assert err.status_code == 401
        assert err.message == "Unauthorized"
        assert err.operation == "assign"
        assert err.user_id == "r1"

    def test_raises_invalid_assignment(self, make_context):
        with pytest.raises(InvalidAssignmentError) as exc_info:
            TaskPolicy().enforce(
                make_context("MANAGER"), TaskOperation.ASSIGN,
                task=_task(assigned_to="r2"),
                assignee=AssigneeState(user_id="r1", role="REGULAR"),
            )
        assert exc_info.value.status_code == 400
        assert exc_info.value.task_id == "t1"
        assert exc_info.value.assignee_id == "r1"


class TestConfiguredRoles:
    def test_roles_default_to_platform_roles(self):
        assert TaskPolicy().roles == ("ADMIN", "MANAGER", "REGULAR")

    def test_caller_outside_configured_roles_denied(self, make_context):
        policy = TaskPolicy(roles=("ADMIN", "MANAGER"))
        decision = policy.evaluate(make_context("REGULAR"), TaskOperation.LIST)
        assert decision.allowed is False

    def test_app_wires_config_roles(self, app, config):
        services = app.state.services
        assert services.tasks._policy.roles == config.roles
        assert services.users._policy.roles == config.roles
