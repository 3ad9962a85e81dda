"""
Task Guardian Error Hierarchy — Structured exceptions mapped to HTTP status codes.

Every error carries a message plus free-form context. The API layer renders
only the message (``{"message": ...}``); the full ``to_dict()`` form goes to
the structured log files.

Hierarchy:
    TaskGuardianError                  — 500
    ├── TaskGuardianValidationError    — 400  Missing/malformed input
    │   └── InvalidAssignmentError     — 400  Assignment rule violated
    ├── TaskGuardianSecurityError      — 401  Bad credentials / forbidden role
    ├── TaskGuardianSessionError       — 401  Bearer token problem
    │   ├── MissingTokenError
    │   └── InvalidTokenError
    ├── TaskGuardianNotFoundError      — 404  Task or user not found
    ├── TaskGuardianConflictError      — 409  Duplicate username
    ├── TaskGuardianRecordError        — 500  Persistence failure
    └── TaskGuardianConfigError        — 500  Invalid taskguardian.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class TaskGuardianError(Exception):
    """
    Base error for all Task Guardian failures.
    All context is serializable to JSON.
    """

    status_code: int = 500

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.request_id: Optional[str] = context.get("request_id")
        self.user_id: Optional[str] = context.get("user_id")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "status_code": self.status_code,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("request_id", "user_id")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.user_id:
            parts.append(f"user_id={self.user_id}")
        if self.request_id:
            parts.append(f"request_id={self.request_id}")
        return " | ".join(parts)


class TaskGuardianValidationError(TaskGuardianError):
    """
    Input validation failed (missing field, bad length, unknown enum value).
    Includes field-level error details when available.
    """

    status_code = 400

    def __init__(self, message: str, **context: Any):
        self.field: Optional[str] = context.get("field")
        self.validation_errors: Optional[list] = context.get("validation_errors")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        d["validation_errors"] = self.validation_errors
        return d


class InvalidAssignmentError(TaskGuardianValidationError):
    """Assignee is not REGULAR, task is COMPLETED, or task already assigned."""

    def __init__(self, message: str, **context: Any):
        self.task_id: Optional[str] = context.get("task_id")
        self.assignee_id: Optional[str] = context.get("assignee_id")
        super().__init__(message, **context)


class TaskGuardianSecurityError(TaskGuardianError):
    """
    Access denied. Logged to the security log files.
    Includes the caller's role and the operation that was denied.
    """

    status_code = 401

    def __init__(self, message: str, **context: Any):
        self.role: Optional[str] = context.get("role")
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["role"] = self.role
        d["operation"] = self.operation
        return d


class TaskGuardianSessionError(TaskGuardianError):
    """Bearer session token error."""

    status_code = 401


class MissingTokenError(TaskGuardianSessionError):
    """No Authorization header on a protected route."""

    def __init__(self, message: str = "No token provided", **context: Any):
        super().__init__(message, **context)


class InvalidTokenError(TaskGuardianSessionError):
    """Signature, format, claims or expiry check failed."""

    def __init__(self, message: str = "Invalid token", **context: Any):
        super().__init__(message, **context)


class TaskGuardianNotFoundError(TaskGuardianError):
    """Task or user reference not found."""

    status_code = 404

    def __init__(self, message: str, **context: Any):
        self.record_type: Optional[str] = context.get("record_type")
        self.record_id: Optional[str] = context.get("record_id")
        super().__init__(message, **context)


class TaskGuardianConflictError(TaskGuardianError):
    """Unique constraint violated (duplicate username)."""

    status_code = 409


class TaskGuardianRecordError(TaskGuardianError):
    """Record operation failed (create, update, delete, query)."""

    def __init__(self, message: str, **context: Any):
        self.record_type: Optional[str] = context.get("record_type")
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)


class TaskGuardianConfigError(TaskGuardianError):
    """Configuration error — invalid taskguardian.yaml or environment."""
    pass
