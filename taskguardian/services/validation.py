"""Field checks shared by the services."""

from __future__ import annotations

from typing import Any, Optional

from taskguardian.engine.errors import TaskGuardianValidationError

# (min, max) lengths
USERNAME_LENGTH = (3, 50)
PASSWORD_LENGTH = (5, 1024)
TITLE_LENGTH = (3, 50)
DESCRIPTION_LENGTH = (3, 255)


def is_blank(value: Any) -> bool:
    """True for None, empty and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def require_length(field: str, value: str, bounds: tuple) -> str:
    low, high = bounds
    if not isinstance(value, str):
        raise TaskGuardianValidationError(f"{field} must be a string", field=field)
    if not low <= len(value) <= high:
        raise TaskGuardianValidationError(
            f"{field} must be between {low} and {high} characters",
            field=field,
        )
    return value


def require_choice(field: str, value: Optional[str], choices, message: str) -> str:
    if value not in choices:
        raise TaskGuardianValidationError(message, field=field)
    return value
