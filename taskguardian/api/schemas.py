"""
Request and response models for the HTTP surface.

Request fields are optional at the schema level: presence and value checks
live in the services so that missing fields produce the documented
{"message": ...} errors instead of framework validation errors.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class SignupRequest(BaseModel):
    username: Optional[str] = Field(default=None, description="3-50 characters")
    password: Optional[str] = Field(default=None, description="5-1024 characters")
    role: Optional[str] = Field(default=None, description="ADMIN / MANAGER / REGULAR")


class LoginRequest(BaseModel):
    name: Optional[str] = Field(default=None, description="Username")
    username: Optional[str] = Field(default=None, description="Alias of name")
    password: Optional[str] = None


class NewTaskRequest(BaseModel):
    title: Optional[str] = Field(default=None, description="3-50 characters")
    description: Optional[str] = Field(default=None, description="3-255 characters")


class TaskStatusRequest(BaseModel):
    status: Optional[str] = Field(default=None, description="PENDING / INPROGRESS / COMPLETED")


class AssignTaskRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assigned_to: Optional[str] = Field(
        default=None, alias="assignedTo", description="ID of a REGULAR user",
    )


class UpdateRoleRequest(BaseModel):
    id: Optional[str] = Field(default=None, description="ID of the user to update")
    role: Optional[str] = Field(default=None, description="ADMIN / MANAGER / REGULAR")


# ---------------------------------------------------------------------------
# Responses (documentation)
# ---------------------------------------------------------------------------

class ErrorResponse(BaseModel):
    message: str


class TaskOut(BaseModel):
    id: str
    title: str
    description: str
    status: str
    createdBy: str
    assignedTo: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class UserOut(BaseModel):
    id: str
    username: str
    role: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class SessionResponse(BaseModel):
    state: str = "success"
    session: str


class TaskResponse(BaseModel):
    state: str = "success"
    task: TaskOut


class UserResponse(BaseModel):
    state: str = "success"
    user: UserOut


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    database: bool


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request or missing required fields"},
    401: {"model": ErrorResponse, "description": "Unauthorized or no token provided"},
    404: {"model": ErrorResponse, "description": "Task or user not found"},
    500: {"model": ErrorResponse, "description": "Internal Server Error"},
}
