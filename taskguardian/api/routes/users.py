"""User management routes — /api/user."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from taskguardian.api.dependencies import Services, get_request_context, get_services
from taskguardian.api.schemas import ERROR_RESPONSES, UpdateRoleRequest, UserResponse
from taskguardian.engine.context import RequestContext

router = APIRouter(prefix="/api/user", tags=["User Management"])


@router.put("/update", response_model=UserResponse, summary="Update user role", responses=ERROR_RESPONSES)
def update_user_role(
    payload: UpdateRoleRequest,
    caller: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
):
    user = services.users.update_role(caller, payload.id, payload.role)
    return {"state": "success", "user": user.to_dict()}
