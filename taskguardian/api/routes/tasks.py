"""Task routes — /api/task."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from taskguardian.api.dependencies import Services, get_request_context, get_services
from taskguardian.api.schemas import (
    ERROR_RESPONSES,
    AssignTaskRequest,
    NewTaskRequest,
    TaskOut,
    TaskResponse,
    TaskStatusRequest,
)
from taskguardian.engine.context import RequestContext

router = APIRouter(prefix="/api/task", tags=["Task Management"])


@router.get("", response_model=List[TaskOut], summary="Get all tasks", responses={401: ERROR_RESPONSES[401]})
def list_tasks(
    caller: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
):
    return [task.to_dict() for task in services.tasks.list_tasks(caller)]


@router.post("", response_model=TaskResponse, summary="Create a new task", responses=ERROR_RESPONSES)
def create_task(
    payload: NewTaskRequest,
    caller: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
):
    task = services.tasks.create_task(caller, payload.title, payload.description)
    return {"state": "success", "task": task.to_dict()}


@router.put("/{task_id}", response_model=TaskResponse, summary="Update task status", responses=ERROR_RESPONSES)
def update_task_status(
    task_id: str,
    payload: TaskStatusRequest,
    caller: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
):
    task = services.tasks.update_status(caller, task_id, payload.status)
    return {"state": "success", "task": task.to_dict()}


@router.delete("/{task_id}", response_model=TaskResponse, summary="Delete task", responses=ERROR_RESPONSES)
def delete_task(
    task_id: str,
    caller: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
):
    task = services.tasks.delete_task(caller, task_id)
    return {"state": "success", "task": task.to_dict()}


@router.put("/{task_id}/assign", response_model=TaskResponse, summary="Assign task to user", responses=ERROR_RESPONSES)
def assign_task(
    task_id: str,
    payload: AssignTaskRequest,
    caller: RequestContext = Depends(get_request_context),
    services: Services = Depends(get_services),
):
    task = services.tasks.assign_task(caller, task_id, payload.assigned_to)
    return {"state": "success", "task": task.to_dict()}
