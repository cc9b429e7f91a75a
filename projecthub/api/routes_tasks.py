from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends

from projecthub.api.deps import get_current_user
from projecthub.schemas.tasks import BatchDeleteRequest, TaskCreate, TaskPriority, TaskStatus, TaskUpdate, TaskView
from projecthub.schemas.users import User
from projecthub.services import task_service

router = APIRouter(prefix="/api/tasks")


@router.get("")
def list_tasks(
    project_id: Optional[str] = None,
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    sort: Optional[str] = None,
    user: User = Depends(get_current_user),
) -> list[TaskView]:
    return task_service.list_tasks(user.id, project_id=project_id, status=status, priority=priority, sort=sort)


@router.get("/board")
def board(project_id: Optional[str] = None, user: User = Depends(get_current_user)) -> dict[str, list[TaskView]]:
    views = task_service.list_tasks(user.id, project_id=project_id, sort="priority")
    return {k: list(v) for k, v in task_service.group_by_status(views).items()}


@router.post("")
def create_task(req: TaskCreate, user: User = Depends(get_current_user)) -> TaskView:
    return task_service.to_view(task_service.create_task(user.id, req))


@router.post("/batch-delete")
def batch_delete(req: BatchDeleteRequest, user: User = Depends(get_current_user)) -> dict[str, Any]:
    deleted = task_service.batch_delete(user.id, req.task_ids)
    return {"ok": True, "deleted_count": deleted, "requested_count": len(req.task_ids)}


@router.get("/{task_id}")
def get_task(task_id: str, user: User = Depends(get_current_user)) -> TaskView:
    return task_service.to_view(task_service.require_task_access(user.id, task_id))


@router.put("/{task_id}")
def update_task(task_id: str, req: TaskUpdate, user: User = Depends(get_current_user)) -> TaskView:
    return task_service.to_view(task_service.update_task(user.id, task_id, req))


@router.delete("/{task_id}")
def delete_task(task_id: str, user: User = Depends(get_current_user)) -> dict[str, Any]:
    task_service.delete_task(user.id, task_id)
    return {"ok": True}
