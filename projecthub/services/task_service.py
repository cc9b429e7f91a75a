from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from projecthub.errors import AccessDeniedError, NotFoundError, ValidationFailedError
from projecthub.schemas.tasks import PRIORITY_RANK, Task, TaskCreate, TaskUpdate, TaskView
from projecthub.services.project_service import (
    accessible_project_ids,
    has_access,
    project_tasks_index,
    recalculate_progress,
    require_access,
)
from projecthub.services.record_store_service import (
    apply_changes,
    delete_record,
    index_add,
    index_members,
    index_remove,
    load_many,
    load_record,
    new_id,
    now_utc,
    save_record,
)
from projecthub.util.time import days_until, ensure_utc

logger = logging.getLogger(__name__)

KIND = "task"

STATUS_COLUMNS = ("todo", "in_progress", "completed")


def automatic_priority(task: Task, now: Optional[datetime] = None) -> str:
    """
    Priority re-ranked by how close the due date is:
    overdue -> urgent, due within a day -> high, a low task due within three
    days -> medium. Tasks without a due date keep their stored priority.
    """
    if task.due_date is None:
        return task.priority
    days = days_until(task.due_date, now or now_utc())
    if days < 0:
        return "urgent"
    if days <= 1:
        return "high"
    if days <= 3 and task.priority == "low":
        return "medium"
    return task.priority


def to_view(task: Task, now: Optional[datetime] = None) -> TaskView:
    auto = automatic_priority(task, now)
    return TaskView(**task.model_dump(), automatic_priority=auto, auto_prioritized=auto != task.priority)


def sort_by_priority(tasks: list[Task], now: Optional[datetime] = None) -> list[Task]:
    now = now or now_utc()

    def key(t: Task):
        due = ensure_utc(t.due_date)
        return (
            -PRIORITY_RANK[automatic_priority(t, now)],
            0 if due is not None else 1,
            due.timestamp() if due is not None else 0.0,
            -ensure_utc(t.created_at).timestamp(),
        )

    return sorted(tasks, key=key)


def group_by_status(tasks: list[Task]) -> dict[str, list[Task]]:
    groups: dict[str, list[Task]] = {s: [] for s in STATUS_COLUMNS}
    for t in tasks:
        groups[t.status].append(t)
    return groups


def get_task(task_id: str) -> Optional[Task]:
    return load_record(KIND, task_id, Task)


def require_task_access(user_id: str, task_id: str) -> Task:
    task = get_task(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    if not has_access(user_id, task.project_id):
        raise AccessDeniedError("Access denied")
    return task


def list_tasks(
    user_id: str,
    *,
    project_id: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    sort: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[TaskView]:
    now = now or now_utc()
    if project_id:
        require_access(user_id, project_id)
        project_ids = {project_id}
    else:
        project_ids = accessible_project_ids(user_id)

    tasks: list[Task] = []
    for pid in project_ids:
        tasks.extend(load_many(KIND, index_members(project_tasks_index(pid)), Task))

    if status:
        tasks = [t for t in tasks if t.status == status]
    if priority:
        tasks = [t for t in tasks if automatic_priority(t, now) == priority]

    if sort == "priority":
        tasks = sort_by_priority(tasks, now)
    else:
        tasks.sort(key=lambda t: ensure_utc(t.created_at), reverse=True)
    return [to_view(t, now) for t in tasks]


def create_task(user_id: str, req: TaskCreate) -> Task:
    require_access(user_id, req.project_id)
    now = now_utc()
    task = Task(
        id=new_id(),
        title=req.title.strip(),
        description=req.description,
        status=req.status,
        priority=req.priority,
        project_id=req.project_id,
        assignee_id=req.assignee_id,
        updated_by=user_id,
        due_date=req.due_date,
        created_at=now,
        updated_at=now,
    )
    save_record(KIND, task)
    index_add(project_tasks_index(task.project_id), task.id)
    recalculate_progress(task.project_id)
    logger.info("Task created. task_id=%s project_id=%s", task.id, task.project_id)
    return task


def update_task(user_id: str, task_id: str, updates: TaskUpdate) -> Task:
    task = require_task_access(user_id, task_id)
    changes = updates.model_dump(exclude_unset=True)
    if "title" in changes and changes["title"] is not None:
        changes["title"] = changes["title"].strip()
    updated = apply_changes(task, {**changes, "updated_by": user_id, "updated_at": now_utc()})
    save_record(KIND, updated)
    if updated.status != task.status:
        recalculate_progress(task.project_id)
    return updated


def _drop_task(task: Task) -> None:
    index_remove(project_tasks_index(task.project_id), task.id)
    delete_record(KIND, task.id)


def delete_task(user_id: str, task_id: str) -> None:
    task = require_task_access(user_id, task_id)
    _drop_task(task)
    recalculate_progress(task.project_id)
    logger.info("Task deleted. task_id=%s project_id=%s", task_id, task.project_id)


def batch_delete(user_id: str, task_ids: list[str]) -> int:
    """Deletes the accessible tasks among task_ids; unknown ids are ignored."""
    if not task_ids:
        raise ValidationFailedError("Task IDs array is required")
    touched: set[str] = set()
    deleted = 0
    for task_id in task_ids:
        task = get_task(task_id)
        if task is None:
            continue
        if not has_access(user_id, task.project_id):
            raise AccessDeniedError("Access denied")
        _drop_task(task)
        touched.add(task.project_id)
        deleted += 1
    for pid in touched:
        recalculate_progress(pid)
    logger.info("Batch deleted tasks. requested=%s deleted=%s", len(task_ids), deleted)
    return deleted
