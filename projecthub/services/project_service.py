from __future__ import annotations

import logging
import math
from typing import Optional

from projecthub.errors import AccessDeniedError, NotFoundError
from projecthub.schemas.projects import Project, ProjectCreate, ProjectUpdate, ProjectView
from projecthub.schemas.tasks import Task
from projecthub.services.record_store_service import (
    apply_changes,
    delete_record,
    drop_index,
    index_add,
    index_members,
    index_remove,
    load_many,
    load_record,
    new_id,
    now_utc,
    save_record,
)

logger = logging.getLogger(__name__)

KIND = "project"


def user_projects_index(user_id: str) -> str:
    return f"user:{user_id}:projects"


def project_tasks_index(project_id: str) -> str:
    return f"project:{project_id}:tasks"


def project_meetings_index(project_id: str) -> str:
    return f"project:{project_id}:meetings"


def project_members_index(project_id: str) -> str:
    return f"project:{project_id}:members"


def project_invitations_index(project_id: str) -> str:
    return f"project:{project_id}:invitations"


def get_project(project_id: str) -> Optional[Project]:
    return load_record(KIND, project_id, Project)


def require_project(project_id: str) -> Project:
    project = get_project(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


def accessible_project_ids(user_id: str) -> set[str]:
    """Projects the user owns or is a member of."""
    return index_members(user_projects_index(user_id))


def has_access(user_id: str, project_id: str) -> bool:
    return project_id in accessible_project_ids(user_id)


def require_access(user_id: str, project_id: str) -> Project:
    project = require_project(project_id)
    if not has_access(user_id, project_id):
        raise AccessDeniedError("Access denied")
    return project


def require_owner(user_id: str, project_id: str, message: str = "Only the project owner can do this") -> Project:
    project = require_project(project_id)
    if project.owner_id != user_id:
        raise AccessDeniedError(message)
    return project


def list_accessible_projects(user_id: str) -> list[Project]:
    projects = load_many(KIND, accessible_project_ids(user_id), Project)
    projects.sort(key=lambda p: p.updated_at, reverse=True)
    return projects


def project_tasks(project_id: str) -> list[Task]:
    return load_many("task", index_members(project_tasks_index(project_id)), Task)


def member_count(project_id: str) -> int:
    # Owner is not stored as a member row
    return len(index_members(project_members_index(project_id))) + 1


def progress_of(tasks: list[Task]) -> int:
    if not tasks:
        return 0
    completed = sum(1 for t in tasks if t.status == "completed")
    # Halves round up
    return math.floor(completed / len(tasks) * 100 + 0.5)


def to_view(project: Project, user_id: str) -> ProjectView:
    tasks = project_tasks(project.id)
    completed = sum(1 for t in tasks if t.status == "completed")
    return ProjectView(
        **project.model_dump(),
        member_count=member_count(project.id),
        total_tasks=len(tasks),
        completed_tasks=completed,
        my_tasks=sum(1 for t in tasks if t.assignee_id == user_id),
        actual_progress=progress_of(tasks),
        is_owner=project.owner_id == user_id,
    )


def list_projects(user_id: str) -> list[ProjectView]:
    return [to_view(p, user_id) for p in list_accessible_projects(user_id)]


def create_project(owner_id: str, req: ProjectCreate) -> Project:
    now = now_utc()
    project = Project(
        id=new_id(),
        name=req.name.strip(),
        description=req.description,
        status=req.status,
        owner_id=owner_id,
        due_date=req.due_date,
        created_at=now,
        updated_at=now,
    )
    save_record(KIND, project)
    index_add(user_projects_index(owner_id), project.id)
    logger.info("Project created. project_id=%s owner_id=%s", project.id, owner_id)
    return project


def update_project(project_id: str, updates: ProjectUpdate) -> Project:
    project = require_project(project_id)
    changes = updates.model_dump(exclude_unset=True)
    updated = apply_changes(project, {**changes, "updated_at": now_utc()})
    save_record(KIND, updated)
    return updated


def recalculate_progress(project_id: str) -> int:
    project = get_project(project_id)
    if project is None:
        return 0
    tasks = project_tasks(project_id)
    progress = progress_of(tasks)
    save_record(KIND, project.model_copy(update={"progress": progress, "updated_at": now_utc()}))
    logger.info(
        "Updated project progress. project_id=%s completed=%s total=%s progress=%s",
        project_id,
        sum(1 for t in tasks if t.status == "completed"),
        len(tasks),
        progress,
    )
    return progress


def delete_project(user_id: str, project_id: str) -> None:
    """Owner-only; removes tasks, meetings, members and invitations first."""
    project = require_owner(user_id, project_id, "Only project owner can delete this project")

    for task_id in index_members(project_tasks_index(project_id)):
        delete_record("task", task_id)
    drop_index(project_tasks_index(project_id))

    from projecthub.services.invitation_service import drop_project_invitations
    from projecthub.services.meeting_service import drop_project_meetings
    from projecthub.services.member_service import drop_project_members

    drop_project_meetings(project_id)
    drop_project_members(project_id)
    drop_project_invitations(project_id)

    index_remove(user_projects_index(project.owner_id), project_id)
    delete_record(KIND, project_id)
    logger.info("Project deleted with related data. project_id=%s", project_id)
