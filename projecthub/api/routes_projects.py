from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from projecthub.api.deps import get_current_user
from projecthub.schemas.projects import (
    Invitation,
    InviteRequest,
    ProjectCreate,
    ProjectMemberView,
    ProjectUpdate,
    ProjectView,
)
from projecthub.schemas.users import User
from projecthub.services import invitation_service, member_service, project_service

router = APIRouter(prefix="/api")


@router.get("/projects")
def list_projects(user: User = Depends(get_current_user)) -> list[ProjectView]:
    return project_service.list_projects(user.id)


@router.post("/projects")
def create_project(req: ProjectCreate, user: User = Depends(get_current_user)) -> ProjectView:
    project = project_service.create_project(user.id, req)
    return project_service.to_view(project, user.id)


@router.post("/projects/recalculate-all-progress")
def recalculate_all(user: User = Depends(get_current_user)) -> dict[str, Any]:
    results = {pid: project_service.recalculate_progress(pid) for pid in project_service.accessible_project_ids(user.id)}
    return {"ok": True, "updated": len(results), "progress": results}


@router.get("/projects/{project_id}")
def get_project(project_id: str, user: User = Depends(get_current_user)) -> ProjectView:
    project = project_service.require_access(user.id, project_id)
    return project_service.to_view(project, user.id)


@router.put("/projects/{project_id}")
def update_project(project_id: str, req: ProjectUpdate, user: User = Depends(get_current_user)) -> ProjectView:
    project_service.require_access(user.id, project_id)
    project = project_service.update_project(project_id, req)
    return project_service.to_view(project, user.id)


@router.delete("/projects/{project_id}")
def delete_project(project_id: str, user: User = Depends(get_current_user)) -> dict[str, Any]:
    project_service.delete_project(user.id, project_id)
    return {"ok": True}


@router.post("/projects/{project_id}/recalculate-progress")
def recalculate_progress(project_id: str, user: User = Depends(get_current_user)) -> dict[str, Any]:
    project_service.require_access(user.id, project_id)
    return {"ok": True, "progress": project_service.recalculate_progress(project_id)}


@router.get("/projects/{project_id}/members")
def list_members(project_id: str, user: User = Depends(get_current_user)) -> list[ProjectMemberView]:
    project_service.require_access(user.id, project_id)
    return member_service.list_members(project_id)


@router.delete("/projects/{project_id}/members/{member_user_id}")
def remove_member(project_id: str, member_user_id: str, user: User = Depends(get_current_user)) -> dict[str, Any]:
    member_service.remove_member(user.id, project_id, member_user_id)
    return {"ok": True}


@router.post("/projects/{project_id}/invite")
def invite(project_id: str, req: InviteRequest, user: User = Depends(get_current_user)) -> Invitation:
    return invitation_service.invite(user.id, project_id, req)


@router.get("/projects/{project_id}/invitations")
def list_invitations(project_id: str, user: User = Depends(get_current_user)) -> list[Invitation]:
    project_service.require_owner(user.id, project_id, "Only project owners can view invitations")
    return invitation_service.list_project_invitations(project_id)


@router.get("/project-members")
def team(user: User = Depends(get_current_user)) -> list[ProjectMemberView]:
    return member_service.list_team(user.id)
