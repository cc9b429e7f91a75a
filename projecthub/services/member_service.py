from __future__ import annotations

import logging
from typing import Optional

from projecthub.errors import ConflictError
from projecthub.schemas.projects import ProjectMember, ProjectMemberView
from projecthub.schemas.users import UserSummary
from projecthub.services.project_service import (
    list_accessible_projects,
    project_members_index,
    require_owner,
    user_projects_index,
)
from projecthub.services.record_store_service import (
    clear_lookup,
    delete_record,
    drop_index,
    get_lookup,
    index_add,
    index_members,
    index_remove,
    load_many,
    load_record,
    new_id,
    now_utc,
    save_record,
    set_lookup,
)
from projecthub.services.user_service import get_user

logger = logging.getLogger(__name__)

KIND = "project_member"


def _member_lookup_key(project_id: str, user_id: str) -> str:
    return f"project_member_by_user:{project_id}:{user_id}"


def get_membership(project_id: str, user_id: str) -> Optional[ProjectMember]:
    return load_record(KIND, get_lookup(_member_lookup_key(project_id, user_id)), ProjectMember)


def is_member(project_id: str, user_id: str) -> bool:
    return get_membership(project_id, user_id) is not None


def add_member(project_id: str, user_id: str, role: str = "member") -> ProjectMember:
    member = ProjectMember(id=new_id(), project_id=project_id, user_id=user_id, role=role, joined_at=now_utc())
    if not set_lookup(_member_lookup_key(project_id, user_id), member.id):
        raise ConflictError("User is already a project member")
    save_record(KIND, member)
    index_add(project_members_index(project_id), member.id)
    index_add(user_projects_index(user_id), project_id)
    logger.info("Member added. project_id=%s user_id=%s role=%s", project_id, user_id, role)
    return member


def _drop_member(member: ProjectMember) -> None:
    clear_lookup(_member_lookup_key(member.project_id, member.user_id))
    index_remove(project_members_index(member.project_id), member.id)
    index_remove(user_projects_index(member.user_id), member.project_id)
    delete_record(KIND, member.id)


def remove_member(current_user_id: str, project_id: str, user_id: str) -> None:
    require_owner(current_user_id, project_id, "Only project owners can remove members")
    member = get_membership(project_id, user_id)
    if member is None:
        return
    _drop_member(member)
    logger.info("Member removed. project_id=%s user_id=%s", project_id, user_id)


def drop_project_members(project_id: str) -> None:
    for member in load_many(KIND, index_members(project_members_index(project_id)), ProjectMember):
        _drop_member(member)
    drop_index(project_members_index(project_id))


def _view(member: ProjectMember) -> ProjectMemberView:
    user = get_user(member.user_id)
    return ProjectMemberView(**member.model_dump(), user=UserSummary.of(user) if user else None)


def list_members(project_id: str) -> list[ProjectMemberView]:
    members = load_many(KIND, index_members(project_members_index(project_id)), ProjectMember)
    members.sort(key=lambda m: m.joined_at)
    return [_view(m) for m in members]


def list_team(user_id: str) -> list[ProjectMemberView]:
    """
    Members of every project the user can see. Owners are not stored as member
    rows, so each project's owner is added as a synthetic 'owner' entry.
    """
    out: list[ProjectMemberView] = []
    for project in list_accessible_projects(user_id):
        members = list_members(project.id)
        out.extend(members)
        owner = get_user(project.owner_id)
        if owner is None or any(m.user_id == owner.id for m in members):
            continue
        out.append(
            ProjectMemberView(
                id=f"owner-{project.id}",
                project_id=project.id,
                user_id=owner.id,
                role="owner",
                joined_at=project.created_at,
                user=UserSummary.of(owner),
            )
        )
    return out


def team_member_ids(user_id: str) -> set[str]:
    ids: set[str] = set()
    for project in list_accessible_projects(user_id):
        ids.add(project.owner_id)
        for member in load_many(KIND, index_members(project_members_index(project.id)), ProjectMember):
            ids.add(member.user_id)
    return ids
