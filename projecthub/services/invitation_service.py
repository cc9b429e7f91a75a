from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from projecthub.errors import AccessDeniedError, ConflictError, NotFoundError, ValidationFailedError
from projecthub.schemas.projects import Invitation, InviteRequest, ProjectMember
from projecthub.services.member_service import add_member, is_member
from projecthub.services.notification_service import create_notification
from projecthub.services.project_service import project_invitations_index, require_owner, require_project
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
from projecthub.services.user_service import get_user, get_user_by_email, require_user
from projecthub.settings import get_settings
from projecthub.util.security import is_valid_email, new_invitation_token
from projecthub.util.time import ensure_utc

logger = logging.getLogger(__name__)

KIND = "invitation"


def _token_key(token: str) -> str:
    return f"invitation_by_token:{token}"


def _email_index(email: str) -> str:
    return f"invitations_by_email:{email.strip().lower()}"


def get_invitation_by_token(token: str) -> Optional[Invitation]:
    return load_record(KIND, get_lookup(_token_key(token)), Invitation)


def list_project_invitations(project_id: str) -> list[Invitation]:
    return load_many(KIND, index_members(project_invitations_index(project_id)), Invitation)


def invite(inviter_id: str, project_id: str, req: InviteRequest) -> Invitation:
    email = (req.email or "").strip().lower()
    if not email:
        raise ValidationFailedError("Email is required")
    if not is_valid_email(email):
        raise ValidationFailedError("Invalid email format")

    project = require_owner(inviter_id, project_id, "Only project owners can invite members")
    inviter = require_user(inviter_id)

    existing_user = get_user_by_email(email)
    if existing_user is not None:
        if existing_user.id == project.owner_id:
            raise ConflictError("User is already the project owner")
        if is_member(project_id, existing_user.id):
            raise ConflictError("User is already a project member")

    if any(inv.invitee_email == email and inv.status == "pending" for inv in list_project_invitations(project_id)):
        raise ConflictError("Invitation already sent to this email")

    settings = get_settings()
    now = now_utc()
    invitation = Invitation(
        id=new_id(),
        project_id=project_id,
        inviter_user_id=inviter_id,
        invitee_email=email,
        role=req.role,
        token=new_invitation_token(),
        expires_at=now + timedelta(days=settings.INVITATION_TTL_DAYS),
        created_at=now,
    )
    set_lookup(_token_key(invitation.token), invitation.id)
    save_record(KIND, invitation)
    index_add(project_invitations_index(project_id), invitation.id)
    index_add(_email_index(email), invitation.id)

    if existing_user is not None:
        create_notification(
            user_id=existing_user.id,
            title="Project Invitation",
            message=f'{inviter.name} invited you to join "{project.name}" as a {req.role}',
            type="invitation",
            data={
                "invitation_id": invitation.id,
                "project_id": project_id,
                "project_name": project.name,
                "inviter_name": inviter.name,
                "role": req.role,
                "token": invitation.token,
            },
        )

    logger.info("Invitation created. project_id=%s email=%s role=%s", project_id, email, req.role)
    return invitation


def _pending_or_raise(invitation: Optional[Invitation], *, now: Optional[datetime] = None) -> Invitation:
    if invitation is None:
        raise NotFoundError("Invitation not found")
    if invitation.status != "pending":
        raise ConflictError(f"Invitation already {invitation.status}")
    now = now or now_utc()
    if ensure_utc(invitation.expires_at) < now:
        save_record(KIND, invitation.model_copy(update={"status": "expired"}))
        raise ConflictError("Invitation has expired")
    return invitation


def accept(user_id: str, token: str) -> ProjectMember:
    invitation = _pending_or_raise(get_invitation_by_token(token))
    user = require_user(user_id)
    if user.email != invitation.invitee_email:
        raise AccessDeniedError("Invitation was sent to a different email")
    require_project(invitation.project_id)

    member = add_member(invitation.project_id, user_id, invitation.role)
    save_record(KIND, invitation.model_copy(update={"status": "accepted", "responded_at": now_utc()}))

    inviter = get_user(invitation.inviter_user_id)
    if inviter is not None:
        create_notification(
            user_id=inviter.id,
            title="Invitation accepted",
            message=f"{user.name} joined your project",
            type="project",
            data={"project_id": invitation.project_id, "user_id": user_id},
        )
    return member


def decline(user_id: str, token: str) -> Invitation:
    invitation = _pending_or_raise(get_invitation_by_token(token))
    user = require_user(user_id)
    if user.email != invitation.invitee_email:
        raise AccessDeniedError("Invitation was sent to a different email")
    updated = invitation.model_copy(update={"status": "declined", "responded_at": now_utc()})
    save_record(KIND, updated)
    return updated


def list_for_user(user_id: str) -> list[Invitation]:
    """Pending, unexpired invitations addressed to the user's email."""
    user = require_user(user_id)
    now = now_utc()
    items = load_many(KIND, index_members(_email_index(user.email)), Invitation)
    return [i for i in items if i.status == "pending" and ensure_utc(i.expires_at) >= now]


def expire_stale(now: Optional[datetime] = None) -> int:
    """Marks pending invitations past their expiry; returns how many changed."""
    now = now or now_utc()
    expired = 0
    for inv in load_many(KIND, index_members(f"{KIND}:all"), Invitation):
        if inv.status == "pending" and ensure_utc(inv.expires_at) < now:
            save_record(KIND, inv.model_copy(update={"status": "expired"}))
            expired += 1
    if expired:
        logger.info("Expired stale invitations. count=%s", expired)
    return expired


def drop_project_invitations(project_id: str) -> None:
    for inv in list_project_invitations(project_id):
        clear_lookup(_token_key(inv.token))
        index_remove(_email_index(inv.invitee_email), inv.id)
        delete_record(KIND, inv.id)
    drop_index(project_invitations_index(project_id))
