from __future__ import annotations

from fastapi import APIRouter, Depends

from projecthub.api.deps import get_current_user
from projecthub.schemas.projects import Invitation, ProjectMember
from projecthub.schemas.users import User
from projecthub.services import invitation_service

router = APIRouter(prefix="/api")


@router.get("/my-invitations")
def my_invitations(user: User = Depends(get_current_user)) -> list[Invitation]:
    return invitation_service.list_for_user(user.id)


@router.post("/invitations/{token}/accept")
def accept(token: str, user: User = Depends(get_current_user)) -> ProjectMember:
    return invitation_service.accept(user.id, token)


@router.post("/invitations/{token}/decline")
def decline(token: str, user: User = Depends(get_current_user)) -> Invitation:
    return invitation_service.decline(user.id, token)
