from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response

from projecthub.api.deps import get_current_user
from projecthub.schemas.users import LoginRequest, RegisterRequest, User, UserSummary
from projecthub.services.user_service import authenticate, create_user
from projecthub.settings import Settings, get_settings
from projecthub.util.security import issue_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth")


def _session(user: User, response: Response, settings: Settings) -> dict[str, Any]:
    summary = UserSummary.of(user)
    token = issue_token(
        secret_key=settings.SECRET_KEY,
        user=summary.model_dump(),
        ttl_seconds=settings.TOKEN_TTL_SECONDS,
    )
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.TOKEN_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.ENV == "prod",
    )
    return {"user": summary.model_dump(), "token": token}


@router.post("/register")
def register(req: RegisterRequest, response: Response, settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    user = create_user(req)
    return _session(user, response, settings)


@router.post("/login")
def login(req: LoginRequest, response: Response, settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    user = authenticate(req.username, req.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    logger.info("User logged in. user_id=%s", user.id)
    return _session(user, response, settings)


@router.get("/me")
def me(user: User = Depends(get_current_user)) -> UserSummary:
    return UserSummary.of(user)


@router.post("/logout")
def logout(response: Response, settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"ok": True}
