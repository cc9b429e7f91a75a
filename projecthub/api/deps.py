from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from projecthub.schemas.users import User
from projecthub.services.user_service import get_user
from projecthub.settings import Settings, get_settings
from projecthub.util.security import bearer_from_header, decode_token

logger = logging.getLogger(__name__)

_AUTH_MESSAGES = {
    "missing": "Not authenticated",
    "invalid": "Invalid token",
    "expired": "Session expired",
}


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> User:
    token = bearer_from_header(authorization) or request.cookies.get(settings.SESSION_COOKIE_NAME)
    check = decode_token(secret_key=settings.SECRET_KEY, token=token)
    if not check.ok:
        raise HTTPException(status_code=401, detail=_AUTH_MESSAGES.get(check.reason, "Not authenticated"))

    user = get_user(str(check.user.get("id", "")))
    if user is None:
        logger.info("Token for unknown user rejected. user_id=%s", check.user.get("id"))
        raise HTTPException(status_code=401, detail="Invalid token")
    return user
