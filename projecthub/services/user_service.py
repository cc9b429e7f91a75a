from __future__ import annotations

import logging
from typing import Optional

from projecthub.errors import ConflictError, NotFoundError, ValidationFailedError
from projecthub.schemas.users import ProfileUpdate, RegisterRequest, User
from projecthub.services.record_store_service import (
    apply_changes,
    clear_lookup,
    get_lookup,
    load_record,
    new_id,
    now_utc,
    save_record,
    set_lookup,
)
from projecthub.util.security import hash_password, is_valid_email, verify_password

logger = logging.getLogger(__name__)

KIND = "user"


def _username_key(username: str) -> str:
    return f"user_by_username:{username.strip().lower()}"


def _email_key(email: str) -> str:
    return f"user_by_email:{email.strip().lower()}"


def get_user(user_id: str) -> Optional[User]:
    return load_record(KIND, user_id, User)


def require_user(user_id: str) -> User:
    user = get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user_by_username(username: str) -> Optional[User]:
    return get_user(get_lookup(_username_key(username)))


def get_user_by_email(email: str) -> Optional[User]:
    return get_user(get_lookup(_email_key(email)))


def create_user(req: RegisterRequest) -> User:
    if not is_valid_email(req.email):
        raise ValidationFailedError("Invalid email format")

    user = User(
        id=new_id(),
        username=req.username.strip(),
        email=req.email.strip().lower(),
        name=req.name.strip(),
        password_hash=hash_password(req.password),
        created_at=now_utc(),
    )
    if not set_lookup(_username_key(user.username), user.id):
        raise ConflictError("Username already taken")
    if not set_lookup(_email_key(user.email), user.id):
        clear_lookup(_username_key(user.username))
        raise ConflictError("Email already registered")

    save_record(KIND, user)
    logger.info("User registered. user_id=%s username=%s", user.id, user.username)
    return user


def authenticate(username_or_email: str, password: str) -> Optional[User]:
    ident = (username_or_email or "").strip()
    user = get_user_by_email(ident) if "@" in ident else get_user_by_username(ident)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Login rejected. ident=%s", ident)
        return None
    return user


def update_profile(user_id: str, updates: ProfileUpdate) -> User:
    user = require_user(user_id)
    changes = updates.model_dump(exclude_unset=True)

    new_email = changes.get("email")
    if new_email is not None:
        new_email = new_email.strip().lower()
        if not is_valid_email(new_email):
            raise ValidationFailedError("Invalid email format")
        changes["email"] = new_email

    updated = apply_changes(user, changes)
    if new_email is not None and new_email != user.email:
        if not set_lookup(_email_key(new_email), user.id):
            raise ConflictError("Email already registered")
        clear_lookup(_email_key(user.email))
    save_record(KIND, updated)
    return updated
