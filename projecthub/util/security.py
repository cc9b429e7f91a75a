from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import re
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Optional

PBKDF2_ITERATIONS = 260_000

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str) -> bool:
    return bool(email) and bool(_EMAIL_RE.match(email))


def hash_password(password: str, *, salt: Optional[str] = None) -> str:
    """Returns 'pbkdf2_sha256$<iterations>$<salt>$<hex digest>'."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iterations, salt, expected = stored.split("$", 3)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def new_invitation_token() -> str:
    return secrets.token_hex(32)


@dataclass(frozen=True)
class TokenCheck:
    ok: bool
    reason: str = ""
    user: dict[str, Any] = field(default_factory=dict)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def _sign(secret_key: str, payload_b64: str) -> str:
    return hmac.new(secret_key.encode("utf-8"), payload_b64.encode("ascii"), hashlib.sha256).hexdigest()


def issue_token(*, secret_key: str, user: dict[str, Any], ttl_seconds: int, now_ms: Optional[int] = None) -> str:
    """
    Bearer token: base64url JSON {"user": ..., "exp": epoch_ms} followed by an
    HMAC-SHA256 signature over the encoded payload.
    """
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    payload = {"user": user, "exp": now_ms + ttl_seconds * 1000}
    payload_b64 = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return f"{payload_b64}.{_sign(secret_key, payload_b64)}"


def decode_token(*, secret_key: str, token: Optional[str], now_ms: Optional[int] = None) -> TokenCheck:
    if not token:
        return TokenCheck(ok=False, reason="missing")

    payload_b64, _, signature = token.partition(".")
    if not payload_b64 or not signature:
        return TokenCheck(ok=False, reason="invalid")
    if not hmac.compare_digest(_sign(secret_key, payload_b64), signature):
        return TokenCheck(ok=False, reason="invalid")

    try:
        payload = json.loads(_b64decode(payload_b64).decode("utf-8"))
        exp = int(payload["exp"])
        user = payload["user"]
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValueError):
        return TokenCheck(ok=False, reason="invalid")
    if not isinstance(user, dict) or not user.get("id"):
        return TokenCheck(ok=False, reason="invalid")

    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    if exp < now_ms:
        return TokenCheck(ok=False, reason="expired")
    return TokenCheck(ok=True, user=user)


def bearer_from_header(header_value: Optional[str]) -> Optional[str]:
    if not header_value or not header_value.startswith("Bearer "):
        return None
    return header_value[len("Bearer "):].strip() or None
