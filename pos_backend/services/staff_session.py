from __future__ import annotations

import time
from typing import Any, Dict, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from pos_backend.core.config import STAFF_SESSION_MAX_AGE_SECONDS, STAFF_SESSION_SECRET

STAFF_SESSION_SALT = "pos-staff-session"


def _serializer(secret: str | None = None) -> URLSafeTimedSerializer:
    secret = secret or STAFF_SESSION_SECRET
    if not secret:
        raise RuntimeError("STAFF_SESSION_SECRET is not configured.")
    return URLSafeTimedSerializer(secret, salt=STAFF_SESSION_SALT)


def create_staff_session(
    user_id: int,
    *,
    role: str | None = None,
    expires_at: int | None = None,
    secret: str | None = None,
) -> str:
    """Sign a cookie value identifying a till or back-office user."""
    payload: Dict[str, Any] = {
        "user_id": int(user_id),
        "exp": expires_at if expires_at is not None else int(time.time()) + STAFF_SESSION_MAX_AGE_SECONDS,
    }
    if role:
        payload["role"] = role
    return _serializer(secret).dumps(payload)


def decode_staff_session(token: str, *, secret: str | None = None) -> Optional[Dict[str, Any]]:
    """Return the session payload, or ``None`` for a forged or expired token."""
    try:
        payload = _serializer(secret).loads(token, max_age=STAFF_SESSION_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(payload, dict):
        return None
    try:
        if int(payload.get("exp", 0)) < int(time.time()):
            return None
    except (TypeError, ValueError):
        return None
    return payload
