# pos_backend/deps.py
from __future__ import annotations

import logging
from typing import Iterable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from pos_backend.core.config import STAFF_SESSION_COOKIE
from pos_backend.core.database import get_db
from pos_backend.core.request_context import set_request_context
from pos_backend.models.staff_user import MANAGER_ROLES, StaffUser
from pos_backend.services.staff_session import decode_staff_session

logger = logging.getLogger(__name__)


def _normalize_role(role: str | None) -> str:
    return (role or "").strip().lower()


def _log_access_denied(*, reason: str, user: StaffUser, request: Request) -> None:
    logger.warning(
        "Access denied (%s): user_id=%s user_role=%s",
        reason,
        getattr(user, "id", None),
        getattr(user, "role", None),
        extra={"endpoint": request.url.path, "method": request.method, "status_code": 403},
    )


def get_current_staff_user(
    request: Request,
    db: Session = Depends(get_db),
) -> StaffUser:
    token = request.cookies.get(STAFF_SESSION_COOKIE)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    payload = decode_staff_session(token)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")

    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")

    user = (
        db.query(StaffUser)
        .filter(StaffUser.id == int(user_id), StaffUser.active.is_(True))
        .first()
    )
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    request.state.user = user
    set_request_context(user_id=str(user.id))
    return user


def require_staff_user(
    request: Request,
    db: Session = Depends(get_db),
) -> StaffUser:
    return get_current_staff_user(request, db)


def require_role(roles: Iterable[str]):
    allowed = {_normalize_role(role) for role in roles}
    if allowed & set(MANAGER_ROLES):
        allowed.update(MANAGER_ROLES)

    def _dependency(
        request: Request,
        user: StaffUser = Depends(require_staff_user),
    ) -> StaffUser:
        if _normalize_role(user.role) not in allowed:
            _log_access_denied(reason="role_denied", user=user, request=request)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permission")
        return user

    return _dependency


require_manager = require_role(MANAGER_ROLES)
