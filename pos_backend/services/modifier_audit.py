from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from pos_backend.models.modifier_audit_log import ModifierAuditLog
from pos_backend.services.modifier_policy import EntityRef

TARGET_OPTION = "option"


def record_modifier_change(
    db: Session,
    *,
    user_id: int,
    action: str,
    modifier_id: Optional[int],
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    changes: Optional[Mapping[str, Any]] = None,
) -> ModifierAuditLog:
    """Stage an audit row; the caller commits it with its own unit of work."""
    entry = ModifierAuditLog(
        user_id=user_id,
        action=action,
        modifier_id=modifier_id,
        target_type=target_type,
        target_id=target_id,
        changes_json=json.dumps(dict(changes), default=str, sort_keys=True) if changes else None,
    )
    db.add(entry)
    return entry


def record_assignment_change(
    db: Session,
    *,
    user_id: int,
    action: str,
    modifier_id: int,
    entity: EntityRef,
) -> ModifierAuditLog:
    return record_modifier_change(
        db,
        user_id=user_id,
        action=action,
        modifier_id=modifier_id,
        target_type=entity.entity_type.value,
        target_id=entity.entity_id,
    )


def list_modifier_history(db: Session, modifier_id: int, *, limit: int = 50) -> list[ModifierAuditLog]:
    return (
        db.query(ModifierAuditLog)
        .filter(ModifierAuditLog.modifier_id == modifier_id)
        .order_by(ModifierAuditLog.id.desc())
        .limit(limit)
        .all()
    )

