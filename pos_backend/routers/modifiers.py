from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pos_backend.core.config import MODIFIER_PAGE_SIZE_MAX
from pos_backend.core.database import get_db
from pos_backend.deps import require_manager, require_staff_user
from pos_backend.models.modifier import Modifier
from pos_backend.models.modifier_assignment import ModifierAssignment
from pos_backend.models.modifier_audit_log import ModifierAuditLog
from pos_backend.models.modifier_option import ModifierOption
from pos_backend.models.staff_user import StaffUser
from pos_backend.schemas.modifiers import (
    AssignmentRequest,
    ModifierCreateRequest,
    ModifierOptionCreateRequest,
    ModifierOptionUpdateRequest,
    ModifierUpdateRequest,
    OrderLineValidationRequest,
)
from pos_backend.services import modifier_catalog
from pos_backend.services.modifier_audit import (
    TARGET_OPTION,
    list_modifier_history,
    record_assignment_change,
    record_modifier_change,
)
from pos_backend.services.modifier_errors import (
    SELECTION_ERRORS,
    DuplicateAssignment,
    InvalidModifierPolicy,
    ModifierError,
    ModifierInUse,
    UnknownOption,
)
from pos_backend.services.modifier_policy import EntityRef
from pos_backend.services.modifier_selection import (
    ModifierSnapshot,
    list_entity_modifiers,
    resolve_applicable_modifiers,
    validate_order_line,
)

router = APIRouter(prefix="/api/modifiers", tags=["modifiers"])

logger = logging.getLogger(__name__)


def _money(value) -> str:
    return str(Decimal(str(value if value is not None else 0)))


def _status_for(exc: ModifierError) -> int:
    if isinstance(exc, (DuplicateAssignment, ModifierInUse)):
        return 409
    if isinstance(exc, InvalidModifierPolicy):
        return 400
    if isinstance(exc, SELECTION_ERRORS):
        return 422
    return 404


def _http_error(exc: ModifierError, status_code: Optional[int] = None) -> HTTPException:
    return HTTPException(status_code=status_code or _status_for(exc), detail=exc.to_detail())


def _modifier_to_dict(modifier: Modifier) -> dict:
    return {
        "id": modifier.id,
        "name": modifier.name,
        "description": modifier.description,
        "selection_type": modifier.selection_type,
        "min_choices": modifier.min_choices,
        "max_choices": modifier.max_choices,
        "sort_order": modifier.sort_order,
        "is_active": bool(modifier.is_active),
        "created_at": modifier.created_at.isoformat() if modifier.created_at else None,
    }


def _option_to_dict(option: ModifierOption) -> dict:
    return {
        "id": option.id,
        "modifier_id": option.modifier_id,
        "name": option.name,
        "price_delta": _money(option.price_delta),
        "sort_order": option.sort_order,
        "is_active": bool(option.is_active),
    }


def _assignment_to_dict(assignment: ModifierAssignment) -> dict:
    return {
        "id": assignment.id,
        "modifier_id": assignment.modifier_id,
        "entity_type": assignment.entity_type,
        "entity_id": assignment.entity_id,
    }


def _history_to_dict(entry: ModifierAuditLog) -> dict:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "action": entry.action,
        "target_type": entry.target_type,
        "target_id": entry.target_id,
        "changes": json.loads(entry.changes_json) if entry.changes_json else None,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }


def _snapshot_to_dict(snapshot: ModifierSnapshot) -> dict:
    policy = snapshot.policy
    return {
        "id": snapshot.id,
        "name": snapshot.name,
        "description": snapshot.description,
        "selection_type": snapshot.selection_type,
        "min_choices": policy.effective_min,
        "max_choices": policy.effective_max,
        "required": policy.is_required,
        "sort_order": snapshot.sort_order,
        "sources": sorted(source.value for source in snapshot.sources),
        "options": [
            {
                "id": option.id,
                "name": option.name,
                "price_delta": _money(option.price_delta),
                "sort_order": option.sort_order,
            }
            for option in snapshot.options
        ],
    }


@router.get("")
def list_modifiers(
    q: str = "",
    include_inactive: bool = True,
    sort: str = "sort_order",
    order: str = "asc",
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, alias="pageSize"),
    db: Session = Depends(get_db),
    _user: StaffUser = Depends(require_staff_user),
):
    rows, total = modifier_catalog.list_modifiers(
        db,
        q=q,
        include_inactive=include_inactive,
        sort=sort,
        order=order,
        page=page,
        page_size=page_size,
    )
    page_size = min(page_size, MODIFIER_PAGE_SIZE_MAX)
    pages = max(1, -(-total // page_size))
    return {
        "ok": True,
        "data": [_modifier_to_dict(row) for row in rows],
        "pagination": {"total": total, "page": page, "pageSize": page_size, "pages": pages},
    }


@router.get("/effective/product/{product_id}")
def effective_modifiers_for_product(
    product_id: int,
    db: Session = Depends(get_db),
    _user: StaffUser = Depends(require_staff_user),
):
    try:
        snapshots = resolve_applicable_modifiers(db, product_id)
    except ModifierError as exc:
        raise _http_error(exc) from exc
    return {"ok": True, "data": [_snapshot_to_dict(snapshot) for snapshot in snapshots]}


@router.get("/effective/category/{category_id}")
def effective_modifiers_for_category(
    category_id: int,
    db: Session = Depends(get_db),
    _user: StaffUser = Depends(require_staff_user),
):
    snapshots = list_entity_modifiers(db, EntityRef.category(category_id))
    return {"ok": True, "data": [_snapshot_to_dict(snapshot) for snapshot in snapshots]}


@router.post("/validate/product/{product_id}")
def validate_product_selections(
    product_id: int,
    payload: OrderLineValidationRequest,
    db: Session = Depends(get_db),
    _user: StaffUser = Depends(require_staff_user),
):
    try:
        result = validate_order_line(db, product_id, payload.selections)
    except ModifierError as exc:
        logger.info("order line rejected", extra={"product_id": product_id, "error_code": exc.code})
        # an option outside its modifier is a bad selection here, not a missing resource
        status_code = 422 if isinstance(exc, UnknownOption) else None
        raise _http_error(exc, status_code=status_code) from exc
    return {
        "ok": True,
        "data": {
            "product_id": result.product_id,
            "valid": True,
            "price_delta": _money(result.price_delta),
            "selections": [
                {
                    "modifier_id": selection.modifier_id,
                    "option_ids": list(selection.option_ids),
                    "price_delta": _money(selection.price_delta),
                }
                for selection in result.selections
            ],
        },
    }


@router.put("/options/{option_id}")
def update_option(
    option_id: int,
    payload: ModifierOptionUpdateRequest,
    db: Session = Depends(get_db),
    user: StaffUser = Depends(require_manager),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        option = modifier_catalog.update_option(db, option_id, changes)
    except ModifierError as exc:
        raise _http_error(exc) from exc
    record_modifier_change(
        db,
        user_id=user.id,
        action="update_option",
        modifier_id=option.modifier_id,
        target_type=TARGET_OPTION,
        target_id=option.id,
        changes=changes,
    )
    db.commit()
    return {"ok": True, "data": _option_to_dict(option)}


@router.delete("/options/{option_id}")
def delete_option(
    option_id: int,
    db: Session = Depends(get_db),
    user: StaffUser = Depends(require_manager),
):
    try:
        option = modifier_catalog.deactivate_option(db, option_id)
    except ModifierError as exc:
        raise _http_error(exc) from exc
    record_modifier_change(
        db,
        user_id=user.id,
        action="deactivate_option",
        modifier_id=option.modifier_id,
        target_type=TARGET_OPTION,
        target_id=option.id,
    )
    db.commit()
    return {"ok": True}


@router.get("/{modifier_id}")
def get_modifier(
    modifier_id: int,
    db: Session = Depends(get_db),
    _user: StaffUser = Depends(require_staff_user),
):
    try:
        modifier = modifier_catalog.get_modifier(db, modifier_id)
        options = modifier_catalog.list_options(db, modifier_id)
        assignments = modifier_catalog.list_assignments(db, modifier_id)
    except ModifierError as exc:
        raise _http_error(exc) from exc
    data = _modifier_to_dict(modifier)
    data["options"] = [_option_to_dict(option) for option in options]
    data["assignments"] = [_assignment_to_dict(assignment) for assignment in assignments]
    return {"ok": True, "data": data}


@router.post("")
def create_modifier(
    payload: ModifierCreateRequest,
    db: Session = Depends(get_db),
    user: StaffUser = Depends(require_manager),
):
    try:
        modifier = modifier_catalog.create_modifier(db, **payload.model_dump())
    except ModifierError as exc:
        raise _http_error(exc) from exc
    record_modifier_change(db, user_id=user.id, action="create_modifier", modifier_id=modifier.id)
    db.commit()
    return {"ok": True, "data": _modifier_to_dict(modifier)}


@router.put("/{modifier_id}")
def update_modifier(
    modifier_id: int,
    payload: ModifierUpdateRequest,
    db: Session = Depends(get_db),
    user: StaffUser = Depends(require_manager),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        modifier = modifier_catalog.update_modifier(db, modifier_id, changes)
    except ModifierError as exc:
        raise _http_error(exc) from exc
    record_modifier_change(
        db,
        user_id=user.id,
        action="update_modifier",
        modifier_id=modifier.id,
        changes=changes,
    )
    db.commit()
    return {"ok": True, "data": _modifier_to_dict(modifier)}


@router.delete("/{modifier_id}")
def delete_modifier(
    modifier_id: int,
    hard: bool = False,
    db: Session = Depends(get_db),
    user: StaffUser = Depends(require_manager),
):
    try:
        if hard:
            modifier_catalog.delete_modifier(db, modifier_id)
        else:
            modifier_catalog.deactivate_modifier(db, modifier_id)
    except ModifierError as exc:
        logger.info("modifier delete rejected", extra={"modifier_id": modifier_id, "error_code": exc.code})
        raise _http_error(exc) from exc
    record_modifier_change(
        db,
        user_id=user.id,
        action="delete_modifier" if hard else "deactivate_modifier",
        modifier_id=modifier_id,
    )
    db.commit()
    return {"ok": True}


@router.get("/{modifier_id}/options")
def list_options(
    modifier_id: int,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    _user: StaffUser = Depends(require_staff_user),
):
    try:
        options = modifier_catalog.list_options(db, modifier_id, include_inactive=include_inactive)
    except ModifierError as exc:
        raise _http_error(exc) from exc
    return {"ok": True, "data": [_option_to_dict(option) for option in options]}


@router.post("/{modifier_id}/options")
def create_option(
    modifier_id: int,
    payload: ModifierOptionCreateRequest,
    db: Session = Depends(get_db),
    user: StaffUser = Depends(require_manager),
):
    try:
        option = modifier_catalog.create_option(db, modifier_id, **payload.model_dump())
    except ModifierError as exc:
        raise _http_error(exc) from exc
    record_modifier_change(
        db,
        user_id=user.id,
        action="create_option",
        modifier_id=modifier_id,
        target_type=TARGET_OPTION,
        target_id=option.id,
        changes={"name": option.name, "price_delta": option.price_delta},
    )
    db.commit()
    return {"ok": True, "data": _option_to_dict(option)}


@router.get("/{modifier_id}/assignments")
def list_assignments(
    modifier_id: int,
    db: Session = Depends(get_db),
    _user: StaffUser = Depends(require_staff_user),
):
    try:
        assignments = modifier_catalog.list_assignments(db, modifier_id)
    except ModifierError as exc:
        raise _http_error(exc) from exc
    return {"ok": True, "data": [_assignment_to_dict(assignment) for assignment in assignments]}


@router.post("/{modifier_id}/assign")
def assign_modifier(
    modifier_id: int,
    payload: AssignmentRequest,
    db: Session = Depends(get_db),
    user: StaffUser = Depends(require_manager),
):
    entity = EntityRef.parse(payload.entity_type, payload.entity_id)
    try:
        assignment = modifier_catalog.create_assignment(db, modifier_id, entity)
    except ModifierError as exc:
        logger.info("modifier assignment rejected", extra={"modifier_id": modifier_id, "error_code": exc.code})
        raise _http_error(exc) from exc
    record_assignment_change(db, user_id=user.id, action="assign", modifier_id=modifier_id, entity=entity)
    db.commit()
    return {"ok": True, "data": _assignment_to_dict(assignment)}


@router.delete("/{modifier_id}/assign")
def unassign_modifier(
    modifier_id: int,
    payload: AssignmentRequest,
    db: Session = Depends(get_db),
    user: StaffUser = Depends(require_manager),
):
    entity = EntityRef.parse(payload.entity_type, payload.entity_id)
    try:
        modifier_catalog.remove_assignment(db, modifier_id, entity)
    except ModifierError as exc:
        raise _http_error(exc) from exc
    record_assignment_change(db, user_id=user.id, action="unassign", modifier_id=modifier_id, entity=entity)
    db.commit()
    return {"ok": True}


@router.get("/{modifier_id}/history")
def modifier_history(
    modifier_id: int,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    _user: StaffUser = Depends(require_manager),
):
    try:
        modifier_catalog.get_modifier(db, modifier_id)
    except ModifierError as exc:
        raise _http_error(exc) from exc
    entries = list_modifier_history(db, modifier_id, limit=limit)
    return {"ok": True, "data": [_history_to_dict(entry) for entry in entries]}
