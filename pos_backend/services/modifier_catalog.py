"""Modifier catalog reads and writes. Writes flush; the caller commits."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pos_backend.core.config import MODIFIER_PAGE_SIZE_MAX
from pos_backend.models.modifier import SELECTION_SINGLE, Modifier
from pos_backend.models.modifier_assignment import ModifierAssignment
from pos_backend.models.modifier_option import ModifierOption
from pos_backend.services.modifier_errors import (
    AssignmentNotFound,
    DuplicateAssignment,
    InvalidModifierPolicy,
    ModifierInUse,
    UnknownModifier,
    UnknownOption,
)
from pos_backend.services.modifier_policy import EntityRef, check_policy

_SORTABLE_COLUMNS = {
    "sort_order": Modifier.sort_order,
    "name": Modifier.name,
    "id": Modifier.id,
}
_MODIFIER_FIELDS = ("name", "description", "selection_type", "min_choices", "max_choices", "sort_order", "is_active")
_NULLABLE_MODIFIER_FIELDS = {"description", "max_choices"}
_OPTION_FIELDS = ("name", "price_delta", "sort_order", "is_active")


def get_modifier(db: Session, modifier_id: int) -> Modifier:
    modifier = db.query(Modifier).filter(Modifier.id == modifier_id).first()
    if not modifier:
        raise UnknownModifier(modifier_id)
    return modifier


def list_modifiers(
    db: Session,
    *,
    q: str = "",
    include_inactive: bool = True,
    sort: str = "sort_order",
    order: str = "asc",
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[Modifier], int]:
    query = db.query(Modifier)
    if not include_inactive:
        query = query.filter(Modifier.is_active.is_(True))
    term = (q or "").strip()
    if term:
        query = query.filter(Modifier.name.ilike(f"%{term}%"))

    total = query.count()

    column = _SORTABLE_COLUMNS.get(sort, Modifier.sort_order)
    descending = (order or "").lower() == "desc"
    if descending:
        query = query.order_by(column.desc(), Modifier.id.desc())
    else:
        query = query.order_by(column.asc(), Modifier.id.asc())

    page = max(1, int(page))
    page_size = min(MODIFIER_PAGE_SIZE_MAX, max(1, int(page_size)))
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return rows, total


def create_modifier(
    db: Session,
    *,
    name: str,
    description: Optional[str] = None,
    selection_type: str = SELECTION_SINGLE,
    min_choices: int = 0,
    max_choices: Optional[int] = None,
    sort_order: int = 0,
    is_active: bool = True,
) -> Modifier:
    policy = check_policy(selection_type, min_choices, max_choices)
    modifier = Modifier(
        name=name.strip(),
        description=description or None,
        selection_type=policy.selection_type,
        min_choices=policy.min_choices,
        max_choices=policy.max_choices,
        sort_order=sort_order,
        is_active=is_active,
    )
    db.add(modifier)
    db.flush()
    db.refresh(modifier)
    return modifier


def update_modifier(db: Session, modifier_id: int, changes: Mapping[str, Any]) -> Modifier:
    modifier = get_modifier(db, modifier_id)
    values = {field: getattr(modifier, field) for field in _MODIFIER_FIELDS}
    for key, value in changes.items():
        if key in _MODIFIER_FIELDS and (value is not None or key in _NULLABLE_MODIFIER_FIELDS):
            values[key] = value

    # checked before any setattr so a rejected update leaves the row untouched
    policy = check_policy(values["selection_type"], values["min_choices"], values["max_choices"])
    values["min_choices"] = policy.min_choices
    values["max_choices"] = policy.max_choices
    values["name"] = str(values["name"]).strip()
    values["description"] = values["description"] or None

    for field, value in values.items():
        setattr(modifier, field, value)
    db.flush()
    db.refresh(modifier)
    return modifier


def deactivate_modifier(db: Session, modifier_id: int) -> Modifier:
    modifier = get_modifier(db, modifier_id)
    modifier.is_active = False
    db.flush()
    db.refresh(modifier)
    return modifier


def delete_modifier(db: Session, modifier_id: int) -> None:
    modifier = get_modifier(db, modifier_id)
    assignment_count = (
        db.query(ModifierAssignment).filter(ModifierAssignment.modifier_id == modifier_id).count()
    )
    if assignment_count:
        raise ModifierInUse(modifier_id, assignment_count)
    db.delete(modifier)
    db.flush()


def list_options(db: Session, modifier_id: int, *, include_inactive: bool = False) -> list[ModifierOption]:
    get_modifier(db, modifier_id)
    query = db.query(ModifierOption).filter(ModifierOption.modifier_id == modifier_id)
    if not include_inactive:
        query = query.filter(ModifierOption.is_active.is_(True))
    return query.order_by(ModifierOption.sort_order.asc(), ModifierOption.id.asc()).all()


def list_active_options_by_modifier(db: Session, modifier_ids: Iterable[int]) -> dict[int, list[ModifierOption]]:
    ids = sorted(set(modifier_ids))
    if not ids:
        return {}
    options = (
        db.query(ModifierOption)
        .filter(ModifierOption.modifier_id.in_(ids), ModifierOption.is_active.is_(True))
        .order_by(ModifierOption.sort_order.asc(), ModifierOption.id.asc())
        .all()
    )
    options_by_modifier: dict[int, list[ModifierOption]] = {}
    for option in options:
        options_by_modifier.setdefault(option.modifier_id, []).append(option)
    return options_by_modifier


def _price_delta(value: Decimal | int | str) -> Decimal:
    try:
        price = Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidModifierPolicy(f"Invalid price_delta: {value!r}", price_delta=str(value)) from exc
    if not price.is_finite():
        raise InvalidModifierPolicy(f"price_delta must be finite: {value!r}", price_delta=str(value))
    return price


def get_option(db: Session, option_id: int) -> ModifierOption:
    option = db.query(ModifierOption).filter(ModifierOption.id == option_id).first()
    if not option:
        raise UnknownOption([option_id])
    return option


def create_option(
    db: Session,
    modifier_id: int,
    *,
    name: str,
    price_delta: Decimal | int | str = Decimal("0"),
    sort_order: int = 0,
    is_active: bool = True,
) -> ModifierOption:
    get_modifier(db, modifier_id)
    option = ModifierOption(
        modifier_id=modifier_id,
        name=name.strip(),
        price_delta=_price_delta(price_delta),
        sort_order=sort_order,
        is_active=is_active,
    )
    db.add(option)
    db.flush()
    db.refresh(option)
    return option


def update_option(db: Session, option_id: int, changes: Mapping[str, Any]) -> ModifierOption:
    option = get_option(db, option_id)
    values: dict[str, Any] = {}
    for key, value in changes.items():
        if key not in _OPTION_FIELDS or value is None:
            continue
        if key == "price_delta":
            value = _price_delta(value)
        elif key == "name":
            value = str(value).strip()
        values[key] = value

    for field, value in values.items():
        setattr(option, field, value)
    db.flush()
    db.refresh(option)
    return option


def deactivate_option(db: Session, option_id: int) -> ModifierOption:
    option = get_option(db, option_id)
    option.is_active = False
    db.flush()
    db.refresh(option)
    return option


def list_assignments(db: Session, modifier_id: int) -> list[ModifierAssignment]:
    get_modifier(db, modifier_id)
    return (
        db.query(ModifierAssignment)
        .filter(ModifierAssignment.modifier_id == modifier_id)
        .order_by(ModifierAssignment.id.asc())
        .all()
    )


def list_assignments_for_entities(db: Session, entities: Iterable[EntityRef]) -> list[ModifierAssignment]:
    clauses = [
        and_(
            ModifierAssignment.entity_type == entity.entity_type.value,
            ModifierAssignment.entity_id == entity.entity_id,
        )
        for entity in entities
    ]
    if not clauses:
        return []
    return db.query(ModifierAssignment).filter(or_(*clauses)).order_by(ModifierAssignment.id.asc()).all()


def _find_assignment(db: Session, modifier_id: int, entity: EntityRef) -> Optional[ModifierAssignment]:
    return (
        db.query(ModifierAssignment)
        .filter(
            ModifierAssignment.modifier_id == modifier_id,
            ModifierAssignment.entity_type == entity.entity_type.value,
            ModifierAssignment.entity_id == entity.entity_id,
        )
        .first()
    )


def create_assignment(db: Session, modifier_id: int, entity: EntityRef) -> ModifierAssignment:
    """Attach a modifier to a category or product.

    The pre-check gives a clean error in the common case; the unique
    constraint on (modifier_id, entity_type, entity_id) settles concurrent
    inserts of the same triple. Losing that race rolls back the whole session
    transaction, so callers commit earlier work first.
    """
    modifier = db.query(Modifier).filter(Modifier.id == modifier_id).first()
    if not modifier or not modifier.is_active:
        raise UnknownModifier(modifier_id)

    entity_type = entity.entity_type.value
    if _find_assignment(db, modifier_id, entity):
        raise DuplicateAssignment(modifier_id, entity_type, entity.entity_id)

    assignment = ModifierAssignment(
        modifier_id=modifier_id,
        entity_type=entity_type,
        entity_id=entity.entity_id,
    )
    db.add(assignment)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateAssignment(modifier_id, entity_type, entity.entity_id) from exc
    db.refresh(assignment)
    return assignment


def remove_assignment(db: Session, modifier_id: int, entity: EntityRef) -> None:
    assignment = _find_assignment(db, modifier_id, entity)
    if not assignment:
        raise AssignmentNotFound(modifier_id, entity.entity_type.value, entity.entity_id)
    db.delete(assignment)
    db.flush()


def list_active_modifiers(db: Session, modifier_ids: Iterable[int]) -> list[Modifier]:
    ids = sorted(set(modifier_ids))
    if not ids:
        return []
    return (
        db.query(Modifier)
        .filter(Modifier.id.in_(ids), Modifier.is_active.is_(True))
        .order_by(Modifier.sort_order.asc(), Modifier.id.asc())
        .all()
    )
