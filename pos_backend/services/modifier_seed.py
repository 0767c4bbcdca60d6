from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from pos_backend.models.category import Category
from pos_backend.models.modifier import SELECTION_SINGLE, Modifier
from pos_backend.models.modifier_option import ModifierOption
from pos_backend.services.modifier_catalog import create_assignment, create_modifier, create_option, list_options
from pos_backend.services.modifier_errors import DuplicateAssignment
from pos_backend.services.modifier_policy import EntityRef


@dataclass(frozen=True)
class OptionSpec:
    name: str
    price_delta: Decimal = Decimal("0")


def parse_option_spec(raw: str) -> OptionSpec:
    """Parse ``"Name"`` or ``"Name:1.50"`` into an option spec."""
    text = (raw or "").strip()
    if not text:
        raise ValueError("Option name is required")
    name, sep, price = text.rpartition(":")
    if sep and name.strip():
        try:
            price_delta = Decimal(price.strip())
        except InvalidOperation:
            return OptionSpec(name=text)
        if not price_delta.is_finite():
            raise ValueError(f"Option price must be a finite number: {raw!r}")
        return OptionSpec(name=name.strip(), price_delta=price_delta)
    return OptionSpec(name=text)


def upsert_modifier(
    db: Session,
    *,
    name: str,
    description: Optional[str] = None,
    selection_type: str = SELECTION_SINGLE,
    min_choices: int = 0,
    max_choices: Optional[int] = None,
    sort_order: int = 0,
    options: Sequence[OptionSpec] = (),
) -> tuple[Modifier, bool, list[ModifierOption]]:
    """Reuse the modifier named ``name`` or create it, then add missing options.

    Options are matched by case-insensitive name; existing ones are left as
    they are. Nothing is committed when any option is rejected. Returns
    ``(modifier, created, added_options)``.
    """
    existing = (
        db.query(Modifier)
        .filter(Modifier.name == name.strip())
        .order_by(Modifier.id.asc())
        .first()
    )
    if existing:
        modifier, created = existing, False
    else:
        modifier = create_modifier(
            db,
            name=name,
            description=description,
            selection_type=selection_type,
            min_choices=min_choices,
            max_choices=max_choices,
            sort_order=sort_order,
        )
        created = True

    current = list_options(db, modifier.id, include_inactive=True)
    known_names = {option.name.strip().lower() for option in current}
    next_sort = max((int(option.sort_order or 0) for option in current), default=0) + 1

    added: list[ModifierOption] = []
    for spec in options:
        key = spec.name.strip().lower()
        if key in known_names:
            continue
        added.append(
            create_option(db, modifier.id, name=spec.name, price_delta=spec.price_delta, sort_order=next_sort)
        )
        known_names.add(key)
        next_sort += 1
    db.commit()
    return modifier, created, added


def all_category_refs(db: Session) -> list[EntityRef]:
    rows = db.query(Category.id).order_by(Category.sort_order.asc(), Category.id.asc()).all()
    return [EntityRef.category(category_id) for (category_id,) in rows]


def assign_to_entities(
    db: Session,
    modifier_id: int,
    entities: Iterable[EntityRef],
) -> tuple[list[EntityRef], list[EntityRef]]:
    """Assign a modifier to each entity, skipping existing assignments.

    Each assignment is committed on its own.

    Returns ``(assigned, skipped)``.
    """
    assigned: list[EntityRef] = []
    skipped: list[EntityRef] = []
    for entity in entities:
        try:
            create_assignment(db, modifier_id, entity)
        except DuplicateAssignment:
            skipped.append(entity)
            continue
        db.commit()
        assigned.append(entity)
    return assigned, skipped
