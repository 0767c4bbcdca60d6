"""Effective modifiers for a product and validation of chosen options.

A product inherits every modifier assigned to its category plus every
modifier assigned to the product itself. Both facts apply at once; a
modifier reached through both paths is listed a single time with both
sources recorded.

Validation works on immutable snapshots, so once the applicable modifiers
are loaded no further queries are issued and nothing is written.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from pos_backend.models.modifier import Modifier
from pos_backend.models.modifier_option import ModifierOption
from pos_backend.services.modifier_catalog import (
    list_active_modifiers,
    list_active_options_by_modifier,
    list_assignments_for_entities,
)
from pos_backend.services.modifier_errors import (
    MissingRequiredModifier,
    TooFewChoices,
    TooManyChoices,
    UnapplicableModifier,
    UnknownOption,
)
from pos_backend.services.modifier_policy import EntityRef, EntityType, SelectionPolicy, normalize_max_choices
from pos_backend.services.product_catalog import ProductCatalog, SqlProductCatalog

ZERO = Decimal("0")


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class OptionSnapshot:
    id: int
    modifier_id: int
    name: str
    price_delta: Decimal
    sort_order: int = 0


@dataclass(frozen=True)
class ModifierSnapshot:
    id: int
    name: str
    selection_type: str
    min_choices: int
    max_choices: Optional[int]
    sort_order: int = 0
    description: Optional[str] = None
    options: tuple[OptionSnapshot, ...] = ()
    sources: frozenset[EntityType] = field(default_factory=frozenset)

    @property
    def policy(self) -> SelectionPolicy:
        return SelectionPolicy.from_values(self.selection_type, self.min_choices, self.max_choices)


@dataclass(frozen=True)
class SelectionResult:
    modifier_id: int
    option_ids: tuple[int, ...]
    price_delta: Decimal
    valid: bool = True


@dataclass(frozen=True)
class OrderLineValidation:
    product_id: int
    price_delta: Decimal
    selections: tuple[SelectionResult, ...]


def snapshot_option(option: ModifierOption) -> OptionSnapshot:
    return OptionSnapshot(
        id=int(option.id),
        modifier_id=int(option.modifier_id),
        name=option.name,
        price_delta=_to_decimal(option.price_delta),
        sort_order=int(option.sort_order or 0),
    )


def snapshot_modifier(
    modifier: Modifier,
    options: Sequence[ModifierOption] = (),
    sources: Iterable[EntityType] = (),
) -> ModifierSnapshot:
    return ModifierSnapshot(
        id=int(modifier.id),
        name=modifier.name,
        description=modifier.description,
        selection_type=modifier.selection_type,
        min_choices=int(modifier.min_choices or 0),
        max_choices=normalize_max_choices(modifier.max_choices),
        sort_order=int(modifier.sort_order or 0),
        options=tuple(snapshot_option(option) for option in options),
        sources=frozenset(sources),
    )


def _modifiers_for_entities(db: Session, entities: Sequence[EntityRef]) -> list[ModifierSnapshot]:
    sources_by_modifier: dict[int, set[EntityType]] = {}
    for assignment in list_assignments_for_entities(db, entities):
        sources_by_modifier.setdefault(int(assignment.modifier_id), set()).add(EntityType(assignment.entity_type))
    if not sources_by_modifier:
        return []

    modifiers = list_active_modifiers(db, sources_by_modifier)
    options_by_modifier = list_active_options_by_modifier(db, [modifier.id for modifier in modifiers])
    snapshots = [
        snapshot_modifier(modifier, options_by_modifier.get(modifier.id, []), sources_by_modifier[modifier.id])
        for modifier in modifiers
    ]
    return sorted(snapshots, key=lambda snapshot: (snapshot.sort_order, snapshot.id))


def resolve_applicable_modifiers(
    db: Session,
    product_id: int,
    *,
    catalog: Optional[ProductCatalog] = None,
) -> list[ModifierSnapshot]:
    catalog = catalog or SqlProductCatalog(db)
    category_id = catalog.get_product_category(product_id)

    entities = [EntityRef.product(product_id)]
    if category_id is not None:
        entities.append(EntityRef.category(category_id))
    return _modifiers_for_entities(db, entities)


def list_entity_modifiers(db: Session, entity: EntityRef) -> list[ModifierSnapshot]:
    """Modifiers assigned directly to one category or product, no inheritance."""
    return _modifiers_for_entities(db, [entity])


def validate_selection(modifier: ModifierSnapshot, chosen_option_ids: Iterable[int]) -> SelectionResult:
    chosen = {int(option_id) for option_id in chosen_option_ids}
    options_by_id = {option.id: option for option in modifier.options}

    unknown = sorted(option_id for option_id in chosen if option_id not in options_by_id)
    if unknown:
        raise UnknownOption(unknown, modifier.id)

    policy = modifier.policy
    count = len(chosen)
    if count < policy.effective_min:
        raise TooFewChoices(modifier.id, count, policy.effective_min)
    maximum = policy.effective_max
    if maximum is not None and count > maximum:
        raise TooManyChoices(modifier.id, count, maximum)

    picked = [option for option in modifier.options if option.id in chosen]
    return SelectionResult(
        modifier_id=modifier.id,
        option_ids=tuple(option.id for option in picked),
        price_delta=sum((option.price_delta for option in picked), ZERO),
    )


def validate_order_line(
    db: Session,
    product_id: int,
    selections: Mapping[int, Iterable[int]],
    *,
    catalog: Optional[ProductCatalog] = None,
) -> OrderLineValidation:
    """Check every chosen option set for one order line and total the price delta.

    Raises on the first violation: a required modifier that was not sent, a
    modifier that does not apply to the product, or a per-modifier policy
    failure from ``validate_selection``.
    """
    applicable = resolve_applicable_modifiers(db, product_id, catalog=catalog)
    applicable_ids = {modifier.id for modifier in applicable}
    requested = {int(modifier_id): list(option_ids) for modifier_id, option_ids in selections.items()}

    for modifier in applicable:
        if modifier.policy.is_required and modifier.id not in requested:
            raise MissingRequiredModifier(modifier.id, product_id)

    for modifier_id in sorted(requested):
        if modifier_id not in applicable_ids:
            raise UnapplicableModifier(modifier_id, product_id)

    results: list[SelectionResult] = []
    total = ZERO
    for modifier in applicable:
        if modifier.id not in requested:
            continue
        result = validate_selection(modifier, requested[modifier.id])
        results.append(result)
        total += result.price_delta

    return OrderLineValidation(product_id=product_id, price_delta=total, selections=tuple(results))
