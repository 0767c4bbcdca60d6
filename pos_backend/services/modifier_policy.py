from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pos_backend.models.modifier import SELECTION_MULTIPLE, SELECTION_SINGLE, SELECTION_TYPES
from pos_backend.services.modifier_errors import InvalidModifierPolicy


class EntityType(str, Enum):
    CATEGORY = "category"
    PRODUCT = "product"


@dataclass(frozen=True)
class EntityRef:
    """Target of a modifier assignment: a category or a single product."""

    entity_type: EntityType
    entity_id: int

    @classmethod
    def category(cls, category_id: int) -> "EntityRef":
        return cls(EntityType.CATEGORY, int(category_id))

    @classmethod
    def product(cls, product_id: int) -> "EntityRef":
        return cls(EntityType.PRODUCT, int(product_id))

    @classmethod
    def parse(cls, entity_type: str, entity_id: Any) -> "EntityRef":
        try:
            kind = EntityType(str(entity_type).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Invalid entity_type: {entity_type!r}") from exc
        try:
            return cls(kind, int(entity_id))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid entity_id: {entity_id!r}") from exc


def normalize_max_choices(value: Optional[int]) -> Optional[int]:
    # legacy rows store 0 for "use the selection_type default"
    if value is None or int(value) == 0:
        return None
    return int(value)


@dataclass(frozen=True)
class SelectionPolicy:
    selection_type: str
    min_choices: int
    max_choices: Optional[int] = None

    @classmethod
    def from_values(cls, selection_type: str, min_choices: Optional[int], max_choices: Optional[int]) -> "SelectionPolicy":
        return cls(
            selection_type=selection_type,
            min_choices=int(min_choices or 0),
            max_choices=normalize_max_choices(max_choices),
        )

    @property
    def effective_min(self) -> int:
        return self.min_choices

    @property
    def effective_max(self) -> Optional[int]:
        """Upper bound on distinct choices; ``None`` means unbounded."""
        if self.max_choices is not None:
            return self.max_choices
        if self.selection_type == SELECTION_SINGLE:
            return 1
        return None

    @property
    def is_required(self) -> bool:
        return self.min_choices > 0


def check_policy(selection_type: str, min_choices: int, max_choices: Optional[int]) -> SelectionPolicy:
    if selection_type not in SELECTION_TYPES:
        raise InvalidModifierPolicy(
            f"Invalid selection_type: {selection_type!r}",
            selection_type=selection_type,
        )
    if min_choices is None or int(min_choices) < 0:
        raise InvalidModifierPolicy("min_choices must be >= 0", min_choices=min_choices)
    if max_choices is not None and int(max_choices) < 0:
        raise InvalidModifierPolicy("max_choices must be >= 0", max_choices=max_choices)

    policy = SelectionPolicy.from_values(selection_type, min_choices, max_choices)
    if selection_type == SELECTION_SINGLE:
        if policy.min_choices > 1:
            raise InvalidModifierPolicy(
                "single selection allows min_choices of 0 or 1",
                min_choices=policy.min_choices,
            )
        if policy.max_choices not in (None, 1):
            raise InvalidModifierPolicy(
                "single selection allows at most one choice",
                max_choices=policy.max_choices,
            )
    elif selection_type == SELECTION_MULTIPLE:
        if policy.max_choices is not None and policy.max_choices < policy.min_choices:
            raise InvalidModifierPolicy(
                "max_choices cannot be lower than min_choices",
                min_choices=policy.min_choices,
                max_choices=policy.max_choices,
            )
    return policy
