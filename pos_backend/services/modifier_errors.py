from __future__ import annotations

from typing import Any


class ModifierError(Exception):
    """Base class for modifier catalog and selection failures.

    ``code`` is stable and safe to expose to API clients; ``details`` holds the
    identifiers involved so the transport layer can build a structured body.
    """

    code = "modifier_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details}


class UnknownModifier(ModifierError):
    code = "unknown_modifier"

    def __init__(self, modifier_id: int) -> None:
        super().__init__(f"Modifier {modifier_id} not found", modifier_id=modifier_id)


class UnknownProduct(ModifierError):
    code = "unknown_product"

    def __init__(self, product_id: int) -> None:
        super().__init__(f"Product {product_id} not found", product_id=product_id)


class UnknownOption(ModifierError):
    code = "unknown_option"

    def __init__(self, option_ids: list[int], modifier_id: int | None = None) -> None:
        if modifier_id is None:
            message = f"Option {option_ids[0]} not found"
        else:
            message = f"Options {option_ids} are not active choices of modifier {modifier_id}"
        super().__init__(message, option_ids=option_ids, modifier_id=modifier_id)


class DuplicateAssignment(ModifierError):
    code = "duplicate_assignment"

    def __init__(self, modifier_id: int, entity_type: str, entity_id: int) -> None:
        super().__init__(
            f"Modifier {modifier_id} is already assigned to {entity_type} {entity_id}",
            modifier_id=modifier_id,
            entity_type=entity_type,
            entity_id=entity_id,
        )


class AssignmentNotFound(ModifierError):
    code = "assignment_not_found"

    def __init__(self, modifier_id: int, entity_type: str, entity_id: int) -> None:
        super().__init__(
            f"Modifier {modifier_id} is not assigned to {entity_type} {entity_id}",
            modifier_id=modifier_id,
            entity_type=entity_type,
            entity_id=entity_id,
        )


class ModifierInUse(ModifierError):
    code = "modifier_in_use"

    def __init__(self, modifier_id: int, assignment_count: int) -> None:
        super().__init__(
            f"Modifier {modifier_id} still has {assignment_count} assignment(s)",
            modifier_id=modifier_id,
            assignment_count=assignment_count,
        )


class InvalidModifierPolicy(ModifierError):
    code = "invalid_modifier_policy"


class TooFewChoices(ModifierError):
    code = "too_few_choices"

    def __init__(self, modifier_id: int, chosen: int, minimum: int) -> None:
        super().__init__(
            f"Modifier {modifier_id} requires at least {minimum} choice(s), got {chosen}",
            modifier_id=modifier_id,
            chosen=chosen,
            minimum=minimum,
        )


class TooManyChoices(ModifierError):
    code = "too_many_choices"

    def __init__(self, modifier_id: int, chosen: int, maximum: int) -> None:
        super().__init__(
            f"Modifier {modifier_id} allows at most {maximum} choice(s), got {chosen}",
            modifier_id=modifier_id,
            chosen=chosen,
            maximum=maximum,
        )


class MissingRequiredModifier(ModifierError):
    code = "missing_required_modifier"

    def __init__(self, modifier_id: int, product_id: int) -> None:
        super().__init__(
            f"Modifier {modifier_id} is required for product {product_id}",
            modifier_id=modifier_id,
            product_id=product_id,
        )


class UnapplicableModifier(ModifierError):
    code = "unapplicable_modifier"

    def __init__(self, modifier_id: int, product_id: int) -> None:
        super().__init__(
            f"Modifier {modifier_id} does not apply to product {product_id}",
            modifier_id=modifier_id,
            product_id=product_id,
        )


SELECTION_ERRORS = (TooFewChoices, TooManyChoices, MissingRequiredModifier, UnapplicableModifier)
