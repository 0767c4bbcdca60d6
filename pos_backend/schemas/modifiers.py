from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ModifierCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    selection_type: Literal["single", "multiple"] = "single"
    min_choices: int = Field(0, ge=0)
    max_choices: Optional[int] = Field(None, ge=0)
    sort_order: int = 0
    is_active: bool = True


class ModifierUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    selection_type: Optional[Literal["single", "multiple"]] = None
    min_choices: Optional[int] = Field(None, ge=0)
    max_choices: Optional[int] = Field(None, ge=0)
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class ModifierOptionCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price_delta: Decimal = Field(Decimal("0"), max_digits=10, decimal_places=2)
    sort_order: int = 0
    is_active: bool = True


class ModifierOptionUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price_delta: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class AssignmentRequest(BaseModel):
    entity_type: Literal["category", "product"]
    entity_id: int


class OrderLineValidationRequest(BaseModel):
    selections: dict[int, list[int]] = Field(default_factory=dict)
