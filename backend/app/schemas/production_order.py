"""
Production Order Pydantic Schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, date as date_type
from decimal import Decimal

from app.core.status_config import ProductionOrderStatus


def _normalize_line_unit(v: str) -> str:
    unit = (v or "kg").strip().lower()
    if unit not in ("kg", "un"):
        raise ValueError("unit must be 'kg' or 'un'")
    return unit


# ============================================================================
# Order lines
# ============================================================================

class OrderLineInput(BaseModel):
    """A recipe to produce and how much"""
    recipe_id: int
    quantity: Decimal = Field(..., gt=0)
    unit: str = Field("kg", description="kg or un")

    @field_validator("unit")
    @classmethod
    def normalize_unit(cls, v):
        return _normalize_line_unit(v)


class ProductionOrderItemResponse(BaseModel):
    id: int
    recipe_id: int
    recipe_name: str
    unit: str
    planned_quantity_kg: Decimal
    planned_quantity_units: Optional[Decimal] = None
    actual_quantity_kg: Optional[Decimal] = None
    actual_quantity_units: Optional[Decimal] = None

    class Config:
        from_attributes = True


# ============================================================================
# Orders
# ============================================================================

class ProductionOrderCreate(BaseModel):
    order_number: Optional[str] = Field(None, max_length=50, description="Generated when omitted")
    date: date_type
    notes: Optional[str] = None
    items: List[OrderLineInput] = Field(..., min_length=1)


class ProductionOrderUpdate(BaseModel):
    date: Optional[date_type] = None
    notes: Optional[str] = None
    items: Optional[List[OrderLineInput]] = Field(None, min_length=1)


class ProductionOrderStatusUpdate(BaseModel):
    status: ProductionOrderStatus


class ProductionOrderResponse(BaseModel):
    id: int
    order_number: str
    date: date_type
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    items: List[ProductionOrderItemResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


# ============================================================================
# Materials & pre-weighing
# ============================================================================

class MaterialsRequest(BaseModel):
    items: List[OrderLineInput] = Field(..., min_length=1)


class MaterialTotalResponse(BaseModel):
    product_id: int
    name: str
    total_quantity: Decimal
    unit: str

    class Config:
        from_attributes = True


class MaterialsResponse(BaseModel):
    materials: List[MaterialTotalResponse]
    warnings: List[str] = Field(default_factory=list)


class PreWeighingItemResponse(BaseModel):
    parent_recipe_id: int
    parent_recipe: str
    id: int
    name: str
    total_quantity: Decimal
    unit: str
    is_sub_recipe: bool
    pattern_count: Optional[int] = None

    class Config:
        from_attributes = True


class SubRecipeBatchResponse(BaseModel):
    recipe_id: int
    name: str
    standard_yield: Decimal
    needed_quantity: Decimal
    batch_multiplier: Decimal
    pattern_count: int
    unit: str
    parent_recipes: List[str] = Field(default_factory=list)
    ingredients: List[MaterialTotalResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class PreWeighingResponse(BaseModel):
    sub_recipe_batches: List[SubRecipeBatchResponse]
    raw_materials: List[PreWeighingItemResponse]
    warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


# ============================================================================
# Confirmation
# ============================================================================

class ConfirmItemInput(BaseModel):
    item_id: int
    actual_quantity_kg: Optional[Decimal] = Field(None, ge=0)
    actual_quantity_units: Optional[Decimal] = Field(None, ge=0)


class ProductionConfirmRequest(BaseModel):
    items: List[ConfirmItemInput] = Field(default_factory=list, description="Defaults to the planned quantities")
    adjust_materials: bool = Field(True, description="Book raw material consumption")


class ProductionConfirmResponse(BaseModel):
    order: ProductionOrderResponse
    transactions_created: int
    warnings: List[str] = Field(default_factory=list)
