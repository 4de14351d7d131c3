"""
Product and Product Type Pydantic Schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal


PRODUCT_UNITS = ("Kg", "UN")


def _normalize_product_unit(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    unit = v.strip().upper()
    if unit in ("KG", "KGS"):
        return "Kg"
    if unit in ("UN", "UND", "UNID"):
        return "UN"
    raise ValueError(f"unit must be one of {', '.join(PRODUCT_UNITS)}")


# ============================================================================
# Product Types
# ============================================================================

class ProductTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class ProductTypeUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class ProductTypeResponse(BaseModel):
    id: int
    name: str
    is_system: bool

    class Config:
        from_attributes = True


# ============================================================================
# Products
# ============================================================================

class ProductBase(BaseModel):
    """Base product fields"""
    name: str = Field(..., min_length=1, max_length=255)
    unit: str = Field("Kg", description="Kg or UN")
    supplier: Optional[str] = Field(None, max_length=255)
    cost: Decimal = Field(Decimal("0"), ge=0, description="Cost per unit of measure")
    unit_price: Optional[Decimal] = Field(None, ge=0)
    unit_weight: Optional[Decimal] = Field(None, gt=0, description="Weight of one unit in kg (UN products)")
    kg_weight: Optional[Decimal] = Field(None, gt=0, description="Package weight in kg (Kg products)")
    min_stock: Decimal = Field(Decimal("0"), ge=0)
    product_type_id: Optional[int] = None
    group_id: Optional[int] = None
    subgroup_id: Optional[int] = None

    @field_validator("unit")
    @classmethod
    def normalize_unit(cls, v):
        return _normalize_product_unit(v)


class ProductCreate(ProductBase):
    sku: Optional[str] = Field(None, max_length=50, description="Generated when omitted")
    current_stock: Decimal = Field(Decimal("0"), ge=0)


class ProductUpdate(BaseModel):
    """Update an existing product (all fields optional)"""
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    unit: Optional[str] = None
    supplier: Optional[str] = Field(None, max_length=255)
    cost: Optional[Decimal] = Field(None, ge=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    unit_weight: Optional[Decimal] = Field(None, gt=0)
    kg_weight: Optional[Decimal] = Field(None, gt=0)
    min_stock: Optional[Decimal] = Field(None, ge=0)
    product_type_id: Optional[int] = None
    group_id: Optional[int] = None
    subgroup_id: Optional[int] = None

    @field_validator("unit")
    @classmethod
    def normalize_unit(cls, v):
        return _normalize_product_unit(v)


class ProductResponse(BaseModel):
    id: int
    sku: str
    name: str
    unit: str
    supplier: Optional[str] = None
    cost: Decimal
    unit_price: Optional[Decimal] = None
    unit_weight: Optional[Decimal] = None
    kg_weight: Optional[Decimal] = None
    current_stock: Decimal
    min_stock: Decimal
    recipe_id: Optional[int] = None
    product_type_id: Optional[int] = None
    group_id: Optional[int] = None
    subgroup_id: Optional[int] = None
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
