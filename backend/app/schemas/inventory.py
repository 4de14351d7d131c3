"""
Inventory Transaction Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, date as date_type
from decimal import Decimal

from app.core.status_config import TransactionType


class InventoryTransactionCreate(BaseModel):
    product_id: int
    type: TransactionType
    quantity: Decimal = Field(..., gt=0)
    cost: Optional[Decimal] = Field(None, ge=0, description="Unit cost (receipts)")
    date: Optional[date_type] = None
    invoice: Optional[str] = Field(None, max_length=100)
    reason: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class InventoryTransactionResponse(BaseModel):
    id: int
    product_id: int
    type: str
    quantity: Decimal
    cost: Optional[Decimal] = None
    date: date_type
    invoice: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    production_order_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
