"""
Company Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import List
from datetime import datetime


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class CompanyResponse(BaseModel):
    id: int
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class CompanyCreatedResponse(CompanyResponse):
    """Company plus the system product types provisioned for it"""
    product_types: List[str] = Field(default_factory=list)
