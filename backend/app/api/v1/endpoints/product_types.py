"""
Product Types API Endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_company_id
from app.db.session import get_db
from app.schemas.common import MessageResponse
from app.schemas.product import ProductTypeCreate, ProductTypeResponse, ProductTypeUpdate
from app.services import product_types

router = APIRouter()


@router.get("", response_model=List[ProductTypeResponse])
async def list_product_types(
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """List the company's product types, system types included"""
    return product_types.list_product_types(db, company_id)


@router.post("", response_model=ProductTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_product_type(
    request: ProductTypeCreate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return product_types.create_product_type(db, request.name, company_id)


@router.put("/{type_id}", response_model=ProductTypeResponse)
async def update_product_type(
    type_id: int,
    request: ProductTypeUpdate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Rename a custom product type. System types are read-only (403)."""
    return product_types.update_product_type(db, type_id, request.name, company_id)


@router.delete("/{type_id}", response_model=MessageResponse)
async def delete_product_type(
    type_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Delete a custom product type that no product uses"""
    product_types.delete_product_type(db, type_id, company_id)
    return MessageResponse(message=f"Product type {type_id} deleted")
