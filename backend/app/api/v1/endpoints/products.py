"""
Products API Endpoints
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_company_id, get_pagination_params
from app.db.session import get_db
from app.schemas.common import ListResponse, MessageResponse, PaginationMeta, PaginationParams
from app.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from app.services import product_service

router = APIRouter()


@router.get("", response_model=ListResponse[ProductResponse])
async def list_products(
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    search: Optional[str] = None,
    product_type_id: Optional[int] = None,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """
    List active products

    - **search**: Search by SKU or name
    - **product_type_id**: Only products of this type
    - **offset**: Number of records to skip (default: 0)
    - **limit**: Maximum records to return (default: 50, max: 500)
    """
    products, total = product_service.list_products(
        db,
        company_id,
        search=search,
        product_type_id=product_type_id,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return ListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        pagination=PaginationMeta(
            total=total,
            offset=pagination.offset,
            limit=pagination.limit,
            returned=len(products),
        ),
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Get a specific product by ID"""
    return product_service.get_product(db, company_id, product_id)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    request: ProductCreate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Create a product. The SKU is generated from the name when omitted."""
    return product_service.create_product(db, company_id, request)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    request: ProductUpdate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return product_service.update_product(db, company_id, product_id, request)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Soft delete a product"""
    product = product_service.delete_product(db, company_id, product_id)
    return MessageResponse(message=f"Product {product.sku} deleted")
