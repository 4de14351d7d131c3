"""
Inventory API Endpoints

Manual stock movements and the transaction history. Production
confirmation books its own transactions through /production-orders.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_company_id, get_pagination_params
from app.db.session import get_db
from app.schemas.common import ListResponse, PaginationMeta, PaginationParams
from app.schemas.inventory import InventoryTransactionCreate, InventoryTransactionResponse
from app.services import inventory_service

router = APIRouter()


@router.post("/transactions", response_model=InventoryTransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    request: InventoryTransactionCreate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """
    Record a stock movement

    - **in**: increases stock; ``cost`` also becomes the product cost
    - **out**: decreases stock
    """
    return inventory_service.add_inventory_transaction(db, company_id, request)


@router.get("/transactions", response_model=ListResponse[InventoryTransactionResponse])
async def list_transactions(
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    product_id: Optional[int] = None,
    production_order_id: Optional[int] = None,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Transaction history, newest first"""
    rows, total = inventory_service.list_transactions(
        db,
        company_id,
        product_id=product_id,
        production_order_id=production_order_id,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return ListResponse(
        items=[InventoryTransactionResponse.model_validate(r) for r in rows],
        pagination=PaginationMeta(
            total=total,
            offset=pagination.offset,
            limit=pagination.limit,
            returned=len(rows),
        ),
    )
