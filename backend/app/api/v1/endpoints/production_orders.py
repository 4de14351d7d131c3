"""
Production Orders API Endpoints

Daily production planning: which recipes to bake and how much, the raw
materials the plan consumes and the pre-weighing list for the bench.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_company_id, get_pagination_params
from app.core.status_config import (
    ProductionOrderStatus,
    get_allowed_production_order_transitions,
)
from app.db.session import get_db
from app.logging_config import get_logger
from app.schemas.common import ListResponse, MessageResponse, PaginationMeta, PaginationParams
from app.schemas.production_order import (
    MaterialsRequest,
    MaterialsResponse,
    MaterialTotalResponse,
    PreWeighingResponse,
    ProductionConfirmRequest,
    ProductionConfirmResponse,
    ProductionOrderCreate,
    ProductionOrderResponse,
    ProductionOrderStatusUpdate,
    ProductionOrderUpdate,
)
from app.services import inventory_service, production_order_service
from app.services.production_materials import PreWeighingResult

router = APIRouter()
logger = get_logger(__name__)


def _materials_response(materials, warnings) -> MaterialsResponse:
    return MaterialsResponse(
        materials=[MaterialTotalResponse.model_validate(m) for m in materials],
        warnings=warnings,
    )


def _pre_weighing_response(result: PreWeighingResult) -> PreWeighingResponse:
    return PreWeighingResponse.model_validate(result)


# ============================================================================
# Ad-hoc calculation (unsaved plans)
# ============================================================================

@router.post("/materials", response_model=MaterialsResponse)
async def calculate_materials(
    request: MaterialsRequest,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Total raw materials for a list of recipes and quantities"""
    lines = production_order_service.to_order_lines(request.items)
    materials, warnings = production_order_service.calculate_materials(db, company_id, lines)
    return _materials_response(materials, warnings)


@router.post("/pre-weighing", response_model=PreWeighingResponse)
async def calculate_pre_weighing(
    request: MaterialsRequest,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Pre-weighing list for a list of recipes and quantities"""
    lines = production_order_service.to_order_lines(request.items)
    result = production_order_service.calculate_pre_weighing(db, company_id, lines)
    return _pre_weighing_response(result)


@router.get("/status-transitions")
async def get_status_transitions():
    """Allowed next statuses for every production order status"""
    return {
        s.value: get_allowed_production_order_transitions(s.value)
        for s in ProductionOrderStatus
    }


# ============================================================================
# Order CRUD
# ============================================================================

@router.get("", response_model=ListResponse[ProductionOrderResponse])
async def list_production_orders(
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    status_filter: Optional[ProductionOrderStatus] = None,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """
    List production orders, newest date first

    - **status_filter**: Only orders in this status
    - **offset**: Number of records to skip (default: 0)
    - **limit**: Maximum records to return (default: 50, max: 500)
    """
    orders, total = production_order_service.list_orders(
        db,
        company_id,
        status=status_filter.value if status_filter else None,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return ListResponse(
        items=[ProductionOrderResponse.model_validate(o) for o in orders],
        pagination=PaginationMeta(
            total=total,
            offset=pagination.offset,
            limit=pagination.limit,
            returned=len(orders),
        ),
    )


@router.post("", response_model=ProductionOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_production_order(
    request: ProductionOrderCreate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """
    Create a production order. ``order_number`` defaults to
    P<yyyymmdd>-<sequence>; lines in units are converted to kg through the
    recipe's weight per unit.
    """
    return production_order_service.create_order(db, company_id, request)


@router.get("/{order_id}", response_model=ProductionOrderResponse)
async def get_production_order(
    order_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return production_order_service.get_order(db, company_id, order_id)


@router.put("/{order_id}", response_model=ProductionOrderResponse)
async def update_production_order(
    order_id: int,
    request: ProductionOrderUpdate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Update a pending or in-progress order. Sending ``items`` replaces the lines."""
    return production_order_service.update_order(db, company_id, order_id, request)


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_production_order(
    order_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Delete an order that has not been completed"""
    production_order_service.delete_order(db, company_id, order_id)
    return MessageResponse(message=f"Production order {order_id} deleted")


@router.patch("/{order_id}/status", response_model=ProductionOrderResponse)
async def update_production_order_status(
    order_id: int,
    request: ProductionOrderStatusUpdate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Change an order's status. Stock moves only through /confirm."""
    return production_order_service.update_status(db, company_id, order_id, request.status.value)


@router.post("/{order_id}/confirm", response_model=ProductionConfirmResponse)
async def confirm_production_order(
    order_id: int,
    request: Optional[ProductionConfirmRequest] = None,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """
    Confirm production: record actual quantities, stock the finished
    products and, with ``adjust_materials``, consume the raw materials.
    """
    request = request or ProductionConfirmRequest()
    order, created, warnings = inventory_service.confirm_production(
        db,
        company_id,
        order_id,
        items=request.items,
        adjust_materials=request.adjust_materials,
    )
    return ProductionConfirmResponse(
        order=ProductionOrderResponse.model_validate(order),
        transactions_created=created,
        warnings=warnings,
    )


# ============================================================================
# Materials for a saved order
# ============================================================================

@router.get("/{order_id}/materials", response_model=MaterialsResponse)
async def get_order_materials(
    order_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Total raw materials for the order's planned quantities"""
    order = production_order_service.get_order(db, company_id, order_id)
    lines = production_order_service.order_lines(order)
    materials, warnings = production_order_service.calculate_materials(db, company_id, lines)
    return _materials_response(materials, warnings)


@router.get("/{order_id}/pre-weighing", response_model=PreWeighingResponse)
async def get_order_pre_weighing(
    order_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Pre-weighing list for the order's planned quantities"""
    order = production_order_service.get_order(db, company_id, order_id)
    lines = production_order_service.order_lines(order)
    result = production_order_service.calculate_pre_weighing(db, company_id, lines)
    return _pre_weighing_response(result)
