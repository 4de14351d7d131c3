"""
Production Order Service

Creates and maintains production orders and runs the materials /
pre-weighing calculator over their lines.
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.status_config import (
    EDITABLE_PRODUCTION_ORDER_STATUSES,
    ProductionOrderStatus,
    validate_production_order_transition,
)
from app.exceptions import DuplicateError, InvalidStateError, NotFoundError
from app.logging_config import get_logger
from app.models.production_order import ProductionOrder, ProductionOrderItem
from app.schemas.production_order import (
    OrderLineInput,
    ProductionOrderCreate,
    ProductionOrderUpdate,
)
from app.services.catalog_store import CatalogStore
from app.services.production_materials import (
    LINE_UNIT_UN,
    MaterialTotal,
    OrderLine,
    PreWeighingResult,
    ProductionMaterialsCalculator,
)

logger = get_logger(__name__)


def generate_order_number(db: Session, company_id: int, on: date) -> str:
    """Order numbers look like P20260315-001, counted per company and day."""
    prefix = f"P{on:%Y%m%d}-"
    existing = db.query(ProductionOrder.order_number).filter(
        ProductionOrder.company_id == company_id,
        ProductionOrder.order_number.like(f"{prefix}%"),
    ).all()
    seq = 0
    for (number,) in existing:
        try:
            seq = max(seq, int(number[len(prefix):]))
        except ValueError:
            continue
    return f"{prefix}{seq + 1:03d}"


def get_order(db: Session, company_id: int, order_id: int) -> ProductionOrder:
    order = db.query(ProductionOrder).filter(
        ProductionOrder.id == order_id,
        ProductionOrder.company_id == company_id,
    ).first()
    if not order:
        raise NotFoundError("ProductionOrder", order_id)
    return order


def list_orders(
    db: Session,
    company_id: int,
    status: Optional[str] = None,
    offset: int = 0,
    limit: int = 50,
) -> Tuple[List[ProductionOrder], int]:
    query = db.query(ProductionOrder).filter(ProductionOrder.company_id == company_id)
    if status:
        query = query.filter(ProductionOrder.status == status)
    total = query.count()
    orders = (
        query.order_by(ProductionOrder.date.desc(), ProductionOrder.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return orders, total


def _build_items(store: CatalogStore, lines: List[OrderLineInput]) -> List[ProductionOrderItem]:
    """Order items with planned kg always filled in (units converted by recipe weight)."""
    calculator = ProductionMaterialsCalculator(store)
    graph = calculator.expander.load_graph([line.recipe_id for line in lines])

    items = []
    for line in lines:
        node = graph.node(line.recipe_id)
        if node is None:
            raise NotFoundError("Recipe", line.recipe_id)
        planned_kg = calculator.line_quantity_kg(graph, OrderLine(line.recipe_id, line.quantity, line.unit))

        if line.unit == LINE_UNIT_UN:
            planned_units = line.quantity
        elif node.yield_units and node.yield_units > 0:
            planned_units = line.quantity * node.yield_units / node.yield_kg
        else:
            planned_units = None

        items.append(ProductionOrderItem(
            recipe_id=node.id,
            recipe_name=node.name,
            unit=line.unit,
            planned_quantity_kg=planned_kg,
            planned_quantity_units=planned_units,
        ))
    return items


def create_order(db: Session, company_id: int, data: ProductionOrderCreate) -> ProductionOrder:
    store = CatalogStore(db, company_id)
    order_number = (data.order_number or "").strip() or generate_order_number(db, company_id, data.date)

    duplicate = db.query(ProductionOrder.id).filter(
        ProductionOrder.company_id == company_id,
        ProductionOrder.order_number == order_number,
    ).first()
    if duplicate:
        raise DuplicateError("ProductionOrder", field="order_number", value=order_number)

    order = ProductionOrder(
        company_id=company_id,
        order_number=order_number,
        date=data.date,
        status=ProductionOrderStatus.PENDING.value,
        notes=data.notes,
    )
    order.items = _build_items(store, data.items)
    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info(
        "Production order created",
        extra={"company_id": company_id, "production_order_id": order.id, "items": len(order.items)},
    )
    return order


def update_order(db: Session, company_id: int, order_id: int, data: ProductionOrderUpdate) -> ProductionOrder:
    order = get_order(db, company_id, order_id)
    if order.status not in EDITABLE_PRODUCTION_ORDER_STATUSES:
        raise InvalidStateError(
            f"Production order {order.order_number} can no longer be edited",
            current_state=order.status,
            allowed_states=sorted(EDITABLE_PRODUCTION_ORDER_STATUSES),
        )

    if data.date is not None:
        order.date = data.date
    if "notes" in data.model_fields_set:
        order.notes = data.notes
    if data.items is not None:
        order.items = _build_items(CatalogStore(db, company_id), data.items)

    db.commit()
    db.refresh(order)
    return order


def update_status(db: Session, company_id: int, order_id: int, status: str) -> ProductionOrder:
    """
    Move an order to another status. Completing through here does not touch
    stock; use confirm_production for that.
    """
    order = get_order(db, company_id, order_id)
    new_status = ProductionOrderStatus(status).value
    validate_production_order_transition(order.status, new_status)

    old_status = order.status
    order.status = new_status
    db.commit()
    db.refresh(order)

    logger.info(
        "Production order status changed",
        extra={
            "production_order_id": order.id,
            "old_status": old_status,
            "new_status": new_status,
        },
    )
    return order


def delete_order(db: Session, company_id: int, order_id: int) -> None:
    order = get_order(db, company_id, order_id)
    if order.status == ProductionOrderStatus.COMPLETED.value:
        raise InvalidStateError(
            "Completed production orders cannot be deleted",
            current_state=order.status,
        )
    db.delete(order)
    db.commit()


# ============================================================================
# Materials
# ============================================================================

def order_lines(order: ProductionOrder) -> List[OrderLine]:
    return [
        OrderLine(recipe_id=item.recipe_id, quantity=Decimal(str(item.planned_quantity_kg)), unit="kg")
        for item in order.items
    ]


def to_order_lines(lines: List[OrderLineInput]) -> List[OrderLine]:
    return [OrderLine(recipe_id=line.recipe_id, quantity=line.quantity, unit=line.unit) for line in lines]


def calculate_materials(db: Session, company_id: int, lines: List[OrderLine]) -> Tuple[List[MaterialTotal], List[str]]:
    calculator = ProductionMaterialsCalculator(CatalogStore(db, company_id))
    materials = calculator.calculate_materials(lines)
    return materials, list(calculator.warnings)


def calculate_pre_weighing(db: Session, company_id: int, lines: List[OrderLine]) -> PreWeighingResult:
    calculator = ProductionMaterialsCalculator(CatalogStore(db, company_id))
    return calculator.calculate_pre_weighing(lines)
