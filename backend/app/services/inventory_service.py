"""
Inventory Transaction Service

Handles stock movements:
- Manual receipts and issues (``in`` / ``out``)
- Production confirmation (finished goods in, raw materials out)

Stock lives on ``Product.current_stock`` in the product's own unit.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.status_config import (
    ProductionOrderStatus,
    StatusTransitionError,
    TransactionReason,
    TransactionType,
    get_allowed_production_order_transitions,
    validate_production_order_transition,
)
from app.exceptions import BakeOpsException, NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.inventory import InventoryTransaction
from app.models.product import Product
from app.models.production_order import ProductionOrder, ProductionOrderItem
from app.schemas.inventory import InventoryTransactionCreate
from app.schemas.production_order import ConfirmItemInput
from app.services import uom_service
from app.services.bom_expander import aggregate_requirements
from app.services.catalog_store import CatalogStore
from app.services.production_materials import OrderLine, ProductionMaterialsCalculator

logger = get_logger(__name__)


def _record(
    db: Session,
    product: Product,
    txn_type: str,
    quantity: Decimal,
    *,
    cost: Optional[Decimal] = None,
    on: Optional[date] = None,
    invoice: Optional[str] = None,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    production_order_id: Optional[int] = None,
) -> InventoryTransaction:
    """Insert the transaction row and move the product's stock. Flushes only."""
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValidationError("Transaction quantity must be greater than zero", field="quantity", value=quantity)

    txn = InventoryTransaction(
        company_id=product.company_id,
        product_id=product.id,
        type=txn_type,
        quantity=quantity,
        cost=cost,
        date=on or date.today(),
        invoice=invoice,
        reason=reason,
        notes=notes,
        production_order_id=production_order_id,
    )
    db.add(txn)

    current = Decimal(str(product.current_stock or 0))
    if txn_type == TransactionType.IN.value:
        product.current_stock = current + quantity
        if cost is not None:
            product.cost = cost
    else:
        product.current_stock = current - quantity
        if product.current_stock < 0:
            logger.warning(
                "Stock went negative",
                extra={"product_id": product.id, "current_stock": str(product.current_stock)},
            )

    db.flush()
    return txn


def add_inventory_transaction(
    db: Session,
    company_id: int,
    data: InventoryTransactionCreate,
) -> InventoryTransaction:
    """
    Record a stock movement for an active product.

    ``in`` increases stock and, when a cost is given, updates the product
    cost. ``out`` decreases stock.

    Raises:
        NotFoundError: If the product does not exist or is deleted
    """
    product = CatalogStore(db, company_id).get_product(data.product_id)
    if product is None:
        raise NotFoundError("Product", data.product_id)

    txn = _record(
        db,
        product,
        data.type.value,
        data.quantity,
        cost=data.cost,
        on=data.date,
        invoice=data.invoice,
        reason=data.reason,
        notes=data.notes,
    )
    db.commit()
    db.refresh(txn)

    logger.info(
        "Inventory transaction recorded",
        extra={
            "company_id": company_id,
            "product_id": product.id,
            "type": txn.type,
            "quantity": str(txn.quantity),
        },
    )
    return txn


def list_transactions(
    db: Session,
    company_id: int,
    product_id: Optional[int] = None,
    production_order_id: Optional[int] = None,
    offset: int = 0,
    limit: int = 50,
) -> Tuple[List[InventoryTransaction], int]:
    query = db.query(InventoryTransaction).filter(InventoryTransaction.company_id == company_id)
    if product_id is not None:
        query = query.filter(InventoryTransaction.product_id == product_id)
    if production_order_id is not None:
        query = query.filter(InventoryTransaction.production_order_id == production_order_id)
    total = query.count()
    rows = (
        query.order_by(InventoryTransaction.date.desc(), InventoryTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total


# ============================================================================
# Production confirmation
# ============================================================================

def _actuals(item: ProductionOrderItem, given: Optional[ConfirmItemInput]) -> Tuple[Decimal, Optional[Decimal]]:
    """Actual (kg, units) for an order item, defaulting to the planned quantities."""
    if given is None:
        return Decimal(str(item.planned_quantity_kg or 0)), item.planned_quantity_units
    kg = given.actual_quantity_kg
    units = given.actual_quantity_units
    if kg is None and units is None:
        return Decimal(str(item.planned_quantity_kg or 0)), item.planned_quantity_units
    return (Decimal(str(kg)) if kg is not None else None), units


def confirm_production(
    db: Session,
    company_id: int,
    order_id: int,
    items: Optional[List[ConfirmItemInput]] = None,
    adjust_materials: bool = True,
) -> Tuple[ProductionOrder, int, List[str]]:
    """
    Confirm a production order.

    For every item: store the actual quantities, book an ``in`` transaction
    on the recipe's linked product (units when produced in units, else kg)
    and, with ``adjust_materials``, an ``out`` transaction for each raw
    material of the fully expanded recipe at the actual kg.

    Returns:
        (order, transactions_created, warnings)

    Raises:
        NotFoundError: If the order does not exist
        StatusTransitionError: If the order is already completed or cancelled
    """
    order = db.query(ProductionOrder).filter(
        ProductionOrder.id == order_id,
        ProductionOrder.company_id == company_id,
    ).first()
    if not order:
        raise NotFoundError("ProductionOrder", order_id)
    if order.is_terminal:
        raise StatusTransitionError(
            "production order",
            order.status,
            ProductionOrderStatus.COMPLETED.value,
            get_allowed_production_order_transitions(order.status),
        )
    validate_production_order_transition(order.status, ProductionOrderStatus.COMPLETED.value)

    given: Dict[int, ConfirmItemInput] = {i.item_id: i for i in (items or [])}
    known_ids = {item.id for item in order.items}
    unknown = sorted(set(given) - known_ids)
    if unknown:
        raise ValidationError(
            f"Items {unknown} do not belong to production order {order.order_number}",
            field="items",
        )

    store = CatalogStore(db, company_id)
    calculator = ProductionMaterialsCalculator(store)
    warnings: List[str] = []
    created = 0
    today = date.today()

    try:
        for item in order.items:
            actual_kg, actual_units = _actuals(item, given.get(item.id))

            if (actual_kg is None or actual_kg <= 0) and actual_units and actual_units > 0:
                graph = calculator.expander.load_graph([item.recipe_id])
                if item.recipe_id in graph:
                    actual_kg = calculator.line_quantity_kg(
                        graph, OrderLine(item.recipe_id, actual_units, "un")
                    )
            actual_kg = actual_kg or Decimal("0")

            item.actual_quantity_kg = actual_kg
            item.actual_quantity_units = actual_units

            if actual_kg <= 0 and not (actual_units and actual_units > 0):
                continue

            product = store.find_linked_product(item.recipe_id)
            if product is None:
                warnings.append(f"Recipe '{item.recipe_name}' has no product; output not stocked")
            else:
                produced = actual_units if actual_units and actual_units > 0 else actual_kg
                _record(
                    db,
                    product,
                    TransactionType.IN.value,
                    produced,
                    on=today,
                    reason=TransactionReason.PRODUCTION.value,
                    notes=f"Production of {item.recipe_name}",
                    production_order_id=order.id,
                )
                created += 1

            if not adjust_materials or actual_kg <= 0:
                continue

            if store.get_recipe(item.recipe_id) is None:
                warnings.append(f"Recipe '{item.recipe_name}' no longer exists; materials not consumed")
                continue

            requirements = aggregate_requirements(
                calculator.expander.expand(item.recipe_id, actual_kg)
            )
            for req in requirements:
                material = store.get_product(req.product_id)
                quantity, ok = uom_service.try_convert(req.quantity, req.unit, material.unit)
                if not ok:
                    warnings.append(
                        f"'{material.name}' consumed in '{req.unit}' but stocked in "
                        f"'{material.unit}'; quantity booked as is"
                    )
                if quantity <= 0:
                    continue
                _record(
                    db,
                    material,
                    TransactionType.OUT.value,
                    quantity,
                    on=today,
                    reason=TransactionReason.CONSUMPTION.value,
                    notes=f"Consumed producing {item.recipe_name}",
                    production_order_id=order.id,
                )
                created += 1

        order.status = ProductionOrderStatus.COMPLETED.value
        order.completed_at = datetime.utcnow()
        db.commit()
    except BakeOpsException:
        db.rollback()
        raise

    warnings.extend(calculator.warnings)
    db.refresh(order)
    logger.info(
        "Production order confirmed",
        extra={
            "company_id": company_id,
            "production_order_id": order.id,
            "transactions": created,
            "adjust_materials": adjust_materials,
        },
    )
    return order, created, warnings
