"""
Unit Tests for inventory transactions and production confirmation
"""
import pytest
from datetime import date
from decimal import Decimal

from app.core.status_config import StatusTransitionError
from app.exceptions import NotFoundError, ValidationError
from app.models.inventory import InventoryTransaction
from app.schemas.inventory import InventoryTransactionCreate
from app.schemas.production_order import ConfirmItemInput
from app.services import inventory_service, production_order_service
from app.services.catalog_store import CatalogStore
from app.services.product_sync import ProductSyncService
from tests.factories import (
    create_pao_frances,
    create_test_product,
    create_test_production_order,
)


class TestInventoryTransactions:

    def test_receipt_increases_stock_and_updates_cost(self, db_session, company):
        flour = create_test_product(db_session, company, name="Farinha", cost="2.00", current_stock="10")

        txn = inventory_service.add_inventory_transaction(
            db_session, company.id,
            InventoryTransactionCreate(
                product_id=flour.id, type="in", quantity=Decimal("25"),
                cost=Decimal("2.40"), invoice="NF-123",
            ),
        )

        db_session.refresh(flour)
        assert txn.type == "in"
        assert txn.date == date.today()
        assert flour.current_stock == Decimal("35")
        assert flour.cost == Decimal("2.40")

    def test_issue_decreases_stock_and_keeps_cost(self, db_session, company):
        flour = create_test_product(db_session, company, name="Farinha", cost="2.00", current_stock="10")

        inventory_service.add_inventory_transaction(
            db_session, company.id,
            InventoryTransactionCreate(product_id=flour.id, type="out", quantity=Decimal("4")),
        )

        db_session.refresh(flour)
        assert flour.current_stock == Decimal("6")
        assert flour.cost == Decimal("2.00")

    def test_stock_may_go_negative(self, db_session, company):
        flour = create_test_product(db_session, company, name="Farinha")

        inventory_service.add_inventory_transaction(
            db_session, company.id,
            InventoryTransactionCreate(product_id=flour.id, type="out", quantity=Decimal("1.5")),
        )

        db_session.refresh(flour)
        assert flour.current_stock == Decimal("-1.5")

    def test_deleted_product_is_not_found(self, db_session, company):
        flour = create_test_product(db_session, company, name="Farinha")
        flour.is_deleted = True
        db_session.commit()

        with pytest.raises(NotFoundError):
            inventory_service.add_inventory_transaction(
                db_session, company.id,
                InventoryTransactionCreate(product_id=flour.id, type="in", quantity=Decimal("1")),
            )

    def test_list_filters_by_product(self, db_session, company):
        flour = create_test_product(db_session, company, name="Farinha")
        water = create_test_product(db_session, company, name="Agua")
        for product in (flour, flour, water):
            inventory_service.add_inventory_transaction(
                db_session, company.id,
                InventoryTransactionCreate(product_id=product.id, type="in", quantity=Decimal("1")),
            )

        rows, total = inventory_service.list_transactions(db_session, company.id, product_id=flour.id)

        assert total == 2
        assert {r.product_id for r in rows} == {flour.id}


@pytest.fixture
def bakery(db_session, company):
    data = create_pao_frances(db_session, company)
    data["farinha"].current_stock = Decimal("100")
    db_session.commit()
    store = CatalogStore(db_session, company.id)
    data["product"] = ProductSyncService(store).sync_linked_product(data["pao"]).product
    return data


class TestConfirmProduction:

    def test_confirm_books_output_and_consumption(self, db_session, company, bakery):
        order = create_test_production_order(
            db_session, company, [{"recipe": bakery["pao"], "quantity": "20"}]
        )

        order, created, warnings = inventory_service.confirm_production(db_session, company.id, order.id)

        assert order.status == "completed"
        assert order.completed_at is not None
        assert created == 3
        assert order.items[0].actual_quantity_kg == Decimal("20")

        for key in ("product", "farinha", "agua"):
            db_session.refresh(bakery[key])
        # 200 rolls in; 16.8 kg flour and 3.2 kg water out
        assert bakery["product"].current_stock == Decimal("200")
        assert bakery["farinha"].current_stock == Decimal("83.2")
        assert bakery["agua"].current_stock == Decimal("-3.2")

        booked = db_session.query(InventoryTransaction).filter(
            InventoryTransaction.production_order_id == order.id
        ).all()
        assert sorted((t.type, t.reason) for t in booked) == [
            ("in", "production"),
            ("out", "consumption"),
            ("out", "consumption"),
        ]

    def test_confirm_without_material_adjustment(self, db_session, company, bakery):
        order = create_test_production_order(
            db_session, company, [{"recipe": bakery["pao"], "quantity": "10"}]
        )

        _, created, _ = inventory_service.confirm_production(
            db_session, company.id, order.id, adjust_materials=False
        )

        db_session.refresh(bakery["farinha"])
        assert created == 1
        assert bakery["farinha"].current_stock == Decimal("100")

    def test_actual_units_override_plan(self, db_session, company, bakery):
        order = create_test_production_order(
            db_session, company, [{"recipe": bakery["pao"], "quantity": "20"}]
        )
        item = order.items[0]

        order, _, _ = inventory_service.confirm_production(
            db_session, company.id, order.id,
            items=[ConfirmItemInput(item_id=item.id, actual_quantity_units=Decimal("50"))],
        )

        db_session.refresh(bakery["farinha"])
        db_session.refresh(bakery["product"])
        assert order.items[0].actual_quantity_kg == Decimal("5")
        assert bakery["product"].current_stock == Decimal("50")
        assert bakery["farinha"].current_stock == Decimal("95.8")

    def test_unknown_item_is_rejected(self, db_session, company, bakery):
        order = create_test_production_order(
            db_session, company, [{"recipe": bakery["pao"], "quantity": "20"}]
        )
        with pytest.raises(ValidationError):
            inventory_service.confirm_production(
                db_session, company.id, order.id,
                items=[ConfirmItemInput(item_id=9999, actual_quantity_kg=Decimal("1"))],
            )

    def test_confirming_twice_is_rejected(self, db_session, company, bakery):
        order = create_test_production_order(
            db_session, company, [{"recipe": bakery["pao"], "quantity": "20"}]
        )
        inventory_service.confirm_production(db_session, company.id, order.id)

        with pytest.raises(StatusTransitionError) as exc_info:
            inventory_service.confirm_production(db_session, company.id, order.id)
        assert exc_info.value.error_code == "INVALID_STATUS_TRANSITION"

    def test_cancelled_order_cannot_be_confirmed(self, db_session, company, bakery):
        order = create_test_production_order(
            db_session, company, [{"recipe": bakery["pao"], "quantity": "20"}]
        )
        production_order_service.update_status(db_session, company.id, order.id, "cancelled")

        with pytest.raises(StatusTransitionError):
            inventory_service.confirm_production(db_session, company.id, order.id)
