"""
Unit Tests for production order maintenance
"""
import pytest
from datetime import date
from decimal import Decimal

from app.core.status_config import StatusTransitionError
from app.exceptions import DuplicateError, InvalidStateError, NotFoundError
from app.schemas.production_order import OrderLineInput, ProductionOrderUpdate
from app.services import production_order_service
from tests.factories import create_pao_frances, create_test_production_order


@pytest.fixture
def pao(db_session, company):
    return create_pao_frances(db_session, company)["pao"]


class TestOrderNumbers:

    def test_numbers_are_sequential_per_day(self, db_session, company, pao):
        first = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "10"}])
        second = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "10"}])
        other_day = create_test_production_order(
            db_session, company, [{"recipe": pao, "quantity": "10"}], on=date(2026, 3, 3)
        )

        assert first.order_number == "P20260302-001"
        assert second.order_number == "P20260302-002"
        assert other_day.order_number == "P20260303-001"

    def test_explicit_duplicate_number_is_rejected(self, db_session, company, pao):
        create_test_production_order(
            db_session, company, [{"recipe": pao, "quantity": "10"}], order_number="OP-1"
        )
        with pytest.raises(DuplicateError):
            create_test_production_order(
                db_session, company, [{"recipe": pao, "quantity": "10"}], order_number="OP-1"
            )


class TestOrderItems:

    def test_kg_line_derives_units(self, db_session, company, pao):
        order = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "20"}])
        item = order.items[0]

        assert order.status == "pending"
        assert item.recipe_name == "Pao Frances"
        assert item.planned_quantity_kg == Decimal("20")
        assert item.planned_quantity_units == Decimal("200")

    def test_unit_line_derives_kg(self, db_session, company, pao):
        order = create_test_production_order(
            db_session, company, [{"recipe": pao, "quantity": "150", "unit": "un"}]
        )
        item = order.items[0]

        assert item.unit == "un"
        assert item.planned_quantity_kg == Decimal("15")
        assert item.planned_quantity_units == Decimal("150")

    def test_unknown_recipe_is_not_found(self, db_session, company, pao):
        pao.is_deleted = True
        db_session.commit()
        with pytest.raises(NotFoundError):
            create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "1"}])

    def test_update_replaces_items(self, db_session, company, pao):
        order = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "20"}])

        updated = production_order_service.update_order(
            db_session, company.id, order.id,
            ProductionOrderUpdate(
                notes="Turno da manha",
                items=[OrderLineInput(recipe_id=pao.id, quantity=Decimal("5"))],
            ),
        )

        assert updated.notes == "Turno da manha"
        assert len(updated.items) == 1
        assert updated.items[0].planned_quantity_kg == Decimal("5")

    def test_materials_for_stored_order(self, db_session, company, pao):
        order = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "20"}])

        materials, warnings = production_order_service.calculate_materials(
            db_session, company.id, production_order_service.order_lines(order)
        )

        assert warnings == []
        assert [(m.name, m.total_quantity) for m in materials] == [
            ("Agua", Decimal("3.2")),
            ("Farinha", Decimal("16.8")),
        ]


class TestStatus:

    def test_pending_to_in_progress_and_back(self, db_session, company, pao):
        order = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "1"}])

        order = production_order_service.update_status(db_session, company.id, order.id, "in_progress")
        assert order.status == "in_progress"
        order = production_order_service.update_status(db_session, company.id, order.id, "pending")
        assert order.status == "pending"

    def test_terminal_status_cannot_change(self, db_session, company, pao):
        order = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "1"}])
        production_order_service.update_status(db_session, company.id, order.id, "cancelled")

        with pytest.raises(StatusTransitionError) as exc_info:
            production_order_service.update_status(db_session, company.id, order.id, "pending")
        assert exc_info.value.details["current_state"] == "cancelled"
        assert exc_info.value.allowed == []

    def test_cancelled_order_cannot_be_edited(self, db_session, company, pao):
        order = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "1"}])
        production_order_service.update_status(db_session, company.id, order.id, "cancelled")

        with pytest.raises(InvalidStateError):
            production_order_service.update_order(
                db_session, company.id, order.id, ProductionOrderUpdate(notes="x")
            )

    def test_completed_order_cannot_be_deleted(self, db_session, company, pao):
        order = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "1"}])
        production_order_service.update_status(db_session, company.id, order.id, "completed")

        with pytest.raises(InvalidStateError):
            production_order_service.delete_order(db_session, company.id, order.id)

    def test_pending_order_can_be_deleted(self, db_session, company, pao):
        order = create_test_production_order(db_session, company, [{"recipe": pao, "quantity": "1"}])
        production_order_service.delete_order(db_session, company.id, order.id)

        with pytest.raises(NotFoundError):
            production_order_service.get_order(db_session, company.id, order.id)
