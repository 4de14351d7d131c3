"""
Tests for the /production-orders endpoints

Order lifecycle, materials and pre-weighing calculation, and production
confirmation with its inventory movements.
"""
import pytest
from decimal import Decimal

from app.services.catalog_store import CatalogStore
from app.services.product_sync import ProductSyncService
from tests.factories import create_pao_frances

BASE = "/api/v1/production-orders"


@pytest.fixture
def bakery(db_session, company):
    data = create_pao_frances(db_session, company)
    data["product"] = ProductSyncService(CatalogStore(db_session, company.id)).sync_linked_product(
        data["pao"]
    ).product
    return data


def _create_order(client, headers, recipe_id, quantity="20", unit="kg"):
    response = client.post(BASE, headers=headers, json={
        "date": "2026-03-02",
        "items": [{"recipe_id": recipe_id, "quantity": quantity, "unit": unit}],
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestAdHocCalculations:
    """Tests for POST /production-orders/materials and /pre-weighing"""

    def test_materials(self, client, company_headers, bakery):
        response = client.post(f"{BASE}/materials", headers=company_headers, json={
            "items": [{"recipe_id": bakery["pao"].id, "quantity": "20"}],
        })

        assert response.status_code == 200
        data = response.json()
        assert [(m["name"], Decimal(m["total_quantity"])) for m in data["materials"]] == [
            ("Agua", Decimal("3.2")),
            ("Farinha", Decimal("16.8")),
        ]
        assert data["warnings"] == []

    def test_pre_weighing(self, client, company_headers, bakery):
        response = client.post(f"{BASE}/pre-weighing", headers=company_headers, json={
            "items": [{"recipe_id": bakery["pao"].id, "quantity": "20"}],
        })

        assert response.status_code == 200
        data = response.json()
        batch = data["sub_recipe_batches"][0]
        assert batch["name"] == "Massa Fermentada"
        assert Decimal(batch["needed_quantity"]) == Decimal("8")
        assert Decimal(batch["batch_multiplier"]) == Decimal("8")
        assert batch["pattern_count"] == 8
        assert [i["name"] for i in data["raw_materials"]] == ["Massa Fermentada", "Farinha"]

    def test_invalid_line_unit(self, client, company_headers, bakery):
        response = client.post(f"{BASE}/materials", headers=company_headers, json={
            "items": [{"recipe_id": bakery["pao"].id, "quantity": "1", "unit": "cx"}],
        })
        assert response.status_code == 422

    def test_unknown_recipe(self, client, company_headers):
        response = client.post(f"{BASE}/materials", headers=company_headers, json={
            "items": [{"recipe_id": 4242, "quantity": "1"}],
        })
        assert response.status_code == 404

    def test_status_transitions(self, client):
        response = client.get(f"{BASE}/status-transitions")

        assert response.status_code == 200
        assert response.json()["completed"] == []
        assert "completed" in response.json()["pending"]


class TestOrderLifecycle:
    """Tests for order CRUD, status changes and confirmation"""

    def test_create_generates_number_and_units(self, client, company_headers, bakery):
        order = _create_order(client, company_headers, bakery["pao"].id, quantity="150", unit="UN")

        assert order["order_number"] == "P20260302-001"
        assert order["status"] == "pending"
        item = order["items"][0]
        assert item["unit"] == "un"
        assert Decimal(item["planned_quantity_kg"]) == Decimal("15")
        assert Decimal(item["planned_quantity_units"]) == Decimal("150")

    def test_list_filters_by_status(self, client, company_headers, bakery):
        first = _create_order(client, company_headers, bakery["pao"].id)
        _create_order(client, company_headers, bakery["pao"].id)
        client.patch(f"{BASE}/{first['id']}/status", headers=company_headers, json={"status": "in_progress"})

        response = client.get(BASE, headers=company_headers, params={"status_filter": "in_progress"})

        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["items"][0]["id"] == first["id"]

    def test_order_materials_and_pre_weighing(self, client, company_headers, bakery):
        order = _create_order(client, company_headers, bakery["pao"].id)

        materials = client.get(f"{BASE}/{order['id']}/materials", headers=company_headers).json()
        pre_weighing = client.get(f"{BASE}/{order['id']}/pre-weighing", headers=company_headers).json()

        assert {m["name"] for m in materials["materials"]} == {"Agua", "Farinha"}
        assert pre_weighing["sub_recipe_batches"][0]["pattern_count"] == 8

    def test_confirm_moves_stock(self, client, db_session, company_headers, bakery):
        """Confirming stocks the finished product and consumes the raw materials."""
        # Arrange
        order = _create_order(client, company_headers, bakery["pao"].id)

        # Act
        response = client.post(f"{BASE}/{order['id']}/confirm", headers=company_headers)

        # Assert
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["order"]["status"] == "completed"
        assert data["transactions_created"] == 3

        txns = client.get("/api/v1/inventory/transactions", headers=company_headers,
                          params={"production_order_id": order["id"]}).json()
        assert txns["pagination"]["total"] == 3

        db_session.refresh(bakery["product"])
        assert bakery["product"].current_stock == Decimal("200")

    def test_confirm_with_actuals_and_no_material_adjustment(self, client, company_headers, bakery):
        order = _create_order(client, company_headers, bakery["pao"].id)

        response = client.post(f"{BASE}/{order['id']}/confirm", headers=company_headers, json={
            "items": [{"item_id": order["items"][0]["id"], "actual_quantity_kg": "18"}],
            "adjust_materials": False,
        })

        data = response.json()
        assert data["transactions_created"] == 1
        assert Decimal(data["order"]["items"][0]["actual_quantity_kg"]) == Decimal("18")

    def test_confirm_twice_is_rejected(self, client, company_headers, bakery):
        order = _create_order(client, company_headers, bakery["pao"].id)
        client.post(f"{BASE}/{order['id']}/confirm", headers=company_headers)

        response = client.post(f"{BASE}/{order['id']}/confirm", headers=company_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_STATUS_TRANSITION"

    def test_completed_order_cannot_be_edited_or_deleted(self, client, company_headers, bakery):
        order = _create_order(client, company_headers, bakery["pao"].id)
        client.post(f"{BASE}/{order['id']}/confirm", headers=company_headers)

        edited = client.put(f"{BASE}/{order['id']}", headers=company_headers, json={"notes": "tarde"})
        deleted = client.delete(f"{BASE}/{order['id']}", headers=company_headers)

        assert edited.status_code == 400
        assert deleted.status_code == 400
        assert deleted.json()["error"] == "INVALID_STATE"

    def test_delete_pending_order(self, client, company_headers, bakery):
        order = _create_order(client, company_headers, bakery["pao"].id)

        response = client.delete(f"{BASE}/{order['id']}", headers=company_headers)
        missing = client.get(f"{BASE}/{order['id']}", headers=company_headers)

        assert response.status_code == 200
        assert missing.status_code == 404
