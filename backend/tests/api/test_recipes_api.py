"""
Tests for the /recipes endpoints

Covers recipe CRUD, cost roll-up, BOM expansion and the error responses of
the recipe rules (cycles, invalid yield).
"""
import pytest
from decimal import Decimal

from app.core.config import settings
from tests.factories import add_ingredient, create_pao_frances, create_test_product, create_test_recipe

BASE = "/api/v1/recipes"


@pytest.fixture
def materials(db_session, company):
    return {
        "farinha": create_test_product(db_session, company, name="Farinha", cost="2.00"),
        "agua": create_test_product(db_session, company, name="Agua", cost="0.75"),
    }


def _create_massa(client, headers, materials):
    response = client.post(BASE, headers=headers, json={
        "name": "Massa Fermentada",
        "code": "SUB-MF",
        "yield_kg": "1",
        "ingredients": [
            {"product_id": materials["farinha"].id, "quantity": "0.6"},
            {"product_id": materials["agua"].id, "quantity": "0.4"},
        ],
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestRecipeCrud:
    """Tests for POST/GET/PUT/DELETE /recipes"""

    def test_create_recipe_with_sub_recipe(self, client, company_headers, materials):
        """Saving returns the rolled-up cost and the synced product id."""
        # Arrange
        massa = _create_massa(client, company_headers, materials)

        # Act
        response = client.post(BASE, headers=company_headers, json={
            "name": "Pao Frances",
            "code": "PF",
            "yield_kg": "10",
            "yield_units": "100",
            "ingredients": [
                {"product_id": materials["farinha"].id, "quantity": "6"},
                {"sub_recipe_id": massa["recipe"]["id"], "is_sub_recipe": True, "quantity": "4"},
            ],
        })

        # Assert
        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["cost"]["total_cost"]) == Decimal("18")
        assert Decimal(data["cost"]["cost_per_kg"]) == Decimal("1.8")
        assert Decimal(data["cost"]["cost_per_unit"]) == Decimal("0.18")
        assert data["product_id"] is not None
        assert len(data["recipe"]["ingredients"]) == 2

    def test_create_requires_tenant_header(self, client, materials):
        response = client.post(BASE, json={"name": "Sem Empresa", "yield_kg": "1"})
        assert response.status_code == 400
        assert response.json()["error"] == "TENANT_REQUIRED"

    def test_zero_yield_returns_invalid_yield(self, client, company_headers):
        response = client.post(BASE, headers=company_headers, json={"name": "Vazia", "yield_kg": "0"})

        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_YIELD"

    def test_ingredient_with_two_references_is_rejected(self, client, company_headers, materials):
        response = client.post(BASE, headers=company_headers, json={
            "name": "Errada",
            "yield_kg": "1",
            "ingredients": [{
                "product_id": materials["farinha"].id,
                "sub_recipe_id": 1,
                "is_sub_recipe": True,
                "quantity": "1",
            }],
        })

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_duplicate_name(self, client, company_headers, materials):
        _create_massa(client, company_headers, materials)

        response = client.post(BASE, headers=company_headers, json={
            "name": "MASSA FERMENTADA", "yield_kg": "1",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "DUPLICATE_ERROR"

    def test_check_name(self, client, company_headers, materials):
        massa = _create_massa(client, company_headers, materials)

        taken = client.get(f"{BASE}/check-name", headers=company_headers,
                           params={"name": "massa fermentada"})
        excluded = client.get(f"{BASE}/check-name", headers=company_headers,
                              params={"name": "massa fermentada", "exclude_id": massa["recipe"]["id"]})

        assert taken.json()["exists"] is True
        assert excluded.json()["exists"] is False

    def test_update_creating_cycle_returns_chain(self, client, company_headers, materials):
        """A sub-recipe leading back to the recipe is refused with the cycle chain."""
        # Arrange
        massa = _create_massa(client, company_headers, materials)["recipe"]
        pao = client.post(BASE, headers=company_headers, json={
            "name": "Pao Frances",
            "yield_kg": "10",
            "ingredients": [{"sub_recipe_id": massa["id"], "is_sub_recipe": True, "quantity": "4"}],
        }).json()["recipe"]

        # Act
        response = client.put(f"{BASE}/{massa['id']}", headers=company_headers, json={
            "ingredients": [{"sub_recipe_id": pao["id"], "is_sub_recipe": True, "quantity": "1"}],
        })

        # Assert
        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "CYCLE_DETECTED"
        assert data["details"]["chain"] == [massa["id"], pao["id"], massa["id"]]

    def test_list_and_search(self, client, company_headers, materials):
        _create_massa(client, company_headers, materials)
        client.post(BASE, headers=company_headers, json={"name": "Bolo de Milho", "yield_kg": "2"})

        response = client.get(BASE, headers=company_headers, params={"search": "milho"})

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["items"][0]["name"] == "Bolo de Milho"

    def test_delete_then_get_is_not_found(self, client, company_headers, materials):
        massa = _create_massa(client, company_headers, materials)["recipe"]

        deleted = client.delete(f"{BASE}/{massa['id']}", headers=company_headers)
        response = client.get(f"{BASE}/{massa['id']}", headers=company_headers)

        assert deleted.status_code == 200
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_other_company_cannot_see_recipe(self, client, company_headers, materials):
        massa = _create_massa(client, company_headers, materials)["recipe"]
        other = client.post("/api/v1/companies", json={"name": "Outra"}).json()

        response = client.get(f"{BASE}/{massa['id']}", headers={settings.COMPANY_HEADER: str(other["id"])})

        assert response.status_code == 404


class TestCostAndExpansion:
    """Tests for /recipes/{id}/cost, /recipes/recompute-costs and /recipes/{id}/expand"""

    def test_expand_aggregated(self, client, db_session, company, company_headers):
        data = create_pao_frances(db_session, company)

        response = client.get(f"{BASE}/{data['pao'].id}/expand", headers=company_headers,
                              params={"target_quantity_kg": "20"})

        assert response.status_code == 200
        materials = response.json()["materials"]
        assert [(m["product_name"], Decimal(m["quantity"])) for m in materials] == [
            ("Agua", Decimal("3.2")),
            ("Farinha", Decimal("16.8")),
        ]

    def test_expand_unaggregated_keeps_paths(self, client, db_session, company, company_headers):
        data = create_pao_frances(db_session, company)

        response = client.get(f"{BASE}/{data['pao'].id}/expand", headers=company_headers,
                              params={"target_quantity_kg": "20", "aggregate": "false"})

        materials = response.json()["materials"]
        assert len(materials) == 3
        assert materials[1]["path"] == [data["pao"].id, data["massa"].id]

    def test_expand_cycle_is_reported(self, client, db_session, company, company_headers):
        a = create_test_recipe(db_session, company, name="A")
        b = create_test_recipe(db_session, company, name="B")
        add_ingredient(db_session, a, sub_recipe=b)
        add_ingredient(db_session, b, sub_recipe=a)

        response = client.get(f"{BASE}/{a.id}/expand", headers=company_headers,
                              params={"target_quantity_kg": "1"})

        assert response.status_code == 422
        assert response.json()["details"]["chain"] == [a.id, b.id, a.id]

    def test_negative_target_is_rejected(self, client, db_session, company, company_headers):
        recipe = create_test_recipe(db_session, company)

        response = client.get(f"{BASE}/{recipe.id}/expand", headers=company_headers,
                              params={"target_quantity_kg": "-1"})

        assert response.status_code == 422

    def test_recompute_one(self, client, db_session, company, company_headers):
        data = create_pao_frances(db_session, company)

        response = client.post(f"{BASE}/{data['pao'].id}/cost", headers=company_headers)

        assert response.status_code == 200
        assert Decimal(response.json()["total_cost"]) == Decimal("18")

    def test_recompute_all_reports_failures(self, client, db_session, company, company_headers):
        create_pao_frances(db_session, company)
        broken = create_test_recipe(db_session, company, name="Quebrada", yield_kg="0")

        response = client.post(f"{BASE}/recompute-costs", headers=company_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["updated"] == 2
        assert [f["recipe_id"] for f in data["failed"]] == [broken.id]
        assert data["failed"][0]["error"] == "INVALID_YIELD"
