"""
Unit Tests for the production-order materials and pre-weighing calculator
"""
import pytest
from decimal import Decimal

from app.exceptions import NotFoundError, ValidationError
from app.services.catalog_store import CatalogStore
from app.services.production_materials import OrderLine, ProductionMaterialsCalculator
from tests.factories import create_pao_frances, create_test_product, create_test_recipe


@pytest.fixture
def calculator(db_session, company):
    return ProductionMaterialsCalculator(CatalogStore(db_session, company.id))


class TestCalculateMaterials:

    def test_same_material_from_two_recipes_is_summed(self, db_session, company, calculator):
        flour = create_test_product(db_session, company, name="Farinha")
        bread = create_test_recipe(
            db_session, company, name="Pao", ingredients=[{"product": flour, "quantity": "1"}]
        )
        cake = create_test_recipe(
            db_session, company, name="Bolo", ingredients=[{"product": flour, "quantity": "1"}]
        )

        totals = calculator.calculate_materials([
            OrderLine(bread.id, Decimal("5")),
            OrderLine(cake.id, Decimal("3")),
        ])

        assert len(totals) == 1
        assert totals[0].product_id == flour.id
        assert totals[0].total_quantity == Decimal("8")
        assert totals[0].unit == "kg"

    def test_materials_are_fully_expanded_and_sorted(self, db_session, company, calculator):
        data = create_pao_frances(db_session, company)

        totals = calculator.calculate_materials([OrderLine(data["pao"].id, Decimal("20"))])

        assert [(m.name, m.total_quantity) for m in totals] == [
            ("Agua", Decimal("3.2")),
            ("Farinha", Decimal("16.8")),
        ]

    def test_unit_line_is_converted_through_yield(self, db_session, company, calculator):
        data = create_pao_frances(db_session, company)

        # 50 rolls of 0.1 kg
        totals = calculator.calculate_materials([OrderLine(data["pao"].id, Decimal("50"), "un")])

        assert [(m.name, m.total_quantity) for m in totals] == [
            ("Agua", Decimal("0.8")),
            ("Farinha", Decimal("4.2")),
        ]

    def test_unit_line_without_weight_is_rejected(self, db_session, company, calculator):
        recipe = create_test_recipe(db_session, company, name="Granola")
        with pytest.raises(ValidationError):
            calculator.calculate_materials([OrderLine(recipe.id, Decimal("3"), "un")])

    def test_unknown_line_unit_is_rejected(self, db_session, company, calculator):
        recipe = create_test_recipe(db_session, company)
        with pytest.raises(ValidationError):
            calculator.calculate_materials([OrderLine(recipe.id, Decimal("3"), "cx")])

    def test_unknown_recipe_is_not_found(self, calculator):
        with pytest.raises(NotFoundError):
            calculator.calculate_materials([OrderLine(4242, Decimal("1"))])


class TestPreWeighing:

    def test_sub_recipe_batch_for_whole_order(self, db_session, company, calculator):
        data = create_pao_frances(db_session, company)
        pao, massa = data["pao"], data["massa"]

        result = calculator.calculate_pre_weighing([
            OrderLine(pao.id, Decimal("10")),
            OrderLine(pao.id, Decimal("10")),
        ])

        assert len(result.sub_recipe_batches) == 1
        batch = result.sub_recipe_batches[0]
        assert batch.recipe_id == massa.id
        assert batch.standard_yield == Decimal("1")
        assert batch.needed_quantity == Decimal("8")
        assert batch.batch_multiplier == Decimal("8")
        assert batch.pattern_count == 8
        assert batch.parent_recipes == ["Pao Frances"]
        assert [(m.name, m.total_quantity) for m in batch.ingredients] == [
            ("Agua", Decimal("3.2")),
            ("Farinha", Decimal("4.8")),
        ]

    def test_items_list_sub_recipes_before_raw_materials(self, db_session, company, calculator):
        data = create_pao_frances(db_session, company)

        result = calculator.calculate_pre_weighing([OrderLine(data["pao"].id, Decimal("20"))])

        rows = [(i.name, i.is_sub_recipe, i.total_quantity) for i in result.raw_materials]
        assert rows == [
            ("Massa Fermentada", True, Decimal("8")),
            ("Farinha", False, Decimal("12")),
        ]
        assert result.raw_materials[0].pattern_count == 8
        assert all(i.parent_recipe == "Pao Frances" for i in result.raw_materials)

    def test_groups_are_sorted_by_parent_recipe(self, db_session, company, calculator):
        data = create_pao_frances(db_session, company)
        sugar = create_test_product(db_session, company, name="Acucar")
        cake = create_test_recipe(
            db_session, company, name="Bolo", ingredients=[{"product": sugar, "quantity": "1"}]
        )

        result = calculator.calculate_pre_weighing([
            OrderLine(data["pao"].id, Decimal("10")),
            OrderLine(cake.id, Decimal("2")),
        ])

        parents = [i.parent_recipe for i in result.raw_materials]
        assert parents == ["Bolo", "Pao Frances", "Pao Frances"]

    def test_pattern_count_uses_sub_recipe_units(self, db_session, company, calculator):
        butter = create_test_product(db_session, company, name="Manteiga")
        roll = create_test_recipe(
            db_session, company, name="Bolinha", code="SUB-BO",
            yield_kg="1", yield_units="20",
            ingredients=[{"product": butter, "quantity": "1"}],
        )
        tray = create_test_recipe(
            db_session, company, name="Bandeja",
            ingredients=[{"sub_recipe": roll, "quantity": "0.5"}],
        )

        result = calculator.calculate_pre_weighing([OrderLine(tray.id, Decimal("2"))])

        # 1 kg of rolls at 20 rolls per kg
        assert result.sub_recipe_batches[0].pattern_count == 20
        assert result.sub_recipe_batches[0].needed_quantity == Decimal("1")
