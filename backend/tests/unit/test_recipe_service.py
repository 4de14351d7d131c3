"""
Unit Tests for the recipe save pipeline
"""
import pytest
from decimal import Decimal

from app.exceptions import CycleDetectedError, DuplicateError, InvalidYieldError, ValidationError
from app.schemas.recipe import RecipeCreate, RecipeIngredientInput, RecipeUpdate
from app.services import group_service, recipe_service
from app.services.catalog_store import CatalogStore
from app.services.cost_rollup import CostRollupService
from tests.factories import create_test_company, create_test_product


def raw(product, quantity, unit="kg", **kwargs):
    return RecipeIngredientInput(product_id=product.id, quantity=Decimal(quantity), unit=unit, **kwargs)


def sub(recipe, quantity, **kwargs):
    return RecipeIngredientInput(
        sub_recipe_id=recipe.id, is_sub_recipe=True, quantity=Decimal(quantity), **kwargs
    )


@pytest.fixture
def materials(db_session, company):
    return {
        "farinha": create_test_product(db_session, company, name="Farinha", cost="2.00"),
        "agua": create_test_product(db_session, company, name="Agua", cost="0.75"),
    }


@pytest.fixture
def massa(db_session, company, materials):
    return recipe_service.create_recipe(db_session, company.id, RecipeCreate(
        name="Massa Fermentada",
        code="SUB-MF",
        yield_kg=Decimal("1"),
        ingredients=[raw(materials["farinha"], "0.6"), raw(materials["agua"], "0.4")],
    )).recipe


class TestCreateRecipe:

    def test_create_rolls_up_cost_and_creates_product(self, db_session, company, materials, massa):
        result = recipe_service.create_recipe(db_session, company.id, RecipeCreate(
            name="Pao Frances",
            code="PF",
            yield_kg=Decimal("10"),
            yield_units=Decimal("100"),
            ingredients=[raw(materials["farinha"], "6"), sub(massa, "4")],
        ))

        assert result.cost.total_cost == Decimal("18.00")
        assert result.recipe.cost_per_kg == Decimal("1.80")
        assert result.product is not None
        assert result.product.unit == "UN"
        assert result.product.cost == Decimal("0.18")
        assert len(result.recipe.ingredients) == 2

    def test_sub_recipe_product_is_kg(self, db_session, company, massa):
        product = CatalogStore(db_session, company.id).find_linked_product(massa.id)
        assert product.unit == "Kg"
        assert product.cost == Decimal("1.50")

    def test_duplicate_name_is_rejected_case_insensitively(self, db_session, company, massa):
        with pytest.raises(DuplicateError):
            recipe_service.create_recipe(db_session, company.id, RecipeCreate(
                name="massa fermentada", yield_kg=Decimal("1"),
            ))

    def test_zero_yield_is_rejected(self, db_session, company):
        with pytest.raises(InvalidYieldError):
            recipe_service.create_recipe(db_session, company.id, RecipeCreate(
                name="Sem Rendimento", yield_kg=Decimal("0"),
            ))

    def test_unknown_product_is_rejected(self, db_session, company):
        with pytest.raises(ValidationError):
            recipe_service.create_recipe(db_session, company.id, RecipeCreate(
                name="Fantasma",
                yield_kg=Decimal("1"),
                ingredients=[RecipeIngredientInput(product_id=999, quantity=Decimal("1"))],
            ))

    def test_name_check(self, db_session, company, massa):
        assert recipe_service.check_recipe_name_exists(db_session, company.id, " MASSA fermentada ")
        assert not recipe_service.check_recipe_name_exists(
            db_session, company.id, "Massa Fermentada", exclude_id=massa.id
        )


class TestUpdateRecipe:

    def test_update_creating_cycle_is_rejected(self, db_session, company, materials, massa):
        pao = recipe_service.create_recipe(db_session, company.id, RecipeCreate(
            name="Pao Frances", yield_kg=Decimal("10"),
            ingredients=[sub(massa, "4")],
        )).recipe

        with pytest.raises(CycleDetectedError) as exc_info:
            recipe_service.update_recipe(db_session, company.id, massa.id, RecipeUpdate(
                ingredients=[raw(materials["farinha"], "1"), sub(pao, "1")],
            ))

        assert exc_info.value.chain == [massa.id, pao.id, massa.id]
        db_session.refresh(massa)
        assert len(massa.ingredients) == 2

    def test_self_reference_is_rejected(self, db_session, company, massa):
        with pytest.raises(CycleDetectedError):
            recipe_service.update_recipe(db_session, company.id, massa.id, RecipeUpdate(
                ingredients=[sub(massa, "1")],
            ))

    def test_ingredient_diff(self, db_session, company, materials, massa):
        flour_row, water_row = sorted(massa.ingredients, key=lambda i: i.id)
        salt = create_test_product(db_session, company, name="Sal", cost="4.00")

        result = recipe_service.update_recipe(db_session, company.id, massa.id, RecipeUpdate(
            ingredients=[
                raw(materials["farinha"], "0.5", id=flour_row.id),
                raw(salt, "0.02"),
            ],
        ))

        rows = sorted(result.recipe.ingredients, key=lambda i: i.id)
        assert [r.id for r in rows][0] == flour_row.id
        assert water_row.id not in [r.id for r in rows]
        assert rows[0].quantity == Decimal("0.5")
        assert rows[1].product_id == salt.id
        # 0.5 * 2.00 + 0.02 * 4.00
        assert result.cost.total_cost == Decimal("1.08")

    def test_yield_change_reprices_product(self, db_session, company, massa):
        result = recipe_service.update_recipe(db_session, company.id, massa.id, RecipeUpdate(
            yield_kg=Decimal("2"),
        ))
        assert result.cost.cost_per_kg == Decimal("0.75")
        assert result.product.cost == Decimal("0.75")
        assert result.product.kg_weight == Decimal("2")


class TestDeleteRecipe:

    def test_delete_retires_recipe_and_product(self, db_session, company, massa):
        store = CatalogStore(db_session, company.id)
        product = store.find_linked_product(massa.id)

        recipe_service.delete_recipe(db_session, company.id, massa.id)

        assert store.get_recipe(massa.id) is None
        assert store.find_linked_product(massa.id) is None
        assert store.get_product(product.id, include_deleted=True).is_deleted is True

    def test_name_is_free_after_delete(self, db_session, company, massa):
        recipe_service.delete_recipe(db_session, company.id, massa.id)
        assert not recipe_service.check_recipe_name_exists(db_session, company.id, "Massa Fermentada")


class TestProductNames:

    def test_rename_to_raw_material_name_is_rejected(self, db_session, company, materials, massa):
        """The recipe's product would share its name with the raw material."""
        with pytest.raises(DuplicateError) as exc_info:
            recipe_service.update_recipe(db_session, company.id, massa.id, RecipeUpdate(name="farinha"))

        assert exc_info.value.details["resource"] == "Product"
        names = [p.name.lower() for p in CatalogStore(db_session, company.id).products_query().all()]
        assert names.count("farinha") == 1

    def test_rename_keeping_own_product_name_is_allowed(self, db_session, company, massa):
        result = recipe_service.update_recipe(db_session, company.id, massa.id, RecipeUpdate(
            name="MASSA FERMENTADA",
        ))
        assert result.product.name == "MASSA FERMENTADA"

    def test_create_with_unlinked_product_name_adopts_it(self, db_session, company, materials):
        result = recipe_service.create_recipe(db_session, company.id, RecipeCreate(
            name="Agua", code="SUB-AG", yield_kg=Decimal("1"),
            ingredients=[raw(materials["farinha"], "1")],
        ))

        assert result.product.id == materials["agua"].id
        assert result.product.recipe_id == result.recipe.id


class TestCostDependencyCycles:

    def test_recipe_cannot_consume_its_own_product(self, db_session, company, materials, massa):
        own = CatalogStore(db_session, company.id).find_linked_product(massa.id)

        with pytest.raises(CycleDetectedError) as exc_info:
            recipe_service.update_recipe(db_session, company.id, massa.id, RecipeUpdate(
                ingredients=[raw(materials["farinha"], "0.6"), raw(own, "0.5")],
            ))

        assert exc_info.value.chain == [massa.id, massa.id]
        db_session.refresh(massa)
        assert {i.product_id for i in massa.ingredients} == {materials["farinha"].id, materials["agua"].id}

    def test_recipe_cannot_consume_product_of_dependent_recipe(self, db_session, company, materials, massa):
        pao = recipe_service.create_recipe(db_session, company.id, RecipeCreate(
            name="Pao Frances", yield_kg=Decimal("10"), ingredients=[sub(massa, "4")],
        )).recipe
        pao_product = CatalogStore(db_session, company.id).find_linked_product(pao.id)

        with pytest.raises(CycleDetectedError) as exc_info:
            recipe_service.update_recipe(db_session, company.id, massa.id, RecipeUpdate(
                ingredients=[raw(materials["farinha"], "0.6"), raw(pao_product, "0.1")],
            ))

        assert exc_info.value.chain == [massa.id, pao.id, massa.id]

    def test_new_recipe_adopting_product_used_downstream_is_rejected(self, db_session, company, materials):
        """Creating 'Calda' would adopt the raw Calda that Torta, its sub-recipe, consumes."""
        calda_raw = create_test_product(db_session, company, name="Calda", cost="3.00")
        torta = recipe_service.create_recipe(db_session, company.id, RecipeCreate(
            name="Torta", yield_kg=Decimal("1"), ingredients=[raw(calda_raw, "0.2")],
        )).recipe
        torta_id = torta.id

        with pytest.raises(CycleDetectedError) as exc_info:
            recipe_service.create_recipe(db_session, company.id, RecipeCreate(
                name="Calda", yield_kg=Decimal("1"), ingredients=[sub(torta, "0.5")],
            ))

        assert exc_info.value.chain[1] == torta_id
        store = CatalogStore(db_session, company.id)
        assert store.find_recipe_by_name("Calda") is None
        assert store.get_product(calda_raw.id).recipe_id is None

    def test_generated_product_as_ingredient_recomputes_stably(self, db_session, company, materials, massa):
        massa_product = CatalogStore(db_session, company.id).find_linked_product(massa.id)
        pao = recipe_service.create_recipe(db_session, company.id, RecipeCreate(
            name="Pao Frances", yield_kg=Decimal("10"),
            ingredients=[raw(materials["farinha"], "6"), raw(massa_product, "4")],
        )).recipe
        materials["agua"].cost = Decimal("2.00")
        db_session.commit()

        rollup = CostRollupService(CatalogStore(db_session, company.id))
        first = rollup.recompute_cost(pao.id)
        second = rollup.recompute_cost(pao.id)

        # 6 * 2.00 + 4 * 1.50
        assert first.total_cost == Decimal("18.00")
        assert second.total_cost == first.total_cost


class TestClassification:

    def test_subgroup_alone_brings_its_group(self, db_session, company):
        group = group_service.create_group(db_session, company.id, "Paes")
        subgroup = group_service.create_subgroup(db_session, company.id, group.id, "Salgados")

        result = recipe_service.create_recipe(db_session, company.id, RecipeCreate(
            name="Pao de Queijo", yield_kg=Decimal("1"), subgroup_id=subgroup.id,
        ))

        assert result.recipe.group_id == group.id
        assert result.product.subgroup_id == subgroup.id

    def test_other_company_group_is_rejected(self, db_session, company):
        other = create_test_company(db_session, name="Outra Padaria")
        foreign = group_service.create_group(db_session, other.id, "Bolos")

        with pytest.raises(ValidationError) as exc_info:
            recipe_service.create_recipe(db_session, company.id, RecipeCreate(
                name="Bolo", yield_kg=Decimal("1"), group_id=foreign.id,
            ))

        assert exc_info.value.details["field"] == "group_id"
        assert not recipe_service.check_recipe_name_exists(db_session, company.id, "Bolo")

    def test_unknown_group_is_rejected(self, db_session, company):
        with pytest.raises(ValidationError):
            recipe_service.create_recipe(db_session, company.id, RecipeCreate(
                name="Bolo", yield_kg=Decimal("1"), group_id=9999,
            ))

    def test_subgroup_of_another_group_is_rejected(self, db_session, company, massa):
        paes = group_service.create_group(db_session, company.id, "Paes")
        bolos = group_service.create_group(db_session, company.id, "Bolos")
        recheados = group_service.create_subgroup(db_session, company.id, bolos.id, "Recheados")

        with pytest.raises(ValidationError) as exc_info:
            recipe_service.update_recipe(db_session, company.id, massa.id, RecipeUpdate(
                group_id=paes.id, subgroup_id=recheados.id,
            ))
        assert exc_info.value.details["field"] == "subgroup_id"

    def test_moving_group_drops_old_subgroup(self, db_session, company):
        paes = group_service.create_group(db_session, company.id, "Paes")
        bolos = group_service.create_group(db_session, company.id, "Bolos")
        salgados = group_service.create_subgroup(db_session, company.id, paes.id, "Salgados")
        recipe = recipe_service.create_recipe(db_session, company.id, RecipeCreate(
            name="Esfiha", yield_kg=Decimal("1"), subgroup_id=salgados.id,
        )).recipe

        result = recipe_service.update_recipe(db_session, company.id, recipe.id, RecipeUpdate(group_id=bolos.id))

        assert result.recipe.group_id == bolos.id
        assert result.recipe.subgroup_id is None
