"""
Cost Roll-Up Engine

Computes a recipe's cost from its direct ingredients:

- raw material:  unit_cost = product.cost,          quantity in the product's unit
- sub-recipe:    unit_cost = sub_recipe.cost_per_kg, quantity in kg

    total         = sum(unit_cost * quantity)
    cost_per_kg   = total / yield_kg
    cost_per_unit = total / yield_units   (None without units)

Sub-recipe costs are read as stored, so a full refresh must process recipes
bottom-up; ``recompute_all_costs`` does that with a topological sort.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from app.core.settings import get_settings
from app.exceptions import InvalidYieldError, NotFoundError, UnresolvedIngredientError
from app.logging_config import get_logger
from app.services import uom_service
from app.services.bom_expander import sub_recipe_quantity_kg
from app.services.catalog_store import CatalogStore
from app.services.product_sync import apply_recipe_pricing
from app.services.recipe_graph import RecipeGraph

logger = get_logger(__name__)


@dataclass
class RecipeCost:
    recipe_id: int
    total_cost: Decimal
    cost_per_kg: Decimal
    cost_per_unit: Optional[Decimal]
    warnings: List[str] = field(default_factory=list)


@dataclass
class BatchRecomputeResult:
    results: List[RecipeCost] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def updated(self) -> int:
        return len(self.results)


class CostRollupService:

    def __init__(self, store: CatalogStore):
        self.store = store
        self.quantum = get_settings().cost_quantum

    def _q(self, value: Decimal) -> Decimal:
        return value.quantize(self.quantum, rounding=ROUND_HALF_UP)

    def recompute_cost(self, recipe_id: int, commit: bool = True) -> RecipeCost:
        """
        Recompute and persist the cost of one recipe.

        Writes ingredient snapshots, then the recipe totals, then the linked
        product's cost, flushing after each step and committing once.

        Raises:
            NotFoundError: If the recipe does not exist or is deleted
            InvalidYieldError: If the recipe's yield_kg is not positive
        """
        recipe = self.store.get_recipe(recipe_id)
        if recipe is None:
            raise NotFoundError("Recipe", recipe_id)
        if recipe.yield_kg is None or recipe.yield_kg <= 0:
            raise InvalidYieldError(recipe.id, recipe_name=recipe.name, yield_kg=recipe.yield_kg)

        warnings: List[str] = []
        total = Decimal("0")

        for ingredient in self.store.get_recipe_ingredients(recipe.id):
            quantity = Decimal(str(ingredient.quantity))

            if ingredient.sub_recipe_id is not None:
                sub = self.store.get_recipe(ingredient.sub_recipe_id)
                if sub is None:
                    warnings.append(self._unresolved(ingredient, "sub-recipe"))
                    continue
                unit_cost = sub.cost_per_kg or Decimal("0")
                quantity, ok = sub_recipe_quantity_kg(quantity, ingredient.unit, sub)
                if not ok:
                    warnings.append(
                        f"Sub-recipe '{sub.name}' quantity in '{ingredient.unit}' costed as kg"
                    )
            else:
                product = self.store.get_product(ingredient.product_id)
                if product is None:
                    warnings.append(self._unresolved(ingredient, "product"))
                    continue
                unit_cost = product.cost or Decimal("0")
                quantity, ok = uom_service.try_convert(quantity, ingredient.unit, product.unit)
                if not ok:
                    warnings.append(
                        f"'{product.name}' is used in '{ingredient.unit}' but costed per "
                        f"'{product.unit}'; quantity taken as is"
                    )

            line_total = unit_cost * quantity
            total += line_total
            self.store.upsert_ingredient_cost(ingredient, self._q(unit_cost), self._q(line_total))

        self.store.db.flush()

        total_cost = self._q(total)
        cost_per_kg = self._q(total / recipe.yield_kg)
        cost_per_unit = None
        if recipe.yield_units and recipe.yield_units > 0:
            cost_per_unit = self._q(total / recipe.yield_units)
        self.store.upsert_recipe_cost(recipe, cost_per_kg, cost_per_unit)

        product = self.store.find_linked_product(recipe.id)
        if product is not None:
            apply_recipe_pricing(product, recipe)
            self.store.db.flush()

        if commit:
            self.store.db.commit()

        for message in warnings:
            logger.warning(message, extra={"recipe_id": recipe.id})
        logger.debug(
            "Recipe cost recomputed",
            extra={
                "recipe_id": recipe.id,
                "total_cost": str(total_cost),
                "cost_per_kg": str(cost_per_kg),
            },
        )
        return RecipeCost(
            recipe_id=recipe.id,
            total_cost=total_cost,
            cost_per_kg=cost_per_kg,
            cost_per_unit=cost_per_unit,
            warnings=warnings,
        )

    def recompute_all_costs(self) -> BatchRecomputeResult:
        """
        Recompute every active recipe of the company, sub-recipes first.

        A recipe with an invalid yield is reported in ``failed`` and the rest
        continue. Everything is committed together at the end.

        Raises:
            CycleDetectedError: If the stored recipes contain a cycle
        """
        graph = RecipeGraph.load_all(self.store)
        order = graph.topological_order()
        batch = BatchRecomputeResult()

        logger.info(
            "Recomputing recipe costs",
            extra={"company_id": self.store.company_id, "recipes": len(order)},
        )
        for recipe_id in order:
            try:
                batch.results.append(self.recompute_cost(recipe_id, commit=False))
            except InvalidYieldError as e:
                logger.error(e.message, extra={"recipe_id": recipe_id})
                batch.failed.append({"recipe_id": recipe_id, "error": e.error_code, "message": e.message})

        self.store.db.commit()
        logger.info(
            "Recipe costs recomputed",
            extra={
                "company_id": self.store.company_id,
                "updated": batch.updated,
                "failed": len(batch.failed),
            },
        )
        return batch

    def _unresolved(self, ingredient, reference: str) -> str:
        return UnresolvedIngredientError(
            ingredient.id, recipe_id=ingredient.recipe_id, reference=reference
        ).message
