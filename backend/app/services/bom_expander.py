"""
BOM Expander

Flattens a recipe into raw-material requirements for a target output weight.

Ingredient quantities are defined relative to the owning recipe's yield, so
every level is rescaled:

    scaled = ingredient.quantity / recipe.yield_kg * target_quantity_kg

Raw-material ingredients are emitted as they are; sub-recipe ingredients are
converted to kg and expanded recursively.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from app.exceptions import (
    CycleDetectedError,
    InvalidYieldError,
    NotFoundError,
    UnitMismatchError,
    UnresolvedIngredientError,
    ValidationError,
)
from app.logging_config import get_logger
from app.services import uom_service
from app.services.catalog_store import CatalogStore
from app.services.recipe_graph import IngredientEdge, RecipeGraph, RecipeNode

logger = get_logger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class MaterialRequirement:
    """A raw-material requirement from BOM expansion"""
    product_id: int
    product_name: str
    quantity: Decimal
    unit: str
    path: List[int] = field(default_factory=list)  # recipe ids, root first

    @property
    def parent_recipe_id(self) -> Optional[int]:
        return self.path[-1] if self.path else None


# ============================================================================
# Helpers
# ============================================================================

def require_positive_yield(node: RecipeNode) -> Decimal:
    """Return the recipe's yield_kg or raise InvalidYieldError."""
    if node.yield_kg is None or node.yield_kg <= 0:
        raise InvalidYieldError(node.id, recipe_name=node.name, yield_kg=node.yield_kg)
    return node.yield_kg


def sub_recipe_quantity_kg(
    quantity: Decimal,
    unit: str,
    sub_recipe: RecipeNode,
) -> Tuple[Decimal, bool]:
    """
    Express a sub-recipe ingredient quantity in kg.

    Mass units convert directly. A count unit uses the sub-recipe's weight per
    unit (yield_kg / yield_units) when it declares units.

    Returns:
        Tuple of (quantity_kg, was_converted)
    """
    converted, ok = uom_service.try_convert(quantity, unit, "KG")
    if ok:
        return converted, True
    if (
        uom_service.get_base_unit(unit) == "UN"
        and sub_recipe.yield_units
        and sub_recipe.yield_units > 0
        and sub_recipe.yield_kg
    ):
        units = uom_service.convert_quantity(quantity, unit, "UN")
        return units * sub_recipe.yield_kg / sub_recipe.yield_units, True
    return quantity, False


def aggregate_requirements(requirements: List[MaterialRequirement]) -> List[MaterialRequirement]:
    """
    Merge requirements by product id.

    Quantities are summed; the first-seen unit and name win. Later occurrences
    in a different but compatible unit (g vs kg) are converted first.

    Raises:
        UnitMismatchError: If the same product appears in incompatible units
    """
    merged: Dict[int, MaterialRequirement] = {}
    for req in requirements:
        current = merged.get(req.product_id)
        if current is None:
            merged[req.product_id] = MaterialRequirement(
                product_id=req.product_id,
                product_name=req.product_name,
                quantity=req.quantity,
                unit=req.unit,
                path=list(req.path),
            )
            continue

        quantity, ok = uom_service.try_convert(req.quantity, req.unit, current.unit)
        if not ok:
            raise UnitMismatchError(
                current.product_name,
                expected_unit=current.unit,
                found_unit=req.unit,
                details={"product_id": req.product_id},
            )
        current.quantity += quantity

    return list(merged.values())


# ============================================================================
# Expander
# ============================================================================

class BOMExpander:
    """
    Expands recipes into raw materials.

    Non-fatal problems (ingredients pointing at deleted products or recipes,
    unconvertible sub-recipe units) are logged and collected in ``warnings``.
    """

    def __init__(self, store: CatalogStore):
        self.store = store
        self.warnings: List[str] = []

    def load_graph(self, recipe_ids) -> RecipeGraph:
        return RecipeGraph.load(self.store, recipe_ids)

    def expand(
        self,
        recipe_id: int,
        target_quantity_kg: Decimal,
        graph: Optional[RecipeGraph] = None,
    ) -> List[MaterialRequirement]:
        """
        Expand a recipe into a flat list of raw-material requirements.

        Args:
            recipe_id: Recipe to expand
            target_quantity_kg: Output weight to produce
            graph: Pre-loaded graph containing the recipe (loaded when omitted)

        Returns:
            One MaterialRequirement per raw-material ingredient occurrence,
            in ingredient order, depth first

        Raises:
            NotFoundError: If the recipe does not exist or is deleted
            InvalidYieldError: If a visited recipe has yield_kg <= 0
            CycleDetectedError: If a recipe reaches itself through sub-recipes
        """
        target = Decimal(str(target_quantity_kg))
        if target < 0:
            raise ValidationError(
                "Target quantity cannot be negative",
                field="target_quantity_kg",
                value=target,
            )

        if graph is None:
            graph = self.load_graph([recipe_id])
        if recipe_id not in graph:
            raise NotFoundError("Recipe", recipe_id)

        requirements: List[MaterialRequirement] = []
        self._expand(graph, recipe_id, target, [], requirements)
        return requirements

    def expand_aggregated(self, recipe_id: int, target_quantity_kg: Decimal) -> List[MaterialRequirement]:
        """Expand and merge by product, sorted by product name."""
        merged = aggregate_requirements(self.expand(recipe_id, target_quantity_kg))
        return sorted(merged, key=lambda r: (r.product_name.lower(), r.product_id))

    def _expand(
        self,
        graph: RecipeGraph,
        recipe_id: int,
        target: Decimal,
        path: List[int],
        out: List[MaterialRequirement],
    ) -> None:
        if recipe_id in path:
            chain = path[path.index(recipe_id):] + [recipe_id]
            raise CycleDetectedError(chain, names=graph.names(chain))

        node = graph.node(recipe_id)
        yield_kg = require_positive_yield(node)
        path.append(recipe_id)

        for edge in graph.ingredients(recipe_id):
            scaled = edge.quantity / yield_kg * target

            if edge.is_sub_recipe:
                sub_node = graph.node(edge.sub_recipe_id)
                if sub_node is None:
                    self.report_unresolved(edge, "sub-recipe")
                    continue
                sub_kg, ok = sub_recipe_quantity_kg(scaled, edge.unit, sub_node)
                if not ok:
                    self._warn(
                        f"Sub-recipe '{sub_node.name}' is used in '{edge.unit}' by recipe "
                        f"'{node.name}'; quantity treated as kg",
                        recipe_id=recipe_id,
                        ingredient_id=edge.id,
                    )
                self._expand(graph, sub_node.id, sub_kg, path, out)
                continue

            material = graph.material(edge.product_id)
            if material is None:
                self.report_unresolved(edge, "product")
                continue

            out.append(MaterialRequirement(
                product_id=material.id,
                product_name=material.name,
                quantity=scaled,
                unit=edge.unit,
                path=list(path),
            ))

        path.pop()

    def report_unresolved(self, edge: IngredientEdge, reference: str) -> None:
        error = UnresolvedIngredientError(edge.id, recipe_id=edge.recipe_id, reference=reference)
        self._warn(error.message, recipe_id=edge.recipe_id, ingredient_id=edge.id)

    def _warn(self, message: str, **context) -> None:
        logger.warning(message, extra=context)
        self.warnings.append(message)
