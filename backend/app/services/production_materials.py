"""
Production-order materials & pre-weighing calculator

Turns the lines of a production order (recipe + quantity in kg or units)
into:

- a materials list: every raw material of the whole order, fully expanded
  through sub-recipes and summed per product
- a pre-weighing list: per ordered recipe, its direct raw ingredients and
  the sub-recipes it needs, plus one batch entry per distinct sub-recipe so
  each sub-recipe can be weighed once for the whole order
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from app.exceptions import NotFoundError, ValidationError
from app.logging_config import get_logger
from app.services.bom_expander import (
    BOMExpander,
    MaterialRequirement,
    aggregate_requirements,
    require_positive_yield,
    sub_recipe_quantity_kg,
)
from app.services import uom_service
from app.services.catalog_store import CatalogStore
from app.services.recipe_graph import RecipeGraph, RecipeNode

logger = get_logger(__name__)

LINE_UNIT_KG = "kg"
LINE_UNIT_UN = "un"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class OrderLine:
    recipe_id: int
    quantity: Decimal
    unit: str = LINE_UNIT_KG


@dataclass
class MaterialTotal:
    product_id: int
    name: str
    total_quantity: Decimal
    unit: str


@dataclass
class PreWeighingItem:
    """A row of the pre-weighing list under one ordered recipe"""
    parent_recipe_id: int
    parent_recipe: str
    id: int  # product id, or recipe id for sub-recipes
    name: str
    total_quantity: Decimal
    unit: str
    is_sub_recipe: bool = False
    pattern_count: Optional[int] = None


@dataclass
class SubRecipeBatch:
    """One sub-recipe to prepare for the whole order"""
    recipe_id: int
    name: str
    standard_yield: Decimal  # yield_kg of one batch
    needed_quantity: Decimal  # kg, summed over every use in the order
    batch_multiplier: Decimal  # needed_quantity / standard_yield
    pattern_count: int
    unit: str = LINE_UNIT_KG
    parent_recipes: List[str] = field(default_factory=list)
    ingredients: List[MaterialTotal] = field(default_factory=list)


@dataclass
class PreWeighingResult:
    sub_recipe_batches: List[SubRecipeBatch] = field(default_factory=list)
    raw_materials: List[PreWeighingItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ============================================================================
# Helpers
# ============================================================================

def _round_count(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def pattern_count_for(
    quantity: Decimal,
    unit: str,
    quantity_kg: Decimal,
    sub_recipe: RecipeNode,
) -> int:
    """
    Number of standard batches ("patterns") one use of a sub-recipe needs.

    - quantity given in units: that many units, rounded
    - sub-recipe declares yield_units: kg converted to units, rounded
    - otherwise: batches of yield_kg, rounded
    """
    if uom_service.get_base_unit(unit) == "UN":
        return _round_count(uom_service.convert_quantity(quantity, unit, "UN"))
    yield_kg = require_positive_yield(sub_recipe)
    if sub_recipe.yield_units and sub_recipe.yield_units > 0:
        return _round_count(quantity_kg * sub_recipe.yield_units / yield_kg)
    return _round_count(quantity_kg / yield_kg)


def _totals(requirements: List[MaterialRequirement]) -> List[MaterialTotal]:
    merged = aggregate_requirements(requirements)
    totals = [
        MaterialTotal(
            product_id=r.product_id,
            name=r.product_name,
            total_quantity=r.quantity,
            unit=r.unit,
        )
        for r in merged
    ]
    return sorted(totals, key=lambda m: (m.name.lower(), m.product_id))


# ============================================================================
# Calculator
# ============================================================================

class ProductionMaterialsCalculator:

    def __init__(self, store: CatalogStore):
        self.store = store
        self.expander = BOMExpander(store)

    @property
    def warnings(self) -> List[str]:
        return self.expander.warnings

    def line_quantity_kg(self, graph: RecipeGraph, line: OrderLine) -> Decimal:
        """
        Planned quantity of an order line in kg.

        Lines in units use the recipe's weight per unit (yield_kg / yield_units),
        falling back to the linked product's unit_weight.

        Raises:
            ValidationError: Unknown unit, negative quantity or no unit weight
        """
        node = graph.node(line.recipe_id)
        if node is None:
            raise NotFoundError("Recipe", line.recipe_id)

        quantity = Decimal(str(line.quantity))
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative", field="quantity", value=quantity)

        unit = (line.unit or LINE_UNIT_KG).strip().lower()
        if unit == LINE_UNIT_KG:
            return quantity
        if unit != LINE_UNIT_UN:
            raise ValidationError(
                f"Unsupported order line unit '{line.unit}'",
                field="unit",
                value=line.unit,
            )

        if node.yield_units and node.yield_units > 0 and node.yield_kg and node.yield_kg > 0:
            return quantity * node.yield_kg / node.yield_units

        product = self.store.find_linked_product(node.id)
        if product is not None and product.unit_weight and product.unit_weight > 0:
            return quantity * Decimal(str(product.unit_weight))

        raise ValidationError(
            f"Recipe '{node.name}' has no weight per unit; order it in kg",
            field="unit",
            details={"recipe_id": node.id},
        )

    def _load(self, lines: List[OrderLine]) -> RecipeGraph:
        graph = self.expander.load_graph([line.recipe_id for line in lines])
        for line in lines:
            if line.recipe_id not in graph:
                raise NotFoundError("Recipe", line.recipe_id)
        return graph

    def calculate_materials(self, lines: List[OrderLine]) -> List[MaterialTotal]:
        """
        Total raw materials for the whole order, sorted by name.

        Raises:
            UnitMismatchError: If a material is required in incompatible units
        """
        graph = self._load(lines)
        requirements: List[MaterialRequirement] = []
        for line in lines:
            target_kg = self.line_quantity_kg(graph, line)
            requirements.extend(self.expander.expand(line.recipe_id, target_kg, graph=graph))

        totals = _totals(requirements)
        logger.info(
            "Order materials calculated",
            extra={"lines": len(lines), "materials": len(totals)},
        )
        return totals

    def calculate_pre_weighing(self, lines: List[OrderLine]) -> PreWeighingResult:
        """
        Pre-weighing list for an order.

        Items are grouped by ordered recipe and sorted by parent recipe name,
        sub-recipes before raw materials, then by name.
        """
        graph = self._load(lines)
        result = PreWeighingResult()

        raw_groups: Dict[Tuple[int, int], List[MaterialRequirement]] = {}
        sub_items: Dict[Tuple[int, int], PreWeighingItem] = {}
        batches: Dict[int, SubRecipeBatch] = {}

        for line in lines:
            parent = graph.node(line.recipe_id)
            parent_yield = require_positive_yield(parent)
            target_kg = self.line_quantity_kg(graph, line)

            for edge in graph.ingredients(parent.id):
                scaled = edge.quantity / parent_yield * target_kg

                if not edge.is_sub_recipe:
                    material = graph.material(edge.product_id)
                    if material is None:
                        self.expander.report_unresolved(edge, "product")
                        continue
                    raw_groups.setdefault((parent.id, material.id), []).append(
                        MaterialRequirement(
                            product_id=material.id,
                            product_name=material.name,
                            quantity=scaled,
                            unit=edge.unit,
                            path=[parent.id],
                        )
                    )
                    continue

                sub = graph.node(edge.sub_recipe_id)
                if sub is None:
                    self.expander.report_unresolved(edge, "sub-recipe")
                    continue
                sub_yield = require_positive_yield(sub)
                sub_kg, _ = sub_recipe_quantity_kg(scaled, edge.unit, sub)
                patterns = pattern_count_for(scaled, edge.unit, sub_kg, sub)

                item = sub_items.get((parent.id, sub.id))
                if item is None:
                    sub_items[(parent.id, sub.id)] = PreWeighingItem(
                        parent_recipe_id=parent.id,
                        parent_recipe=parent.name,
                        id=sub.id,
                        name=sub.name,
                        total_quantity=sub_kg,
                        unit=LINE_UNIT_KG,
                        is_sub_recipe=True,
                        pattern_count=patterns,
                    )
                else:
                    item.total_quantity += sub_kg
                    item.pattern_count += patterns

                batch = batches.get(sub.id)
                if batch is None:
                    batch = batches[sub.id] = SubRecipeBatch(
                        recipe_id=sub.id,
                        name=sub.name,
                        standard_yield=sub_yield,
                        needed_quantity=Decimal("0"),
                        batch_multiplier=Decimal("0"),
                        pattern_count=0,
                    )
                batch.needed_quantity += sub_kg
                batch.pattern_count += patterns
                if parent.name not in batch.parent_recipes:
                    batch.parent_recipes.append(parent.name)

        for batch in batches.values():
            batch.batch_multiplier = batch.needed_quantity / batch.standard_yield
            batch.ingredients = _totals(
                self.expander.expand(batch.recipe_id, batch.needed_quantity, graph=graph)
            )

        items: List[PreWeighingItem] = list(sub_items.values())
        for (parent_id, _), requirements in raw_groups.items():
            merged = aggregate_requirements(requirements)[0]
            items.append(PreWeighingItem(
                parent_recipe_id=parent_id,
                parent_recipe=graph.node(parent_id).name,
                id=merged.product_id,
                name=merged.product_name,
                total_quantity=merged.quantity,
                unit=merged.unit,
            ))

        result.raw_materials = sorted(
            items,
            key=lambda i: (i.parent_recipe.lower(), not i.is_sub_recipe, i.name.lower(), i.id),
        )
        result.sub_recipe_batches = sorted(
            batches.values(), key=lambda b: (b.name.lower(), b.recipe_id)
        )
        result.warnings = list(self.warnings)

        logger.info(
            "Pre-weighing list calculated",
            extra={
                "lines": len(lines),
                "sub_recipes": len(result.sub_recipe_batches),
                "items": len(result.raw_materials),
            },
        )
        return result
