"""
Recipe -> Product synchronisation

Every active recipe is mirrored by one catalog product so it can be stocked,
sold or used as an ingredient elsewhere. The product is derived entirely from
the recipe:

    is_sub  = code starts with SUB_RECIPE_CODE_PREFIX (case-insensitive)
    unit    = "Kg" if is_sub else ("UN" if yield_units > 0 else "Kg")
    UN      -> unit_weight = yield_kg / yield_units, cost = cost_per_unit
    Kg      -> kg_weight   = yield_kg,               cost = cost_per_kg
    unit_price = cost_per_unit

Syncing twice without recipe changes leaves the product unchanged.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from app.core.settings import get_settings
from app.exceptions import ProductTypeMissingError
from app.logging_config import get_logger
from app.models.product import Product
from app.models.recipe import Recipe
from app.services import product_types
from app.services.catalog_store import CatalogStore

logger = get_logger(__name__)

UNIT_KG = "Kg"
UNIT_UN = "UN"

WEIGHT_QUANTUM = Decimal("0.0001")


@dataclass
class ProductSyncResult:
    product: Optional[Product] = None
    created: bool = False
    warnings: List[str] = field(default_factory=list)


def is_sub_recipe(recipe: Recipe, prefix: Optional[str] = None) -> bool:
    prefix = (prefix or get_settings().SUB_RECIPE_CODE_PREFIX).upper()
    return (recipe.code or "").strip().upper().startswith(prefix)


def recipe_product_unit(recipe: Recipe, prefix: Optional[str] = None) -> str:
    if is_sub_recipe(recipe, prefix):
        return UNIT_KG
    if recipe.yield_units and recipe.yield_units > 0:
        return UNIT_UN
    return UNIT_KG


def apply_recipe_pricing(product: Product, recipe: Recipe) -> None:
    """Copy the recipe's rolled-up cost onto its product according to the product unit."""
    if (product.unit or "").upper() == UNIT_UN:
        product.cost = recipe.cost_per_unit if recipe.cost_per_unit is not None else Decimal("0")
    else:
        product.cost = recipe.cost_per_kg if recipe.cost_per_kg is not None else Decimal("0")
    product.unit_price = recipe.cost_per_unit


class ProductSyncService:
    """Creates or updates the product linked to a recipe."""

    def __init__(self, store: CatalogStore):
        self.store = store
        self.settings = get_settings()

    def sync_linked_product(self, recipe: Recipe, commit: bool = True) -> ProductSyncResult:
        """
        Bring the recipe's linked product in line with the recipe.

        Lookup order: active product linked by recipe_id, then an unlinked
        active product with the same name (adopted), otherwise a new product.

        A missing product type is not fatal: the sync is skipped and the
        reason returned in ``warnings``.
        """
        result = ProductSyncResult()
        sub = is_sub_recipe(recipe, self.settings.SUB_RECIPE_CODE_PREFIX)
        type_name = product_types.recipe_product_type(sub)

        try:
            product_type_id = self.store.resolve_product_type_id(type_name)
        except ProductTypeMissingError as e:
            logger.warning(
                "Skipping product sync, product type unavailable",
                extra={"recipe_id": recipe.id, "type_name": type_name},
            )
            result.warnings.append(f"Product for recipe '{recipe.name}' not synced: {e.message}")
            return result

        product = self.store.find_linked_product(recipe.id)
        if product is None:
            product = self.store.find_unlinked_product_by_name(recipe.name)
            if product is not None:
                logger.info(
                    "Adopting existing product for recipe",
                    extra={"recipe_id": recipe.id, "product_id": product.id},
                )
        if product is None:
            product = Product(
                company_id=self.store.company_id,
                sku=self._new_sku(recipe),
                supplier=self.settings.INTERNAL_SUPPLIER_NAME,
                current_stock=Decimal("0"),
                min_stock=Decimal("0"),
            )
            result.created = True

        self._apply(product, recipe, product_type_id)
        self.store.upsert_product(product)
        if commit:
            self.store.db.commit()

        logger.info(
            "Recipe product synced",
            extra={
                "recipe_id": recipe.id,
                "product_id": product.id,
                "product_created": result.created,
                "unit": product.unit,
            },
        )
        result.product = product
        return result

    def retire_linked_product(self, recipe_id: int) -> Optional[Product]:
        """Soft delete the product linked to a recipe. Flushes only."""
        product = self.store.find_linked_product(recipe_id)
        if product is not None:
            product.is_deleted = True
            self.store.db.flush()
        return product

    def _apply(self, product: Product, recipe: Recipe, product_type_id: int) -> None:
        unit = recipe_product_unit(recipe, self.settings.SUB_RECIPE_CODE_PREFIX)
        product.name = recipe.name
        product.unit = unit
        product.recipe_id = recipe.id
        product.product_type_id = product_type_id
        product.group_id = recipe.group_id
        product.subgroup_id = recipe.subgroup_id
        product.is_deleted = False

        if unit == UNIT_UN:
            product.unit_weight = (Decimal(str(recipe.yield_kg)) / Decimal(str(recipe.yield_units))).quantize(
                WEIGHT_QUANTUM, rounding=ROUND_HALF_UP
            )
            product.kg_weight = None
        else:
            product.kg_weight = recipe.yield_kg
            product.unit_weight = None

        apply_recipe_pricing(product, recipe)

    def _new_sku(self, recipe: Recipe) -> str:
        code = (recipe.code or "").strip()
        if not code or code.upper() == self.settings.SUB_RECIPE_CODE_PREFIX.upper():
            sku = f"R-{recipe.id}"
        else:
            sku = code
        if self.store.sku_exists(sku):
            sku = f"{sku}-R{recipe.id}"
        return sku
