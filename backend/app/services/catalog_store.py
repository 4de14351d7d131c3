"""
Catalog Store - company-scoped data access for recipes, ingredients and products

Every query made through the store is scoped to one company and, unless
``include_deleted`` is passed, excludes soft-deleted rows. Services never
filter on ``is_deleted`` themselves.

Writes only flush; committing is left to the calling service so that a
multi-step operation lands in one transaction.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models.group import Group, Subgroup
from app.models.product import Product
from app.models.recipe import Recipe, RecipeIngredient
from app.services import product_types

logger = get_logger(__name__)


class CatalogStore:
    """Data access for one company's catalog."""

    def __init__(self, db: Session, company_id: int):
        self.db = db
        self.company_id = company_id

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    def recipes_query(self, include_deleted: bool = False):
        query = self.db.query(Recipe).filter(Recipe.company_id == self.company_id)
        if not include_deleted:
            query = query.filter(Recipe.is_deleted == False)  # noqa: E712
        return query

    def get_recipe(self, recipe_id: int, include_deleted: bool = False) -> Optional[Recipe]:
        return self.recipes_query(include_deleted).filter(Recipe.id == recipe_id).first()

    def get_recipes(self, recipe_ids: Iterable[int]) -> Dict[int, Recipe]:
        """Active recipes by id. Missing or deleted ids are absent from the result."""
        ids = set(recipe_ids)
        if not ids:
            return {}
        return {r.id: r for r in self.recipes_query().filter(Recipe.id.in_(ids)).all()}

    def list_active_recipes(self) -> List[Recipe]:
        return self.recipes_query().order_by(Recipe.name, Recipe.id).all()

    def find_recipe_by_name(self, name: str, exclude_id: Optional[int] = None) -> Optional[Recipe]:
        """Active recipe with the given name, compared case-insensitively."""
        query = self.recipes_query().filter(func.lower(Recipe.name) == (name or "").strip().lower())
        if exclude_id is not None:
            query = query.filter(Recipe.id != exclude_id)
        return query.first()

    def get_recipe_ingredients(self, recipe_id: int) -> List[RecipeIngredient]:
        return (
            self.db.query(RecipeIngredient)
            .filter(
                RecipeIngredient.company_id == self.company_id,
                RecipeIngredient.recipe_id == recipe_id,
            )
            .order_by(RecipeIngredient.id)
            .all()
        )

    def get_ingredients_for_recipes(self, recipe_ids: Iterable[int]) -> Dict[int, List[RecipeIngredient]]:
        """Ingredients grouped by owning recipe id, in insertion order."""
        ids = set(recipe_ids)
        grouped: Dict[int, List[RecipeIngredient]] = {rid: [] for rid in ids}
        if not ids:
            return grouped
        rows = (
            self.db.query(RecipeIngredient)
            .filter(
                RecipeIngredient.company_id == self.company_id,
                RecipeIngredient.recipe_id.in_(ids),
            )
            .order_by(RecipeIngredient.id)
            .all()
        )
        for row in rows:
            grouped[row.recipe_id].append(row)
        return grouped

    def upsert_recipe_cost(
        self,
        recipe: Recipe,
        cost_per_kg: Decimal,
        cost_per_unit: Optional[Decimal],
    ) -> Recipe:
        recipe.cost_per_kg = cost_per_kg
        recipe.cost_per_unit = cost_per_unit
        self.db.flush()
        return recipe

    def upsert_ingredient_cost(
        self,
        ingredient: RecipeIngredient,
        cost: Decimal,
        total_cost: Decimal,
    ) -> RecipeIngredient:
        ingredient.cost = cost
        ingredient.total_cost = total_cost
        return ingredient

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def products_query(self, include_deleted: bool = False):
        query = self.db.query(Product).filter(Product.company_id == self.company_id)
        if not include_deleted:
            query = query.filter(Product.is_deleted == False)  # noqa: E712
        return query

    def get_product(self, product_id: int, include_deleted: bool = False) -> Optional[Product]:
        return self.products_query(include_deleted).filter(Product.id == product_id).first()

    def get_products(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """Active products by id. Missing or deleted ids are absent from the result."""
        ids = set(product_ids)
        if not ids:
            return {}
        return {p.id: p for p in self.products_query().filter(Product.id.in_(ids)).all()}

    def find_linked_product(self, recipe_id: int) -> Optional[Product]:
        """Active product generated from the recipe, oldest first when several exist."""
        return (
            self.products_query()
            .filter(Product.recipe_id == recipe_id)
            .order_by(Product.id)
            .first()
        )

    def find_unlinked_product_by_name(self, name: str) -> Optional[Product]:
        """Active product with this name that is not generated from any recipe."""
        return (
            self.products_query()
            .filter(
                func.lower(Product.name) == (name or "").strip().lower(),
                Product.recipe_id.is_(None),
            )
            .order_by(Product.id)
            .first()
        )

    def find_product_by_name(self, name: str, exclude_id: Optional[int] = None) -> Optional[Product]:
        query = self.products_query().filter(func.lower(Product.name) == (name or "").strip().lower())
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        return query.first()

    def sku_exists(self, sku: str, exclude_id: Optional[int] = None) -> bool:
        """SKUs are unique per company across deleted rows too."""
        query = self.products_query(include_deleted=True).filter(Product.sku == sku)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        return query.first() is not None

    def upsert_product(self, product: Product) -> Product:
        if product.company_id is None:
            product.company_id = self.company_id
        if product.id is None:
            self.db.add(product)
        self.db.flush()
        return product

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def get_group(self, group_id: int) -> Optional[Group]:
        return (
            self.db.query(Group)
            .filter(Group.company_id == self.company_id, Group.id == group_id)
            .first()
        )

    def get_subgroup(self, subgroup_id: int) -> Optional[Subgroup]:
        return (
            self.db.query(Subgroup)
            .filter(Subgroup.company_id == self.company_id, Subgroup.id == subgroup_id)
            .first()
        )

    # ------------------------------------------------------------------
    # Product types
    # ------------------------------------------------------------------

    def resolve_product_type_id(self, name: str) -> int:
        """See :func:`app.services.product_types.resolve_product_type_id`."""
        return product_types.resolve_product_type_id(self.db, name, self.company_id)
