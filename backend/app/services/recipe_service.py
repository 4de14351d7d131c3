"""
Recipe Service

Create / update / soft-delete recipes. Every save runs the same pipeline in
one transaction:

1. Validate (name, yield, ingredient references, classification, no cost cycle)
2. Persist the recipe and apply the ingredient diff
3. Roll up the recipe cost
4. Sync the linked catalog product
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import (
    BakeOpsException,
    CycleDetectedError,
    DuplicateError,
    InvalidYieldError,
    NotFoundError,
    ValidationError,
)
from app.logging_config import get_logger
from app.models.product import Product
from app.models.recipe import Recipe, RecipeIngredient
from app.schemas.recipe import RecipeCreate, RecipeIngredientInput, RecipeUpdate
from app.services import group_service
from app.services.catalog_store import CatalogStore
from app.services.cost_rollup import CostRollupService, RecipeCost
from app.services.product_sync import ProductSyncService
from app.services.recipe_graph import RecipeGraph

logger = get_logger(__name__)


@dataclass
class RecipeSaveResult:
    recipe: Recipe
    cost: Optional[RecipeCost] = None
    product: Optional[Product] = None
    warnings: List[str] = field(default_factory=list)


# ============================================================================
# Queries
# ============================================================================

def check_recipe_name_exists(
    db: Session,
    company_id: int,
    name: str,
    exclude_id: Optional[int] = None,
) -> bool:
    """True when another active recipe already uses this name (case-insensitive)."""
    store = CatalogStore(db, company_id)
    return store.find_recipe_by_name(name, exclude_id=exclude_id) is not None


def get_recipe(db: Session, company_id: int, recipe_id: int) -> Recipe:
    recipe = CatalogStore(db, company_id).get_recipe(recipe_id)
    if recipe is None:
        raise NotFoundError("Recipe", recipe_id)
    return recipe


def list_recipes(
    db: Session,
    company_id: int,
    search: Optional[str] = None,
    offset: int = 0,
    limit: int = 50,
) -> Tuple[List[Recipe], int]:
    query = CatalogStore(db, company_id).recipes_query()
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            func.lower(Recipe.name).like(pattern) | func.lower(Recipe.code).like(pattern)
        )
    total = query.count()
    recipes = query.order_by(Recipe.name, Recipe.id).offset(offset).limit(limit).all()
    return recipes, total


# ============================================================================
# Validation
# ============================================================================

def _validate_name(store: CatalogStore, name: Optional[str], recipe: Optional[Recipe] = None) -> str:
    """
    Recipe names are unique among active recipes, and the product the recipe
    syncs to must not collide with another product. An unlinked product with
    the same name is fine while the recipe has no product of its own, since
    the sync adopts it.
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Recipe name is required", field="name")
    recipe_id = recipe.id if recipe is not None else None
    if store.find_recipe_by_name(cleaned, exclude_id=recipe_id):
        raise DuplicateError("Recipe", field="name", value=cleaned)

    linked = store.find_linked_product(recipe_id) if recipe_id is not None else None
    clash = store.find_product_by_name(cleaned, exclude_id=linked.id if linked else None)
    if clash is not None and (linked is not None or clash.recipe_id is not None):
        raise DuplicateError("Product", field="name", value=cleaned)
    return cleaned


def _validate_yield(recipe_id: Optional[int], name: str, yield_kg) -> None:
    if yield_kg is None or yield_kg <= 0:
        raise InvalidYieldError(recipe_id, recipe_name=name, yield_kg=yield_kg)


def _validate_ingredients(
    store: CatalogStore,
    recipe_id: Optional[int],
    ingredients: Iterable[RecipeIngredientInput],
) -> None:
    """Check each ingredient references exactly one active item of the company."""
    for position, item in enumerate(ingredients):
        field_name = f"ingredients[{position}]"
        if item.quantity is None or item.quantity <= 0:
            raise ValidationError("Ingredient quantity must be greater than zero", field=field_name)

        if item.is_sub_recipe:
            if item.sub_recipe_id is None or item.product_id is not None:
                raise ValidationError(
                    "Sub-recipe ingredient must reference only a sub-recipe", field=field_name
                )
            if recipe_id is not None and item.sub_recipe_id == recipe_id:
                raise CycleDetectedError([recipe_id, recipe_id])
            if store.get_recipe(item.sub_recipe_id) is None:
                raise ValidationError(
                    f"Sub-recipe {item.sub_recipe_id} not found",
                    field=field_name,
                    value=item.sub_recipe_id,
                )
        else:
            if item.product_id is None or item.sub_recipe_id is not None:
                raise ValidationError(
                    "Raw ingredient must reference only a product", field=field_name
                )
            if store.get_product(item.product_id) is None:
                raise ValidationError(
                    f"Product {item.product_id} not found",
                    field=field_name,
                    value=item.product_id,
                )


def _check_dependency_cycle(store: CatalogStore, recipe: Recipe, ingredients: Iterable) -> None:
    """
    Reject ingredients that lead back to the recipe, either through
    sub-recipes or through a raw product whose cost is rolled up from the
    recipe itself: its own product, or the product of a recipe depending on it.

    ``ingredients`` are input rows or stored rows; the recipe must already
    carry its id and final name.
    """
    own_product = store.find_linked_product(recipe.id) or store.find_unlinked_product_by_name(recipe.name)
    own_product_id = own_product.id if own_product is not None else None

    dependency_ids = []
    for item in ingredients:
        if item.is_sub_recipe:
            dependency_ids.append(item.sub_recipe_id)
            continue
        if own_product_id is not None and item.product_id == own_product_id:
            raise CycleDetectedError([recipe.id, recipe.id], names=[recipe.name, recipe.name])
        product = store.get_product(item.product_id)
        if product is not None and product.recipe_id is not None:
            dependency_ids.append(product.recipe_id)
    if not dependency_ids:
        return

    graph = RecipeGraph.load(store, dependency_ids, follow_products=True)
    path = graph.dependency_path(dependency_ids, recipe_id=recipe.id, product_id=own_product_id)
    if path:
        chain = [recipe.id] + path
        if chain[-1] != recipe.id:
            chain.append(recipe.id)
        names = [recipe.name if rid == recipe.id else name for rid, name in zip(chain, graph.names(chain))]
        raise CycleDetectedError(chain, names=names)


def _new_ingredient(company_id: int, recipe_id: Optional[int], item: RecipeIngredientInput) -> RecipeIngredient:
    return RecipeIngredient(
        company_id=company_id,
        recipe_id=recipe_id,
        product_id=None if item.is_sub_recipe else item.product_id,
        sub_recipe_id=item.sub_recipe_id if item.is_sub_recipe else None,
        is_sub_recipe=item.is_sub_recipe,
        quantity=item.quantity,
        unit=item.unit,
        etapa=item.etapa,
    )


def _apply_ingredient_diff(recipe: Recipe, items: List[RecipeIngredientInput]) -> Tuple[int, int, int]:
    """
    Rows with an id update the existing ingredient, rows without are added,
    existing ingredients absent from ``items`` are removed.

    Returns:
        (added, updated, removed)
    """
    existing = {ing.id: ing for ing in recipe.ingredients}
    keep_ids = set()
    added = updated = 0

    for item in items:
        if item.id is None:
            recipe.ingredients.append(_new_ingredient(recipe.company_id, recipe.id, item))
            added += 1
            continue

        ingredient = existing.get(item.id)
        if ingredient is None:
            raise ValidationError(
                f"Ingredient {item.id} does not belong to recipe {recipe.id}",
                field="ingredients",
                value=item.id,
            )
        ingredient.product_id = None if item.is_sub_recipe else item.product_id
        ingredient.sub_recipe_id = item.sub_recipe_id if item.is_sub_recipe else None
        ingredient.is_sub_recipe = item.is_sub_recipe
        ingredient.quantity = item.quantity
        ingredient.unit = item.unit
        ingredient.etapa = item.etapa
        keep_ids.add(item.id)
        updated += 1

    removed = 0
    for ingredient_id, ingredient in existing.items():
        if ingredient_id not in keep_ids:
            recipe.ingredients.remove(ingredient)
            removed += 1
    return added, updated, removed


def _roll_up_and_sync(store: CatalogStore, recipe: Recipe) -> RecipeSaveResult:
    cost = CostRollupService(store).recompute_cost(recipe.id, commit=False)
    sync = ProductSyncService(store).sync_linked_product(recipe, commit=False)
    return RecipeSaveResult(
        recipe=recipe,
        cost=cost,
        product=sync.product,
        warnings=cost.warnings + sync.warnings,
    )


# ============================================================================
# Commands
# ============================================================================

def create_recipe(db: Session, company_id: int, data: RecipeCreate) -> RecipeSaveResult:
    """
    Create a recipe with its ingredients, roll up its cost and create its product.

    Raises:
        ValidationError / DuplicateError / InvalidYieldError: Invalid input
        CycleDetectedError: If an ingredient's cost depends on the new recipe
    """
    store = CatalogStore(db, company_id)
    name = _validate_name(store, data.name)
    _validate_yield(None, name, data.yield_kg)
    _validate_ingredients(store, None, data.ingredients)
    group_id, subgroup_id = group_service.check_classification(store, data.group_id, data.subgroup_id)

    try:
        recipe = Recipe(
            company_id=company_id,
            name=name,
            code=(data.code or "").strip() or None,
            yield_kg=data.yield_kg,
            yield_units=data.yield_units,
            instructions=data.instructions,
            group_id=group_id,
            subgroup_id=subgroup_id,
        )
        for item in data.ingredients:
            recipe.ingredients.append(_new_ingredient(company_id, None, item))
        db.add(recipe)
        db.flush()
        _check_dependency_cycle(store, recipe, data.ingredients)

        result = _roll_up_and_sync(store, recipe)
        db.commit()
    except BakeOpsException:
        db.rollback()
        raise

    db.refresh(recipe)
    logger.info(
        "Recipe created",
        extra={
            "company_id": company_id,
            "recipe_id": recipe.id,
            "ingredients": len(recipe.ingredients),
            "product_id": result.product.id if result.product else None,
        },
    )
    return result


def update_recipe(db: Session, company_id: int, recipe_id: int, data: RecipeUpdate) -> RecipeSaveResult:
    """
    Update a recipe, apply the ingredient diff, re-roll its cost and re-sync its product.

    Raises:
        NotFoundError: If the recipe does not exist or is deleted
        DuplicateError: If the name is used by another recipe or product
        CycleDetectedError: If an ingredient's cost would depend on this recipe
    """
    store = CatalogStore(db, company_id)
    recipe = store.get_recipe(recipe_id)
    if recipe is None:
        raise NotFoundError("Recipe", recipe_id)

    updates = data.model_dump(exclude_unset=True, exclude={"ingredients"})
    if "name" in updates:
        updates["name"] = _validate_name(store, updates["name"], recipe=recipe)
    if "yield_kg" in updates:
        _validate_yield(recipe.id, updates.get("name", recipe.name), updates["yield_kg"])
    if "code" in updates:
        updates["code"] = (updates["code"] or "").strip() or None
    if data.ingredients is not None:
        _validate_ingredients(store, recipe.id, data.ingredients)
    group_service.apply_classification_update(store, updates, recipe)

    try:
        for key, value in updates.items():
            setattr(recipe, key, value)

        if data.ingredients is not None:
            _check_dependency_cycle(store, recipe, data.ingredients)
        elif "name" in updates:
            _check_dependency_cycle(store, recipe, list(recipe.ingredients))

        diff = (0, 0, 0)
        if data.ingredients is not None:
            diff = _apply_ingredient_diff(recipe, data.ingredients)
        db.flush()

        result = _roll_up_and_sync(store, recipe)
        db.commit()
    except BakeOpsException:
        db.rollback()
        raise

    db.refresh(recipe)
    logger.info(
        "Recipe updated",
        extra={
            "company_id": company_id,
            "recipe_id": recipe.id,
            "ingredients_added": diff[0],
            "ingredients_updated": diff[1],
            "ingredients_removed": diff[2],
        },
    )
    return result


def delete_recipe(db: Session, company_id: int, recipe_id: int) -> Recipe:
    """Soft delete a recipe together with its linked product."""
    store = CatalogStore(db, company_id)
    recipe = store.get_recipe(recipe_id)
    if recipe is None:
        raise NotFoundError("Recipe", recipe_id)

    recipe.is_deleted = True
    product = ProductSyncService(store).retire_linked_product(recipe.id)
    db.commit()

    logger.info(
        "Recipe deleted",
        extra={
            "company_id": company_id,
            "recipe_id": recipe.id,
            "product_id": product.id if product else None,
        },
    )
    return recipe
