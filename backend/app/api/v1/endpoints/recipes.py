"""
Recipes API Endpoints

Recipe CRUD plus cost roll-up and BOM expansion. Saving a recipe rolls up
its cost and syncs its catalog product in the same transaction.
"""
from decimal import Decimal
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_company_id, get_pagination_params
from app.db.session import get_db
from app.logging_config import get_logger
from app.schemas.common import ListResponse, MessageResponse, PaginationMeta, PaginationParams
from app.schemas.recipe import (
    MaterialRequirementResponse,
    RecipeCostResponse,
    RecipeCreate,
    RecipeExpansionResponse,
    RecipeNameCheckResponse,
    RecipeResponse,
    RecipeSaveResponse,
    RecipeUpdate,
    RecomputeCostsResponse,
    RecomputeFailure,
)
from app.services import recipe_service
from app.services.bom_expander import BOMExpander
from app.services.catalog_store import CatalogStore
from app.services.cost_rollup import CostRollupService
from app.services.recipe_service import RecipeSaveResult

router = APIRouter()
logger = get_logger(__name__)


def _save_response(result: RecipeSaveResult) -> RecipeSaveResponse:
    return RecipeSaveResponse(
        recipe=RecipeResponse.model_validate(result.recipe),
        cost=RecipeCostResponse.model_validate(result.cost) if result.cost else None,
        product_id=result.product.id if result.product else None,
        warnings=result.warnings,
    )


# ============================================================================
# Recipe CRUD
# ============================================================================

@router.get("", response_model=ListResponse[RecipeResponse])
async def list_recipes(
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    search: Optional[str] = None,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """
    List active recipes

    - **search**: Search by name or code
    - **offset**: Number of records to skip (default: 0)
    - **limit**: Maximum records to return (default: 50, max: 500)
    """
    recipes, total = recipe_service.list_recipes(
        db, company_id, search=search, offset=pagination.offset, limit=pagination.limit
    )
    return ListResponse(
        items=[RecipeResponse.model_validate(r) for r in recipes],
        pagination=PaginationMeta(
            total=total,
            offset=pagination.offset,
            limit=pagination.limit,
            returned=len(recipes),
        ),
    )


@router.get("/check-name", response_model=RecipeNameCheckResponse)
async def check_recipe_name(
    name: str = Query(..., min_length=1),
    exclude_id: Optional[int] = None,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Whether an active recipe already uses this name (case-insensitive)"""
    exists = recipe_service.check_recipe_name_exists(db, company_id, name, exclude_id=exclude_id)
    return RecipeNameCheckResponse(name=name, exists=exists)


@router.post("/recompute-costs", response_model=RecomputeCostsResponse)
async def recompute_all_costs(
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """
    Recompute every active recipe's cost, sub-recipes before the recipes
    that use them. Recipes with an invalid yield are listed in ``failed``.
    """
    batch = CostRollupService(CatalogStore(db, company_id)).recompute_all_costs()
    return RecomputeCostsResponse(
        updated=batch.updated,
        failed=[RecomputeFailure(**f) for f in batch.failed],
        results=[RecipeCostResponse.model_validate(r) for r in batch.results],
    )


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(
    recipe_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Get a recipe with its ingredients"""
    return recipe_service.get_recipe(db, company_id, recipe_id)


@router.post("", response_model=RecipeSaveResponse, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    request: RecipeCreate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Create a recipe, roll up its cost and create its catalog product"""
    result = recipe_service.create_recipe(db, company_id, request)
    return _save_response(result)


@router.put("/{recipe_id}", response_model=RecipeSaveResponse)
async def update_recipe(
    recipe_id: int,
    request: RecipeUpdate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """
    Update a recipe.

    When ``ingredients`` is sent it replaces the list: rows with an ``id``
    update that ingredient, rows without are added, the rest are removed.
    """
    result = recipe_service.update_recipe(db, company_id, recipe_id, request)
    return _save_response(result)


@router.delete("/{recipe_id}", response_model=MessageResponse)
async def delete_recipe(
    recipe_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Soft delete a recipe and its catalog product"""
    recipe = recipe_service.delete_recipe(db, company_id, recipe_id)
    return MessageResponse(message=f"Recipe {recipe.name} deleted")


# ============================================================================
# Cost & expansion
# ============================================================================

@router.post("/{recipe_id}/cost", response_model=RecipeCostResponse)
async def recompute_recipe_cost(
    recipe_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Recompute one recipe's cost from current ingredient prices"""
    cost = CostRollupService(CatalogStore(db, company_id)).recompute_cost(recipe_id)
    return RecipeCostResponse.model_validate(cost)


@router.get("/{recipe_id}/expand", response_model=RecipeExpansionResponse)
async def expand_recipe(
    recipe_id: int,
    target_quantity_kg: Decimal = Query(..., ge=0, description="Output weight to produce"),
    aggregate: bool = Query(True, description="Merge requirements per product"),
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """
    Raw materials needed to produce ``target_quantity_kg`` of the recipe,
    expanded through every sub-recipe.
    """
    expander = BOMExpander(CatalogStore(db, company_id))
    if aggregate:
        requirements = expander.expand_aggregated(recipe_id, target_quantity_kg)
    else:
        requirements = expander.expand(recipe_id, target_quantity_kg)

    return RecipeExpansionResponse(
        recipe_id=recipe_id,
        target_quantity_kg=target_quantity_kg,
        aggregated=aggregate,
        materials=[MaterialRequirementResponse.model_validate(r) for r in requirements],
        warnings=expander.warnings,
    )
