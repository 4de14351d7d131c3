"""
Recipe Pydantic Schemas
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


# ============================================================================
# Ingredient Schemas
# ============================================================================

class RecipeIngredientInput(BaseModel):
    """
    Ingredient row sent when saving a recipe.

    Rows with an ``id`` update the existing ingredient, rows without one are
    added, and existing ingredients missing from the list are removed.
    """
    id: Optional[int] = Field(None, description="Existing ingredient id (update)")
    product_id: Optional[int] = Field(None, description="Raw material product")
    sub_recipe_id: Optional[int] = Field(None, description="Sub-recipe used as ingredient")
    is_sub_recipe: bool = False
    quantity: Decimal = Field(..., gt=0, description="Quantity per recipe yield")
    unit: str = Field("kg", min_length=1, max_length=20)
    etapa: Optional[str] = Field(None, max_length=100, description="Production stage")

    @model_validator(mode="after")
    def check_single_reference(self):
        if self.is_sub_recipe:
            if self.sub_recipe_id is None or self.product_id is not None:
                raise ValueError("sub-recipe ingredients need sub_recipe_id and no product_id")
        elif self.product_id is None or self.sub_recipe_id is not None:
            raise ValueError("raw ingredients need product_id and no sub_recipe_id")
        return self


class RecipeIngredientResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    sub_recipe_id: Optional[int] = None
    is_sub_recipe: bool
    quantity: Decimal
    unit: str
    cost: Decimal
    total_cost: Decimal
    etapa: Optional[str] = None

    class Config:
        from_attributes = True


# ============================================================================
# Recipe Schemas
# ============================================================================

class RecipeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50, description="SUB prefix marks a sub-recipe")
    yield_kg: Decimal = Field(..., description="Output weight of one batch in kg, must be > 0")
    yield_units: Optional[Decimal] = Field(None, ge=0, description="Output units of one batch")
    instructions: Optional[str] = None
    group_id: Optional[int] = None
    subgroup_id: Optional[int] = None


class RecipeCreate(RecipeBase):
    ingredients: List[RecipeIngredientInput] = Field(default_factory=list)


class RecipeUpdate(BaseModel):
    """Update a recipe; ``ingredients`` when given replaces the list by diff"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    yield_kg: Optional[Decimal] = None
    yield_units: Optional[Decimal] = Field(None, ge=0)
    instructions: Optional[str] = None
    group_id: Optional[int] = None
    subgroup_id: Optional[int] = None
    ingredients: Optional[List[RecipeIngredientInput]] = None


class RecipeResponse(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    yield_kg: Decimal
    yield_units: Optional[Decimal] = None
    instructions: Optional[str] = None
    cost_per_kg: Decimal
    cost_per_unit: Optional[Decimal] = None
    group_id: Optional[int] = None
    subgroup_id: Optional[int] = None
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
    ingredients: List[RecipeIngredientResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class RecipeCostResponse(BaseModel):
    recipe_id: int
    total_cost: Decimal
    cost_per_kg: Decimal
    cost_per_unit: Optional[Decimal] = None
    warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class RecipeSaveResponse(BaseModel):
    """Result of creating or updating a recipe"""
    recipe: RecipeResponse
    cost: Optional[RecipeCostResponse] = None
    product_id: Optional[int] = None
    warnings: List[str] = Field(default_factory=list)


class RecipeNameCheckResponse(BaseModel):
    name: str
    exists: bool


class RecomputeFailure(BaseModel):
    recipe_id: int
    error: str
    message: str


class RecomputeCostsResponse(BaseModel):
    updated: int
    failed: List[RecomputeFailure] = Field(default_factory=list)
    results: List[RecipeCostResponse] = Field(default_factory=list)


# ============================================================================
# Expansion
# ============================================================================

class MaterialRequirementResponse(BaseModel):
    product_id: int
    product_name: str
    quantity: Decimal
    unit: str
    path: List[int] = Field(default_factory=list)

    class Config:
        from_attributes = True


class RecipeExpansionResponse(BaseModel):
    recipe_id: int
    target_quantity_kg: Decimal
    aggregated: bool
    materials: List[MaterialRequirementResponse]
    warnings: List[str] = Field(default_factory=list)
