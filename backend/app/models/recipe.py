"""
Recipe and recipe ingredient models

A recipe is a bill of materials normalised to its yield: ingredient
quantities produce ``yield_kg`` kilograms (and optionally ``yield_units``
units). An ingredient references either a raw product or another recipe
(a sub-recipe), never both.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)  # SUB... marks a sub-recipe

    # Yield
    yield_kg = Column(Numeric(18, 4), nullable=False)
    yield_units = Column(Numeric(18, 4), nullable=True)

    instructions = Column(Text, nullable=True)

    # Derived by the cost roll-up
    cost_per_kg = Column(Numeric(18, 4), default=0, nullable=False)
    cost_per_unit = Column(Numeric(18, 4), nullable=True)

    group_id = Column(Integer, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True)
    subgroup_id = Column(Integer, ForeignKey("subgroups.id", ondelete="SET NULL"), nullable=True)

    is_deleted = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        foreign_keys="RecipeIngredient.recipe_id",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.id",
    )

    def __repr__(self):
        return f"<Recipe {self.id}: {self.name} ({self.yield_kg} kg)>"


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        CheckConstraint(
            "(product_id IS NULL) <> (sub_recipe_id IS NULL)",
            name="ck_recipe_ingredients_single_reference",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Exactly one of these is set; is_sub_recipe tells which
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)
    sub_recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=True, index=True)
    is_sub_recipe = Column(Boolean, default=False, nullable=False)

    quantity = Column(Numeric(18, 4), nullable=False)
    unit = Column(String(20), nullable=False, default="kg")

    # Snapshots written by the cost roll-up
    cost = Column(Numeric(18, 4), default=0, nullable=False)
    total_cost = Column(Numeric(18, 4), default=0, nullable=False)

    etapa = Column(String(100), nullable=True)  # production stage label

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    recipe = relationship("Recipe", back_populates="ingredients", foreign_keys=[recipe_id])
    product = relationship("Product")
    sub_recipe = relationship("Recipe", foreign_keys=[sub_recipe_id])

    def __repr__(self):
        ref = f"recipe:{self.sub_recipe_id}" if self.is_sub_recipe else f"product:{self.product_id}"
        return f"<RecipeIngredient {self.id}: {self.quantity} {self.unit} {ref}>"
