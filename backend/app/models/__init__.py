"""Database models"""
from app.models.company import Company
from app.models.product_type import ProductType
from app.models.group import Group, Subgroup
from app.models.product import Product
from app.models.recipe import Recipe, RecipeIngredient
from app.models.production_order import ProductionOrder, ProductionOrderItem
from app.models.inventory import InventoryTransaction

__all__ = [
    # Tenancy
    "Company",
    # Catalog
    "ProductType",
    "Group",
    "Subgroup",
    "Product",
    # Recipes
    "Recipe",
    "RecipeIngredient",
    # Production
    "ProductionOrder",
    "ProductionOrderItem",
    # Inventory
    "InventoryTransaction",
]
