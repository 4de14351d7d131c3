"""
API v1 Router - BakeOps
"""
from fastapi import APIRouter
from app.api.v1.endpoints import (
    companies,
    groups,
    product_types,
    products,
    recipes,
    production_orders,
    inventory,
)

router = APIRouter()

# Companies (tenant onboarding)
router.include_router(
    companies.router,
    prefix="/companies",
    tags=["companies"]
)

# Product Types
router.include_router(
    product_types.router,
    prefix="/product-types",
    tags=["products"]
)

# Groups / Subgroups
router.include_router(
    groups.router,
    prefix="/groups",
    tags=["products"]
)

# Products
router.include_router(
    products.router,
    prefix="/products",
    tags=["products"]
)

# Recipes (cost roll-up, BOM expansion)
router.include_router(
    recipes.router,
    prefix="/recipes",
    tags=["recipes"]
)

# Production Orders
router.include_router(
    production_orders.router,
    prefix="/production-orders",
    tags=["production"]
)

# Inventory
router.include_router(
    inventory.router,
    prefix="/inventory",
    tags=["inventory"]
)
