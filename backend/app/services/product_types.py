"""
Product type registry

Each company owns its product types. Three system types are provisioned when
the company is created and are protected from edits:

- materia_prima: purchased raw materials
- receita: products generated from a recipe
- subreceita: products generated from a sub-recipe
"""
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import (
    ConflictError,
    DuplicateError,
    NotFoundError,
    PermissionDeniedError,
    ProductTypeMissingError,
    ValidationError,
)
from app.logging_config import get_logger
from app.models.product import Product
from app.models.product_type import ProductType

logger = get_logger(__name__)

MATERIA_PRIMA = "materia_prima"
RECEITA = "receita"
SUBRECEITA = "subreceita"

SYSTEM_PRODUCT_TYPES = (MATERIA_PRIMA, RECEITA, SUBRECEITA)


def is_system_type_name(name: str) -> bool:
    return (name or "").strip().lower() in SYSTEM_PRODUCT_TYPES


def recipe_product_type(is_sub_recipe: bool) -> str:
    """Product type name used for the product generated from a recipe."""
    return SUBRECEITA if is_sub_recipe else RECEITA


def _find_by_name(db: Session, name: str, company_id: int):
    return db.query(ProductType).filter(
        ProductType.company_id == company_id,
        func.lower(ProductType.name) == (name or "").strip().lower(),
    ).first()


def ensure_system_product_types(db: Session, company_id: int) -> List[ProductType]:
    """
    Create whichever system product types the company is missing.

    Idempotent. Flushes, the caller commits.

    Returns:
        The product types that were created (empty when all existed)
    """
    existing = {
        name.lower()
        for (name,) in db.query(ProductType.name).filter(
            ProductType.company_id == company_id,
            func.lower(ProductType.name).in_(SYSTEM_PRODUCT_TYPES),
        )
    }
    created = []
    for name in SYSTEM_PRODUCT_TYPES:
        if name in existing:
            continue
        product_type = ProductType(company_id=company_id, name=name, is_system=True)
        db.add(product_type)
        created.append(product_type)

    if created:
        db.flush()
        logger.info(
            "Provisioned system product types",
            extra={"company_id": company_id, "types": [t.name for t in created]},
        )
    return created


def resolve_product_type_id(db: Session, name: str, company_id: int) -> int:
    """
    Look up a product type id by name (case-insensitive).

    A missing system type is provisioned once and looked up again; a missing
    custom type is an error.

    Raises:
        ProductTypeMissingError: If the type cannot be found or provisioned
    """
    product_type = _find_by_name(db, name, company_id)
    if product_type is None and is_system_type_name(name):
        logger.warning(
            "System product type missing, provisioning",
            extra={"company_id": company_id, "type_name": name},
        )
        ensure_system_product_types(db, company_id)
        product_type = _find_by_name(db, name, company_id)

    if product_type is None:
        raise ProductTypeMissingError(name, company_id=company_id)
    return product_type.id


# ============================================================================
# CRUD
# ============================================================================

def list_product_types(db: Session, company_id: int) -> List[ProductType]:
    return (
        db.query(ProductType)
        .filter(ProductType.company_id == company_id)
        .order_by(ProductType.name)
        .all()
    )


def get_product_type(db: Session, type_id: int, company_id: int) -> ProductType:
    product_type = db.query(ProductType).filter(
        ProductType.id == type_id,
        ProductType.company_id == company_id,
    ).first()
    if not product_type:
        raise NotFoundError("ProductType", type_id)
    return product_type


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Product type name is required", field="name")
    return cleaned


def create_product_type(db: Session, name: str, company_id: int) -> ProductType:
    name = _clean_name(name)
    if _find_by_name(db, name, company_id):
        raise DuplicateError("ProductType", field="name", value=name)

    product_type = ProductType(company_id=company_id, name=name, is_system=False)
    db.add(product_type)
    db.commit()
    db.refresh(product_type)
    logger.info("Product type created", extra={"company_id": company_id, "product_type_id": product_type.id})
    return product_type


def update_product_type(db: Session, type_id: int, name: str, company_id: int) -> ProductType:
    product_type = get_product_type(db, type_id, company_id)
    if product_type.is_system or is_system_type_name(product_type.name):
        raise PermissionDeniedError(
            "System product types cannot be modified",
            action="update",
            resource=product_type.name,
        )

    name = _clean_name(name)
    if is_system_type_name(name):
        raise DuplicateError("ProductType", field="name", value=name)
    duplicate = _find_by_name(db, name, company_id)
    if duplicate and duplicate.id != product_type.id:
        raise DuplicateError("ProductType", field="name", value=name)

    product_type.name = name
    db.commit()
    db.refresh(product_type)
    return product_type


def delete_product_type(db: Session, type_id: int, company_id: int) -> None:
    product_type = get_product_type(db, type_id, company_id)
    if product_type.is_system or is_system_type_name(product_type.name):
        raise PermissionDeniedError(
            "System product types cannot be deleted",
            action="delete",
            resource=product_type.name,
        )

    in_use = db.query(Product.id).filter(
        Product.company_id == company_id,
        Product.product_type_id == product_type.id,
    ).first()
    if in_use:
        raise ConflictError(
            "Product type is used by one or more products",
            details={"product_type_id": product_type.id},
        )

    db.delete(product_type)
    db.commit()
    logger.info("Product type deleted", extra={"company_id": company_id, "product_type_id": type_id})
