"""
Product Service

Catalog products: raw materials bought from suppliers plus the products
generated from recipes. Generated products are maintained by product sync;
editing one here is allowed but the next recipe save overwrites the synced
fields.
"""
import re
import unicodedata
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import DuplicateError, NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.product import Product
from app.schemas.product import ProductCreate, ProductUpdate
from app.services import group_service, product_types
from app.services.catalog_store import CatalogStore

logger = get_logger(__name__)


def generate_sku(store: CatalogStore, name: str) -> str:
    """
    SKU derived from the product name: accents stripped, upper case,
    non-alphanumerics collapsed to dashes. A numeric suffix is added until
    the SKU is free.
    """
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode()
    base = re.sub(r"[^A-Z0-9]+", "-", ascii_name.upper()).strip("-")[:40] or "PRODUTO"

    sku = base
    n = 1
    while store.sku_exists(sku):
        n += 1
        sku = f"{base}-{n}"
    return sku


def get_product(db: Session, company_id: int, product_id: int) -> Product:
    product = CatalogStore(db, company_id).get_product(product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def list_products(
    db: Session,
    company_id: int,
    search: Optional[str] = None,
    product_type_id: Optional[int] = None,
    offset: int = 0,
    limit: int = 50,
) -> Tuple[List[Product], int]:
    query = CatalogStore(db, company_id).products_query()
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            func.lower(Product.name).like(pattern) | func.lower(Product.sku).like(pattern)
        )
    if product_type_id is not None:
        query = query.filter(Product.product_type_id == product_type_id)

    total = query.count()
    products = query.order_by(Product.name, Product.id).offset(offset).limit(limit).all()
    return products, total


def _check_product_type(db: Session, company_id: int, product_type_id: Optional[int]) -> None:
    if product_type_id is not None:
        product_types.get_product_type(db, product_type_id, company_id)


def create_product(db: Session, company_id: int, data: ProductCreate) -> Product:
    """
    Create a catalog product. Raw materials default to the materia_prima type.

    Raises:
        DuplicateError: If the name or SKU is already used
    """
    store = CatalogStore(db, company_id)
    name = data.name.strip()
    if store.find_product_by_name(name):
        raise DuplicateError("Product", field="name", value=name)

    sku = (data.sku or "").strip()
    if sku:
        if store.sku_exists(sku):
            raise DuplicateError("Product", field="sku", value=sku)
    else:
        sku = generate_sku(store, name)

    product_type_id = data.product_type_id
    if product_type_id is None:
        product_type_id = store.resolve_product_type_id(product_types.MATERIA_PRIMA)
    else:
        _check_product_type(db, company_id, product_type_id)
    group_id, subgroup_id = group_service.check_classification(store, data.group_id, data.subgroup_id)

    product = Product(
        company_id=company_id,
        sku=sku,
        name=name,
        unit=data.unit,
        supplier=data.supplier,
        cost=data.cost,
        unit_price=data.unit_price,
        unit_weight=data.unit_weight if data.unit == "UN" else None,
        kg_weight=data.kg_weight if data.unit == "Kg" else None,
        current_stock=data.current_stock,
        min_stock=data.min_stock,
        product_type_id=product_type_id,
        group_id=group_id,
        subgroup_id=subgroup_id,
    )
    store.upsert_product(product)
    db.commit()
    db.refresh(product)

    logger.info(
        "Product created",
        extra={"company_id": company_id, "product_id": product.id, "sku": product.sku},
    )
    return product


def update_product(db: Session, company_id: int, product_id: int, data: ProductUpdate) -> Product:
    store = CatalogStore(db, company_id)
    product = store.get_product(product_id)
    if product is None:
        raise NotFoundError("Product", product_id)

    updates = data.model_dump(exclude_unset=True)
    if "name" in updates:
        if updates["name"] is None:
            raise ValidationError("Product name cannot be empty", field="name")
        updates["name"] = updates["name"].strip()
        if store.find_product_by_name(updates["name"], exclude_id=product.id):
            raise DuplicateError("Product", field="name", value=updates["name"])
    if "sku" in updates:
        if not updates["sku"]:
            raise ValidationError("SKU cannot be empty", field="sku")
        updates["sku"] = updates["sku"].strip()
        if store.sku_exists(updates["sku"], exclude_id=product.id):
            raise DuplicateError("Product", field="sku", value=updates["sku"])
    if "unit" in updates and updates["unit"] is None:
        raise ValidationError("Product unit cannot be empty", field="unit")
    if "product_type_id" in updates:
        _check_product_type(db, company_id, updates["product_type_id"])
    group_service.apply_classification_update(store, updates, product)

    for key, value in updates.items():
        setattr(product, key, value)

    if product.unit == "UN":
        product.kg_weight = None
    else:
        product.unit_weight = None

    db.commit()
    db.refresh(product)
    logger.info(
        "Product updated",
        extra={"company_id": company_id, "product_id": product.id, "fields": sorted(updates)},
    )
    return product


def delete_product(db: Session, company_id: int, product_id: int) -> Product:
    """Soft delete. Recipes still pointing at the product skip it with a warning."""
    product = get_product(db, company_id, product_id)
    product.is_deleted = True
    db.commit()
    logger.info("Product deleted", extra={"company_id": company_id, "product_id": product.id})
    return product
