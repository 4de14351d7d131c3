"""
Group / subgroup classification

Groups and their subgroups are company-owned labels used to organise
recipes and products. Recipe and product saves go through
``check_classification`` so a row can only point at its own company's
groups, and a subgroup only under its own group.
"""
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import ConflictError, DuplicateError, NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.group import Group, Subgroup
from app.models.product import Product
from app.models.recipe import Recipe
from app.services.catalog_store import CatalogStore

logger = get_logger(__name__)


def check_classification(
    store: CatalogStore,
    group_id: Optional[int],
    subgroup_id: Optional[int],
) -> Tuple[Optional[int], Optional[int]]:
    """
    Validate a (group_id, subgroup_id) pair against the store's company.

    A subgroup given without a group brings its own group along.

    Returns:
        The (group_id, subgroup_id) pair to store

    Raises:
        ValidationError: If an id is unknown to the company or the subgroup
            belongs to another group
    """
    if group_id is not None and store.get_group(group_id) is None:
        raise ValidationError(f"Group {group_id} not found", field="group_id", value=group_id)

    if subgroup_id is None:
        return group_id, None

    subgroup = store.get_subgroup(subgroup_id)
    if subgroup is None:
        raise ValidationError(f"Subgroup {subgroup_id} not found", field="subgroup_id", value=subgroup_id)
    if group_id is None:
        return subgroup.group_id, subgroup.id
    if subgroup.group_id != group_id:
        raise ValidationError(
            f"Subgroup {subgroup_id} does not belong to group {group_id}",
            field="subgroup_id",
            value=subgroup_id,
        )
    return group_id, subgroup.id


def apply_classification_update(store: CatalogStore, updates: dict, current) -> None:
    """
    Resolve ``group_id`` / ``subgroup_id`` in a partial update against the
    row's current values. Moving to another group drops the old subgroup.
    """
    if "group_id" not in updates and "subgroup_id" not in updates:
        return
    group_id = updates.get("group_id", current.group_id)
    subgroup_id = updates.get("subgroup_id", current.subgroup_id)
    if "subgroup_id" not in updates and group_id != current.group_id:
        subgroup_id = None
    updates["group_id"], updates["subgroup_id"] = check_classification(store, group_id, subgroup_id)


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Name is required", field="name")
    return cleaned


# ============================================================================
# Groups
# ============================================================================

def list_groups(db: Session, company_id: int) -> List[Group]:
    return db.query(Group).filter(Group.company_id == company_id).order_by(Group.name).all()


def get_group(db: Session, company_id: int, group_id: int) -> Group:
    group = CatalogStore(db, company_id).get_group(group_id)
    if group is None:
        raise NotFoundError("Group", group_id)
    return group


def create_group(db: Session, company_id: int, name: str, description: Optional[str] = None) -> Group:
    name = _clean_name(name)
    duplicate = db.query(Group.id).filter(
        Group.company_id == company_id,
        func.lower(Group.name) == name.lower(),
    ).first()
    if duplicate:
        raise DuplicateError("Group", field="name", value=name)

    group = Group(company_id=company_id, name=name, description=description)
    db.add(group)
    db.commit()
    db.refresh(group)
    logger.info("Group created", extra={"company_id": company_id, "group_id": group.id})
    return group


def delete_group(db: Session, company_id: int, group_id: int) -> None:
    """Delete a group and its subgroups. Refused while a recipe or product uses it."""
    group = get_group(db, company_id, group_id)
    in_use = (
        db.query(Recipe.id).filter(Recipe.company_id == company_id, Recipe.group_id == group.id).first()
        or db.query(Product.id).filter(Product.company_id == company_id, Product.group_id == group.id).first()
    )
    if in_use:
        raise ConflictError(
            "Group is used by one or more recipes or products",
            details={"group_id": group.id},
        )
    db.delete(group)
    db.commit()
    logger.info("Group deleted", extra={"company_id": company_id, "group_id": group_id})


# ============================================================================
# Subgroups
# ============================================================================

def list_subgroups(db: Session, company_id: int, group_id: Optional[int] = None) -> List[Subgroup]:
    query = db.query(Subgroup).filter(Subgroup.company_id == company_id)
    if group_id is not None:
        query = query.filter(Subgroup.group_id == group_id)
    return query.order_by(Subgroup.name).all()


def create_subgroup(
    db: Session,
    company_id: int,
    group_id: int,
    name: str,
    description: Optional[str] = None,
) -> Subgroup:
    group = get_group(db, company_id, group_id)
    name = _clean_name(name)
    duplicate = db.query(Subgroup.id).filter(
        Subgroup.group_id == group.id,
        func.lower(Subgroup.name) == name.lower(),
    ).first()
    if duplicate:
        raise DuplicateError("Subgroup", field="name", value=name)

    subgroup = Subgroup(company_id=company_id, group_id=group.id, name=name, description=description)
    db.add(subgroup)
    db.commit()
    db.refresh(subgroup)
    logger.info(
        "Subgroup created",
        extra={"company_id": company_id, "group_id": group.id, "subgroup_id": subgroup.id},
    )
    return subgroup
