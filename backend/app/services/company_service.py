"""
Company (tenant) onboarding
"""
from typing import List, Tuple

from sqlalchemy.orm import Session

from app.exceptions import NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.company import Company
from app.models.product_type import ProductType
from app.services.product_types import ensure_system_product_types

logger = get_logger(__name__)


def create_company(db: Session, name: str) -> Tuple[Company, List[ProductType]]:
    """
    Create a company and provision its system product types in one commit.

    Returns:
        (company, product types created)
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Company name is required", field="name")

    company = Company(name=cleaned)
    db.add(company)
    db.flush()
    created = ensure_system_product_types(db, company.id)
    db.commit()
    db.refresh(company)

    logger.info(
        "Company created",
        extra={"company_id": company.id, "product_types": [t.name for t in created]},
    )
    return company, created


def get_company(db: Session, company_id: int) -> Company:
    company = db.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise NotFoundError("Company", company_id)
    return company
