"""
Companies API Endpoints

Tenant onboarding. These routes are the only ones that do not take the
company header.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.logging_config import get_logger
from app.schemas.company import CompanyCreate, CompanyCreatedResponse, CompanyResponse
from app.services import company_service

router = APIRouter()
logger = get_logger(__name__)


@router.post("", response_model=CompanyCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    request: CompanyCreate,
    db: Session = Depends(get_db),
):
    """
    Create a company and provision its system product types
    (materia_prima, receita, subreceita).
    """
    company, created = company_service.create_company(db, request.name)
    return CompanyCreatedResponse(
        id=company.id,
        name=company.name,
        created_at=company.created_at,
        product_types=[t.name for t in created],
    )


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: int,
    db: Session = Depends(get_db),
):
    """Get a company by ID"""
    return company_service.get_company(db, company_id)
