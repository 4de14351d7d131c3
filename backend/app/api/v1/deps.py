"""
API Dependencies

Tenant resolution and common query parameter dependencies shared by the
v1 routers.
"""
from typing import Optional

from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.exceptions import TenantRequiredError
from app.schemas.common import PaginationParams
from app.services.company_service import get_company


def get_company_id(
    x_company_id: Optional[str] = Header(
        default=None,
        alias=settings.COMPANY_HEADER,
        description="Company (tenant) the request operates on",
    ),
    db: Session = Depends(get_db),
) -> int:
    """
    Dependency resolving the company of the request from its header.

    Raises:
        TenantRequiredError: Header missing or not an integer
        NotFoundError: Company does not exist
    """
    if x_company_id is None or not x_company_id.strip():
        raise TenantRequiredError(
            f"Header {settings.COMPANY_HEADER} is required",
            details={"header": settings.COMPANY_HEADER},
        )
    try:
        company_id = int(x_company_id.strip())
    except ValueError:
        raise TenantRequiredError(
            f"Header {settings.COMPANY_HEADER} must be a company id",
            details={"header": settings.COMPANY_HEADER, "value": x_company_id},
        )

    return get_company(db, company_id).id


def get_pagination_params(
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of records to skip (for pagination)"
    ),
    limit: int = Query(
        default=50,
        ge=1,
        le=500,
        description="Maximum number of records to return (1-500)"
    )
) -> PaginationParams:
    """
    Dependency for standardized pagination parameters.

    Example:
        @router.get("")
        def list_products(
            pagination: PaginationParams = Depends(get_pagination_params),
            company_id: int = Depends(get_company_id),
            db: Session = Depends(get_db),
        ):
            ...
    """
    return PaginationParams(offset=offset, limit=limit)
