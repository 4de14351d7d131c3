"""
Groups API Endpoints

Company-scoped groups and their subgroups, used to classify recipes and
products.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_company_id
from app.db.session import get_db
from app.schemas.common import MessageResponse
from app.schemas.group import GroupCreate, GroupResponse, SubgroupCreate, SubgroupResponse
from app.services import group_service

router = APIRouter()


@router.get("", response_model=List[GroupResponse])
async def list_groups(
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return group_service.list_groups(db, company_id)


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    request: GroupCreate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return group_service.create_group(db, company_id, request.name, request.description)


@router.delete("/{group_id}", response_model=MessageResponse)
async def delete_group(
    group_id: int,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    """Delete a group with its subgroups. 409 while recipes or products use it."""
    group_service.delete_group(db, company_id, group_id)
    return MessageResponse(message=f"Group {group_id} deleted")


@router.get("/subgroups", response_model=List[SubgroupResponse])
async def list_subgroups(
    group_id: Optional[int] = Query(None, description="Only subgroups of this group"),
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return group_service.list_subgroups(db, company_id, group_id)


@router.post("/{group_id}/subgroups", response_model=SubgroupResponse, status_code=status.HTTP_201_CREATED)
async def create_subgroup(
    group_id: int,
    request: SubgroupCreate,
    company_id: int = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return group_service.create_subgroup(db, company_id, group_id, request.name, request.description)
