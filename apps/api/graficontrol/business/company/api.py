from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from graficontrol.business.company.schemas import CompanyAccessUpdate, CompanyCreate, CompanyRead
from graficontrol.business.company.service import company_service
from graficontrol.core.dependencies import get_auth_context
from graficontrol.core.database import get_db
from graficontrol.platform.security.context import AuthContext


router = APIRouter(prefix="/companies", tags=["companies"])


@router.post("", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
def register_company(
    payload: CompanyCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> CompanyRead:
    return company_service.register_company(db, ctx, payload)


@router.get("/me", response_model=CompanyRead)
def get_current_company(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> CompanyRead:
    return company_service.get_current_company(db, ctx)


@router.patch("/{company_id}/access", response_model=CompanyRead)
def update_company_access(
    company_id: uuid.UUID,
    payload: CompanyAccessUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> CompanyRead:
    return company_service.update_access(db, ctx, company_id, payload)
