from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from graficontrol.business.financial.models import TransactionType
from graficontrol.business.financial.schemas import (
    FinancialSummary,
    TransactionCreate,
    TransactionPaidUpdate,
    TransactionRead,
)
from graficontrol.business.financial.service import financial_service
from graficontrol.core.database import get_db
from graficontrol.core.dependencies import get_auth_context
from graficontrol.platform.security.context import AuthContext


router = APIRouter(prefix="/financial", tags=["financial"])


@router.post("/transactions", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> TransactionRead:
    return financial_service.create_transaction(db, ctx, payload)


@router.get("/transactions", response_model=list[TransactionRead])
def list_transactions(
    type: TransactionType | None = Query(default=None),
    paid: bool | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> list[TransactionRead]:
    return financial_service.list_transactions(db, ctx, type=type, paid=paid)


@router.post("/transactions/{transaction_id}/paid", response_model=TransactionRead)
def set_transaction_paid(
    transaction_id: uuid.UUID,
    payload: TransactionPaidUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> TransactionRead:
    return financial_service.set_paid(db, ctx, transaction_id, payload.paid)


@router.get("/summary", response_model=FinancialSummary)
def get_summary(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> FinancialSummary:
    return financial_service.summary(db, ctx)
