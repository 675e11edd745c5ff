from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from graficontrol.business.quotes.schemas import QuoteConversionRead, QuoteConvertRequest, QuoteCreate, QuoteRead
from graficontrol.business.quotes.service import quote_service
from graficontrol.core.database import get_db
from graficontrol.core.dependencies import get_auth_context
from graficontrol.platform.security.context import AuthContext


router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=QuoteRead, status_code=status.HTTP_201_CREATED)
def create_quote(
    payload: QuoteCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> QuoteRead:
    return quote_service.create_quote(db, ctx, payload)


@router.get("", response_model=list[QuoteRead])
def list_quotes(
    approved: bool | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> list[QuoteRead]:
    return quote_service.list_quotes(db, ctx, approved=approved)


@router.get("/{quote_id}", response_model=QuoteRead)
def get_quote(
    quote_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> QuoteRead:
    return quote_service.get_quote(db, ctx, quote_id)


@router.post("/{quote_id}/approve", response_model=QuoteRead)
def approve_quote(
    quote_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> QuoteRead:
    return quote_service.approve_quote(db, ctx, quote_id)


@router.post("/{quote_id}/convert", response_model=QuoteConversionRead, status_code=status.HTTP_201_CREATED)
def convert_quote(
    quote_id: uuid.UUID,
    payload: QuoteConvertRequest,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> QuoteConversionRead:
    return quote_service.convert_quote(db, ctx, quote_id, payload)
