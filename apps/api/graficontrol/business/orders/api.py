from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from graficontrol.business.orders.models import OrderStatus
from graficontrol.business.orders.schemas import (
    OrderCreate,
    OrderRead,
    OrderStatusOverride,
    OrderTransitionRequest,
    OrderUpdate,
)
from graficontrol.business.orders.service import order_service
from graficontrol.core.database import get_db
from graficontrol.core.dependencies import get_auth_context
from graficontrol.platform.security.context import AuthContext


router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> OrderRead:
    return order_service.create_order(db, ctx, payload)


@router.get("", response_model=list[OrderRead])
def list_orders(
    status: OrderStatus | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> list[OrderRead]:
    return order_service.list_orders(db, ctx, status=status)


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> OrderRead:
    return order_service.get_order(db, ctx, order_id)


@router.patch("/{order_id}", response_model=OrderRead)
def update_order(
    order_id: uuid.UUID,
    payload: OrderUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> OrderRead:
    return order_service.update_order(db, ctx, order_id, payload)


@router.post("/{order_id}/transition", response_model=OrderRead)
def transition_order(
    order_id: uuid.UUID,
    payload: OrderTransitionRequest,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> OrderRead:
    return order_service.transition_order(db, ctx, order_id, payload.status)


@router.post("/{order_id}/override-status", response_model=OrderRead)
def override_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusOverride,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> OrderRead:
    return order_service.override_order_status(db, ctx, order_id, payload)
