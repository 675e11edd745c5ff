from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from graficontrol import audit, events
from graficontrol.business.orders.models import Order, OrderStatus
from graficontrol.business.orders.reconciliation import reconcile_order, sweep_completed_orders
from graficontrol.business.orders.repository import OrderRepository
from graficontrol.business.orders.schemas import (
    OrderCreate,
    OrderRead,
    OrderStatusOverride,
    OrderUpdate,
    validate_financials,
)
from graficontrol.business.orders.state_machine import can_transition, is_terminal
from graficontrol.metrics import observe_order_transition
from graficontrol.otel import annotate_current_span
from graficontrol.platform.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from graficontrol.platform.security.context import AuthContext


logger = logging.getLogger("graficontrol.orders")

ZERO = Decimal("0")


def compute_pending_value(total_value: Decimal, has_advance: bool, advance_value: Decimal) -> Decimal:
    return total_value - (advance_value if has_advance else ZERO)


def apply_financials(order: Order, total_value: Decimal, has_advance: bool, advance_value: Decimal | None) -> None:
    try:
        validate_financials(total_value, has_advance, advance_value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    order.total_value = total_value
    order.has_advance = has_advance
    order.advance_value = advance_value if has_advance and advance_value is not None else ZERO
    order.pending_value = compute_pending_value(total_value, has_advance, order.advance_value)


@dataclass(slots=True)
class OrderService:
    order_repository: OrderRepository = OrderRepository()

    def create_order(
        self,
        session: Session,
        ctx: AuthContext,
        payload: OrderCreate,
        *,
        today: date | None = None,
    ) -> OrderRead:
        today = today or date.today()
        if payload.delivery_date < today:
            raise ValidationError("delivery_date cannot be in the past")

        order = self.build_order(session, ctx, payload)
        session.commit()
        session.refresh(order)
        self.announce_created(order, ctx)
        return OrderRead.model_validate(order)

    def build_order(
        self,
        session: Session,
        ctx: AuthContext,
        payload: OrderCreate,
        *,
        quote_id: uuid.UUID | None = None,
    ) -> Order:
        """Add a validated order to the session without committing."""

        company_id = self.order_repository.require_company(ctx)
        order = Order(
            company_id=company_id,
            quote_id=quote_id,
            code=payload.code,
            description=payload.description,
            status=payload.status,
            delivery_date=payload.delivery_date,
        )
        apply_financials(order, payload.total_value, payload.has_advance, payload.advance_value)
        session.add(order)
        return order

    def get_order(self, session: Session, ctx: AuthContext, order_id: uuid.UUID) -> OrderRead:
        return OrderRead.model_validate(self._get_order(session, ctx, order_id))

    def list_orders(
        self,
        session: Session,
        ctx: AuthContext,
        *,
        status: OrderStatus | None = None,
    ) -> list[OrderRead]:
        if ctx.company_id is not None:
            company_ids = [ctx.company_id]
        else:
            # Unbound superadmins see every company, so each one with completed orders converges.
            company_ids = session.scalars(
                select(Order.company_id).where(Order.status == OrderStatus.COMPLETED).distinct()
            ).all()
        for company_id in company_ids:
            sweep_completed_orders(session, company_id)

        query = select(Order)
        if status is not None:
            query = query.where(Order.status == status)
        query = self.order_repository.apply_scope_query(query, ctx)
        rows = session.scalars(query.order_by(Order.delivery_date.asc(), Order.created_at.asc())).all()
        return [OrderRead.model_validate(row) for row in rows]

    def update_order(self, session: Session, ctx: AuthContext, order_id: uuid.UUID, payload: OrderUpdate) -> OrderRead:
        order = self._get_order(session, ctx, order_id)
        changes = payload.model_dump(exclude_unset=True)
        financial_change = bool({"total_value", "has_advance", "advance_value"} & changes.keys())
        # A completed order owns an immutable revenue entry for its total.
        if financial_change and is_terminal(order.status):
            raise ConflictError(
                f"financial fields of a {order.status.value} order cannot change",
                order_id=str(order.id),
            )

        for field_name in ("description", "code", "delivery_date"):
            if field_name in changes:
                if changes[field_name] is None and field_name != "code":
                    raise ValidationError(f"{field_name} cannot be empty")
                setattr(order, field_name, changes[field_name])

        if financial_change:
            total_value = changes["total_value"] if changes.get("total_value") is not None else order.total_value
            has_advance = changes["has_advance"] if changes.get("has_advance") is not None else order.has_advance
            advance_value = changes["advance_value"] if "advance_value" in changes else order.advance_value
            apply_financials(order, total_value, has_advance, advance_value)

        session.commit()
        session.refresh(order)
        logger.info("orders.updated", extra={"order_id": str(order.id), "company_id": str(order.company_id)})
        return OrderRead.model_validate(order)

    def transition_order(
        self,
        session: Session,
        ctx: AuthContext,
        order_id: uuid.UUID,
        target: OrderStatus,
    ) -> OrderRead:
        order = self._get_order(session, ctx, order_id)
        previous = order.status
        if not can_transition(previous, target):
            message = (
                f"order is already {previous.value}"
                if is_terminal(previous)
                else f"cannot move order from {previous.value} to {target.value}"
            )
            raise ConflictError(message, order_id=str(order.id))
        self._apply_status(session, order, target)
        session.commit()
        session.refresh(order)

        observe_order_transition(target.value, "transition")
        annotate_current_span(**{"order_id": str(order.id), "order.status": target.value})
        logger.info(
            "orders.transitioned",
            extra={
                "order_id": str(order.id),
                "company_id": str(order.company_id),
                "previous_status": previous.value,
                "status": target.value,
            },
        )
        self._publish_transition(order, previous, ctx)
        return OrderRead.model_validate(order)

    def override_order_status(
        self,
        session: Session,
        ctx: AuthContext,
        order_id: uuid.UUID,
        payload: OrderStatusOverride,
    ) -> OrderRead:
        """Set any status, bypassing the transition table. Admins only."""

        if not ctx.is_admin:
            raise PermissionDeniedError("only admins may override an order status")

        order = self._get_order(session, ctx, order_id)
        previous = order.status
        self._apply_status(session, order, payload.status)
        session.commit()
        session.refresh(order)

        observe_order_transition(payload.status.value, "override")
        annotate_current_span(**{"order_id": str(order.id), "order.status": order.status.value, "order.override": True})
        logger.warning(
            "orders.status_overridden",
            extra={
                "order_id": str(order.id),
                "company_id": str(order.company_id),
                "previous_status": previous.value,
                "status": order.status.value,
                "reason": payload.reason,
                "actor_user_id": ctx.user_id,
            },
        )
        audit.record(
            ctx.user_id,
            "order",
            str(order.id),
            "orders.status_overridden",
            {"status": previous.value},
            {"status": order.status.value},
            ctx.correlation_id,
            reason=payload.reason,
        )
        self._publish_transition(order, previous, ctx)
        return OrderRead.model_validate(order)

    def _apply_status(self, session: Session, order: Order, target: OrderStatus) -> None:
        order.status = target
        session.add(order)
        if target == OrderStatus.COMPLETED:
            session.flush()
            reconcile_order(session, order, trigger="transition")

    def _get_order(self, session: Session, ctx: AuthContext, order_id: uuid.UUID) -> Order:
        order = session.scalar(self.order_repository.apply_scope_query(select(Order).where(Order.id == order_id), ctx))
        if order is None:
            raise NotFoundError("order not found")
        return order

    @staticmethod
    def announce_created(order: Order, ctx: AuthContext) -> None:
        logger.info(
            "orders.created",
            extra={
                "order_id": str(order.id),
                "company_id": str(order.company_id),
                "quote_id": str(order.quote_id) if order.quote_id else None,
                "status": order.status.value,
            },
        )
        events.publish(
            {
                "event_type": "orders.order.created",
                "company_id": str(order.company_id),
                "order_id": str(order.id),
                "quote_id": str(order.quote_id) if order.quote_id else None,
                "correlation_id": ctx.correlation_id,
            }
        )

    @staticmethod
    def _publish_transition(order: Order, previous: OrderStatus, ctx: AuthContext) -> None:
        if previous == order.status:
            return
        event_type = "orders.order.completed" if order.status == OrderStatus.COMPLETED else "orders.order.status_changed"
        events.publish(
            {
                "event_type": event_type,
                "company_id": str(order.company_id),
                "order_id": str(order.id),
                "previous_status": previous.value,
                "status": order.status.value,
                "correlation_id": ctx.correlation_id,
            }
        )


order_service = OrderService()
