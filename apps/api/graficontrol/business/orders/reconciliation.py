"""Revenue ledger convergence for completed orders.

Every order in ``completed`` owns exactly one paid revenue entry. The
``financial_transaction.order_id`` unique constraint makes the insert safe
under concurrent callers: the loser of a race gets an ``IntegrityError`` inside
its savepoint and treats the order as already reconciled.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from graficontrol.business.financial.models import FinancialTransaction, TransactionType
from graficontrol.business.orders.models import Order, OrderStatus
from graficontrol.metrics import observe_revenue_entry_created, observe_revenue_reconcile_conflict


logger = logging.getLogger("graficontrol.orders.reconciliation")


def revenue_description(order: Order) -> str:
    reference = order.code or str(order.id)
    return f"Order revenue #{reference}: {order.description}"[:500]


def ledger_entry_exists(session: Session, order_id: uuid.UUID) -> bool:
    return session.scalar(select(FinancialTransaction.id).where(FinancialTransaction.order_id == order_id)) is not None


def reconcile_order(
    session: Session,
    order: Order,
    *,
    trigger: str = "transition",
    today: date | None = None,
) -> FinancialTransaction | None:
    """Insert the revenue entry of a completed order unless one already exists.

    Runs inside the caller's transaction; the caller commits. Returns the new
    entry, or ``None`` when the order was already reconciled.
    """

    if ledger_entry_exists(session, order.id):
        return None

    today = today or date.today()
    entry = FinancialTransaction(
        company_id=order.company_id,
        type=TransactionType.REVENUE,
        amount=order.total_value,
        due_date=today,
        paid=True,
        paid_date=today,
        order_id=order.id,
        description=revenue_description(order),
    )
    try:
        with session.begin_nested():
            session.add(entry)
    except IntegrityError:
        observe_revenue_reconcile_conflict()
        logger.info(
            "financial.revenue_already_reconciled",
            extra={"order_id": str(order.id), "company_id": str(order.company_id)},
        )
        return None

    observe_revenue_entry_created(trigger)
    logger.info(
        "financial.revenue_entry_created",
        extra={
            "order_id": str(order.id),
            "company_id": str(order.company_id),
            "transaction_id": str(entry.id),
            "event": trigger,
        },
    )
    return entry


def sweep_completed_orders(session: Session, company_id: uuid.UUID, *, today: date | None = None) -> int:
    completed_orders = session.scalars(
        select(Order).where(Order.company_id == company_id, Order.status == OrderStatus.COMPLETED)
    ).all()

    created = 0
    for order in completed_orders:
        if reconcile_order(session, order, trigger="sweep", today=today) is not None:
            created += 1
    if created:
        session.commit()
        logger.info("financial.sweep_reconciled", extra={"company_id": str(company_id), "entries_created": created})
    return created
