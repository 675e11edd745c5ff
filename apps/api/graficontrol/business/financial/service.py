from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from graficontrol import audit
from graficontrol.business.financial.models import FinancialTransaction, TransactionType
from graficontrol.business.financial.repository import FinancialTransactionRepository
from graficontrol.business.financial.schemas import FinancialSummary, TransactionCreate, TransactionRead
from graficontrol.platform.errors import ConflictError, NotFoundError
from graficontrol.platform.security.context import AuthContext


logger = logging.getLogger("graficontrol.financial")

ZERO = Decimal("0.00")


@dataclass(slots=True)
class FinancialService:
    transaction_repository: FinancialTransactionRepository = FinancialTransactionRepository()

    def create_transaction(self, session: Session, ctx: AuthContext, payload: TransactionCreate) -> TransactionRead:
        company_id = self.transaction_repository.require_company(ctx)
        entry = FinancialTransaction(
            company_id=company_id,
            type=payload.type,
            amount=payload.amount,
            due_date=payload.due_date,
            paid=payload.paid,
            paid_date=date.today() if payload.paid else None,
            description=payload.description,
        )
        session.add(entry)
        session.commit()
        session.refresh(entry)
        logger.info(
            "financial.transaction_created",
            extra={"company_id": str(company_id), "transaction_id": str(entry.id), "status": entry.type.value},
        )
        return TransactionRead.model_validate(entry)

    def list_transactions(
        self,
        session: Session,
        ctx: AuthContext,
        *,
        type: TransactionType | None = None,
        paid: bool | None = None,
    ) -> list[TransactionRead]:
        query = select(FinancialTransaction)
        if type is not None:
            query = query.where(FinancialTransaction.type == type)
        if paid is not None:
            query = query.where(FinancialTransaction.paid.is_(paid))
        query = self.transaction_repository.apply_scope_query(query, ctx)
        rows = session.scalars(query.order_by(FinancialTransaction.due_date.desc(), FinancialTransaction.created_at.desc())).all()
        return [TransactionRead.model_validate(row) for row in rows]

    def set_paid(
        self,
        session: Session,
        ctx: AuthContext,
        transaction_id: uuid.UUID,
        paid: bool,
        *,
        today: date | None = None,
    ) -> TransactionRead:
        query = self.transaction_repository.apply_scope_query(
            select(FinancialTransaction).where(FinancialTransaction.id == transaction_id), ctx
        )
        entry = session.scalar(query)
        if entry is None:
            raise NotFoundError("transaction not found")
        if entry.order_id is not None:
            raise ConflictError("order revenue entries cannot be changed", transaction_id=str(entry.id))

        before = {"paid": entry.paid, "paid_date": entry.paid_date.isoformat() if entry.paid_date else None}
        entry.paid = paid
        entry.paid_date = (today or date.today()) if paid else None
        session.commit()
        session.refresh(entry)

        audit.record(
            ctx.user_id,
            "financial_transaction",
            str(entry.id),
            "financial.transaction_paid_changed",
            before,
            {"paid": entry.paid, "paid_date": entry.paid_date.isoformat() if entry.paid_date else None},
            ctx.correlation_id,
        )
        return TransactionRead.model_validate(entry)

    def summary(self, session: Session, ctx: AuthContext) -> FinancialSummary:
        def bucket(tx_type: TransactionType, paid: bool):
            return func.coalesce(
                func.sum(
                    case(
                        ((FinancialTransaction.type == tx_type) & (FinancialTransaction.paid.is_(paid)), FinancialTransaction.amount),
                        else_=0,
                    )
                ),
                0,
            )

        query = select(
            bucket(TransactionType.REVENUE, True),
            bucket(TransactionType.EXPENSE, True),
            bucket(TransactionType.REVENUE, False),
            bucket(TransactionType.EXPENSE, False),
        ).select_from(FinancialTransaction)
        if not ctx.is_superadmin:
            query = query.where(FinancialTransaction.company_id == self.transaction_repository.require_company(ctx))

        revenue, expenses, pending_revenue, pending_expenses = (
            Decimal(str(value)).quantize(ZERO) for value in session.execute(query).one()
        )
        return FinancialSummary(
            revenue=revenue,
            expenses=expenses,
            pending_revenue=pending_revenue,
            pending_expenses=pending_expenses,
            balance=revenue - expenses,
        )


financial_service = FinancialService()
