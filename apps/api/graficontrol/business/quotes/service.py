from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from graficontrol import events
from graficontrol.business.orders.models import Order
from graficontrol.business.orders.schemas import OrderCreate, OrderRead
from graficontrol.business.orders.service import OrderService, order_service
from graficontrol.business.quotes.models import Quote
from graficontrol.business.quotes.repository import QuoteRepository
from graficontrol.business.quotes.schemas import QuoteConversionRead, QuoteConvertRequest, QuoteCreate, QuoteRead
from graficontrol.metrics import observe_quote_conversion
from graficontrol.platform.errors import ConflictError, NotFoundError, ValidationError
from graficontrol.platform.security.context import AuthContext


logger = logging.getLogger("graficontrol.quotes")


def linked_order_count(session: Session, quote_id: uuid.UUID) -> int:
    return session.scalar(select(func.count()).select_from(Order).where(Order.quote_id == quote_id)) or 0


@dataclass(slots=True)
class QuoteService:
    quote_repository: QuoteRepository = QuoteRepository()
    orders: OrderService = field(default_factory=lambda: order_service)

    def create_quote(self, session: Session, ctx: AuthContext, payload: QuoteCreate) -> QuoteRead:
        company_id = self.quote_repository.require_company(ctx)
        quote = Quote(
            company_id=company_id,
            client_id=payload.client_id,
            code=payload.code,
            description=payload.description,
            delivery_date=payload.delivery_date,
            cost_value=payload.cost_value,
            sale_value=payload.sale_value,
            profit_value=payload.sale_value - payload.cost_value,
            approved=False,
        )
        session.add(quote)
        session.commit()
        session.refresh(quote)
        logger.info("quotes.created", extra={"quote_id": str(quote.id), "company_id": str(company_id)})
        return self._read(quote, converted=False)

    def list_quotes(self, session: Session, ctx: AuthContext, *, approved: bool | None = None) -> list[QuoteRead]:
        converted = exists().where(Order.quote_id == Quote.id)
        query = select(Quote, converted.label("converted"))
        if approved is not None:
            query = query.where(Quote.approved.is_(approved))
        query = self.quote_repository.apply_scope_query(query, ctx)
        rows = session.execute(query.order_by(Quote.created_at.desc())).all()
        return [self._read(quote, converted=bool(is_converted)) for quote, is_converted in rows]

    def get_quote(self, session: Session, ctx: AuthContext, quote_id: uuid.UUID) -> QuoteRead:
        quote = self._get_quote(session, ctx, quote_id)
        return self._read(quote, converted=linked_order_count(session, quote.id) > 0)

    def approve_quote(self, session: Session, ctx: AuthContext, quote_id: uuid.UUID) -> QuoteRead:
        quote = self._get_quote(session, ctx, quote_id)
        if not quote.approved:
            quote.approved = True
            session.commit()
            session.refresh(quote)
            logger.info("quotes.approved", extra={"quote_id": str(quote.id), "company_id": str(quote.company_id)})
            events.publish(
                {
                    "event_type": "quotes.quote.approved",
                    "company_id": str(quote.company_id),
                    "quote_id": str(quote.id),
                    "correlation_id": ctx.correlation_id,
                }
            )
        return self._read(quote, converted=linked_order_count(session, quote.id) > 0)

    def convert_quote(
        self,
        session: Session,
        ctx: AuthContext,
        quote_id: uuid.UUID,
        overrides: QuoteConvertRequest,
    ) -> QuoteConversionRead:
        """Create the single order of an approved quote.

        The linked-order count is read at conversion time; the unique
        ``orders.quote_id`` constraint rejects a concurrent second conversion.
        """

        quote = self._get_quote(session, ctx, quote_id)
        if not quote.approved:
            observe_quote_conversion("not_approved")
            raise ConflictError("quote must be approved before conversion", quote_id=str(quote.id))
        if linked_order_count(session, quote.id) > 0:
            observe_quote_conversion("already_converted")
            raise ConflictError("quote was already converted into an order", quote_id=str(quote.id))

        try:
            order_payload = OrderCreate(
                description=quote.description,
                code=quote.code,
                delivery_date=quote.delivery_date,
                total_value=overrides.total_value if overrides.total_value is not None else quote.sale_value,
                has_advance=overrides.has_advance,
                advance_value=overrides.advance_value,
            )
        except SchemaValidationError as exc:
            observe_quote_conversion("invalid")
            raise ValidationError(f"invalid conversion values: {exc.errors()[0]['msg']}") from exc

        order = self.orders.build_order(session, ctx, order_payload, quote_id=quote.id)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            observe_quote_conversion("conflict")
            logger.warning("quotes.conversion_conflict", extra={"quote_id": str(quote_id)})
            raise ConflictError("quote was already converted into an order", quote_id=str(quote_id)) from exc

        session.refresh(order)
        session.refresh(quote)
        observe_quote_conversion("converted")
        logger.info(
            "quotes.converted",
            extra={"quote_id": str(quote.id), "order_id": str(order.id), "company_id": str(quote.company_id)},
        )
        self.orders.announce_created(order, ctx)
        return QuoteConversionRead(quote=self._read(quote, converted=True), order=OrderRead.model_validate(order))

    def _get_quote(self, session: Session, ctx: AuthContext, quote_id: uuid.UUID) -> Quote:
        quote = session.scalar(self.quote_repository.apply_scope_query(select(Quote).where(Quote.id == quote_id), ctx))
        if quote is None:
            raise NotFoundError("quote not found")
        return quote

    @staticmethod
    def _read(quote: Quote, *, converted: bool) -> QuoteRead:
        return QuoteRead.model_validate(quote).model_copy(update={"converted": converted})


quote_service = QuoteService()
