from __future__ import annotations

from collections.abc import Generator
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from graficontrol import events
from graficontrol.business.company.models import Company
from graficontrol.business.orders.models import Order, OrderStatus
from graficontrol.business.quotes import service as quotes_service_module
from graficontrol.business.quotes.schemas import QuoteConvertRequest, QuoteCreate
from graficontrol.business.quotes.service import quote_service
from graficontrol.core.database import Base
from graficontrol.platform.errors import ConflictError, NotFoundError, ValidationError
from graficontrol.platform.security.context import AuthContext, Role


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clear_stubs() -> Generator[None, None, None]:
    events.published_events.clear()
    yield
    events.published_events.clear()


@pytest.fixture()
def ctx(db_session: Session) -> AuthContext:
    company = Company(name="Grafica Central")
    db_session.add(company)
    db_session.commit()
    return AuthContext(user_id="user-1", role=Role.USER, company_id=company.id, correlation_id="corr-quotes")


def _quote(session: Session, ctx: AuthContext, **overrides):
    values = {
        "code": "ORC-7",
        "description": "Wedding invitations",
        "delivery_date": date.today() + timedelta(days=10),
        "cost_value": Decimal("120.00"),
        "sale_value": Decimal("300.00"),
    }
    values.update(overrides)
    return quote_service.create_quote(session, ctx, QuoteCreate(**values))


def _order_count(session: Session, quote_id) -> int:
    return session.scalar(select(func.count()).select_from(Order).where(Order.quote_id == quote_id))


def test_create_quote_derives_profit(db_session: Session, ctx: AuthContext) -> None:
    quote = _quote(db_session, ctx)

    assert quote.profit_value == Decimal("180.00")
    assert quote.approved is False
    assert quote.converted is False


def test_approve_is_idempotent(db_session: Session, ctx: AuthContext) -> None:
    quote = _quote(db_session, ctx)

    first = quote_service.approve_quote(db_session, ctx, quote.id)
    second = quote_service.approve_quote(db_session, ctx, quote.id)

    assert first.approved is True
    assert second.approved is True
    assert len(events.events_of_type("quotes.quote.approved")) == 1


def test_unapproved_quote_cannot_be_converted(db_session: Session, ctx: AuthContext) -> None:
    quote = _quote(db_session, ctx)

    with pytest.raises(ConflictError):
        quote_service.convert_quote(db_session, ctx, quote.id, QuoteConvertRequest())

    assert _order_count(db_session, quote.id) == 0


def test_approved_quote_converts_once(db_session: Session, ctx: AuthContext) -> None:
    quote = _quote(db_session, ctx)
    quote_service.approve_quote(db_session, ctx, quote.id)

    result = quote_service.convert_quote(
        db_session,
        ctx,
        quote.id,
        QuoteConvertRequest(has_advance=True, advance_value=Decimal("100.00")),
    )

    assert result.quote.converted is True
    assert result.order.quote_id == quote.id
    assert result.order.code == "ORC-7"
    assert result.order.description == "Wedding invitations"
    assert result.order.delivery_date == quote.delivery_date
    assert result.order.total_value == Decimal("300.00")
    assert result.order.pending_value == Decimal("200.00")
    assert result.order.status == OrderStatus.IN_PROGRESS

    with pytest.raises(ConflictError):
        quote_service.convert_quote(db_session, ctx, quote.id, QuoteConvertRequest())

    assert _order_count(db_session, quote.id) == 1
    assert quote_service.get_quote(db_session, ctx, quote.id).converted is True


def test_conversion_uses_total_override(db_session: Session, ctx: AuthContext) -> None:
    quote = _quote(db_session, ctx)
    quote_service.approve_quote(db_session, ctx, quote.id)

    result = quote_service.convert_quote(db_session, ctx, quote.id, QuoteConvertRequest(total_value=Decimal("280.00")))

    assert result.order.total_value == Decimal("280.00")
    assert result.order.pending_value == Decimal("280.00")


def test_conversion_rejects_advance_above_total(db_session: Session, ctx: AuthContext) -> None:
    quote = _quote(db_session, ctx)
    quote_service.approve_quote(db_session, ctx, quote.id)

    with pytest.raises(ValidationError):
        quote_service.convert_quote(
            db_session,
            ctx,
            quote.id,
            QuoteConvertRequest(has_advance=True, advance_value=Decimal("301.00")),
        )

    assert _order_count(db_session, quote.id) == 0


def test_concurrent_conversion_loser_gets_conflict(
    db_session: Session,
    ctx: AuthContext,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    quote = _quote(db_session, ctx)
    quote_service.approve_quote(db_session, ctx, quote.id)
    quote_service.convert_quote(db_session, ctx, quote.id, QuoteConvertRequest())

    # Simulates a caller whose live count ran before the winner committed.
    monkeypatch.setattr(quotes_service_module, "linked_order_count", lambda session, quote_id: 0)

    with pytest.raises(ConflictError):
        quote_service.convert_quote(db_session, ctx, quote.id, QuoteConvertRequest())

    assert _order_count(db_session, quote.id) == 1


def test_list_quotes_reports_conversion(db_session: Session, ctx: AuthContext) -> None:
    converted = _quote(db_session, ctx, code="ORC-1")
    _quote(db_session, ctx, code="ORC-2")
    quote_service.approve_quote(db_session, ctx, converted.id)
    quote_service.convert_quote(db_session, ctx, converted.id, QuoteConvertRequest())

    listed = {item.code: item for item in quote_service.list_quotes(db_session, ctx)}

    assert listed["ORC-1"].converted is True
    assert listed["ORC-2"].converted is False
    assert [item.code for item in quote_service.list_quotes(db_session, ctx, approved=True)] == ["ORC-1"]


def test_quotes_of_other_companies_are_hidden(db_session: Session, ctx: AuthContext) -> None:
    quote = _quote(db_session, ctx)
    other = Company(name="Other")
    db_session.add(other)
    db_session.commit()
    other_ctx = AuthContext(user_id="user-2", role=Role.USER, company_id=other.id)

    with pytest.raises(NotFoundError):
        quote_service.approve_quote(db_session, other_ctx, quote.id)
