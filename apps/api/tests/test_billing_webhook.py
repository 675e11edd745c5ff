from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from graficontrol import audit, events
from graficontrol.business.billing.webhook import (
    WebhookOutcome,
    compute_signature,
    constant_time_equals,
    verify_signature,
    webhook_reconciler,
)
from graficontrol.business.company.models import Company
from graficontrol.business.subscription.models import PaymentMethod, Plan, Subscription, SubscriptionStatus
from graficontrol.business.subscription.status import access_status_cache
from graficontrol.core.config import get_settings
from graficontrol.core.database import Base, get_db
from graficontrol.main import app
from graficontrol.platform.errors import AuthError, ValidationError


SECRET = "whsec-test"


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
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("BILLING_WEBHOOK_TOKEN", SECRET)
    get_settings.cache_clear()
    audit.audit_entries.clear()
    events.published_events.clear()
    access_status_cache.clear()
    yield
    get_settings.cache_clear()
    audit.audit_entries.clear()
    events.published_events.clear()
    access_status_cache.clear()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def subscription(db_session: Session) -> Subscription:
    company = Company(name="Grafica Central")
    plan = Plan(name="Monthly", duration_months=1, price=Decimal("99.90"), is_active=True)
    db_session.add_all([company, plan])
    db_session.flush()
    now = datetime.now(timezone.utc)
    row = Subscription(
        company_id=company.id,
        plan_id=plan.id,
        status=SubscriptionStatus.PENDING,
        start_date=now,
        end_date=now + timedelta(days=30),
        payment_method=PaymentMethod.PIX,
        billing_provider_subscription_id="sub_remote_1",
    )
    db_session.add(row)
    db_session.commit()
    return row


def _body(event: str, reference: str | None, payment_id: str = "pay_1") -> bytes:
    payment: dict[str, str] = {"id": payment_id}
    if reference is not None:
        payment["externalReference"] = reference
    return json.dumps({"event": event, "payment": payment}).encode("utf-8")


def _post(client: TestClient, body: bytes, signature: str | None) -> object:
    headers = {"content-type": "application/json"}
    if signature is not None:
        headers["asaas-access-token"] = signature
    return client.post("/webhooks/billing", content=body, headers=headers)


def test_constant_time_equals() -> None:
    signature = compute_signature(b"{}", SECRET)

    assert constant_time_equals(signature, signature)
    assert not constant_time_equals(signature, signature[:-1])
    assert not constant_time_equals(signature, signature + "0")
    assert not constant_time_equals(signature, ("0" if signature[0] != "0" else "1") + signature[1:])
    assert not constant_time_equals(signature, signature[:-1] + ("0" if signature[-1] != "0" else "1"))


@pytest.mark.parametrize(
    ("signature", "secret"),
    [
        (None, SECRET),
        ("", SECRET),
        ("deadbeef", SECRET),
        (compute_signature(b"{}", SECRET).upper(), SECRET),
        ("  " + compute_signature(b"{}", SECRET), SECRET),
        (compute_signature(b"{}", SECRET) + "\n", SECRET),
        (compute_signature(b"{}", "other-secret"), SECRET),
        (compute_signature(b"{}", SECRET), None),
        (compute_signature(b"{}", SECRET), ""),
    ],
)
def test_verify_signature_rejections(signature: str | None, secret: str | None) -> None:
    with pytest.raises(AuthError):
        verify_signature(b"{}", signature, secret)


def test_signature_covers_exact_body_bytes() -> None:
    signature = compute_signature(b'{"event":"PAYMENT_CONFIRMED"}', SECRET)

    with pytest.raises(AuthError):
        verify_signature(b'{"event": "PAYMENT_CONFIRMED"}', signature, SECRET)


def test_confirmed_payment_activates_subscription(client: TestClient, db_session: Session, subscription: Subscription) -> None:
    body = _body("PAYMENT_CONFIRMED", str(subscription.id))

    response = _post(client, body, compute_signature(body, SECRET))

    assert response.status_code == 200
    assert response.json() == {"received": True}
    db_session.refresh(subscription)
    assert subscription.status == SubscriptionStatus.ACTIVE
    assert audit.audit_entries[-1]["action"] == "billing.subscription.status_changed"
    changed = events.events_of_type("billing.subscription.status_changed")
    assert changed and changed[-1]["status"] == "active"


def test_webhook_database_work_runs_off_the_event_loop(
    client: TestClient,
    db_session: Session,
    subscription: Subscription,
) -> None:
    flushes: list[str] = []

    def record_flush(session: Session, flush_context: object, instances: object) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            flushes.append("worker-thread")
        else:
            flushes.append("event-loop")

    sa_event.listen(db_session, "before_flush", record_flush)
    try:
        body = _body("PAYMENT_CONFIRMED", str(subscription.id))
        response = _post(client, body, compute_signature(body, SECRET))
    finally:
        sa_event.remove(db_session, "before_flush", record_flush)

    assert response.status_code == 200
    assert flushes
    assert set(flushes) == {"worker-thread"}


def test_invalid_signature_changes_nothing(client: TestClient, db_session: Session, subscription: Subscription) -> None:
    body = _body("PAYMENT_CONFIRMED", str(subscription.id))

    response = _post(client, body, compute_signature(body, "wrong-secret"))

    assert response.status_code == 401
    assert "error" in response.json()
    db_session.refresh(subscription)
    assert subscription.status == SubscriptionStatus.PENDING
    assert audit.audit_entries == []


def test_missing_signature_is_rejected(client: TestClient, subscription: Subscription) -> None:
    response = _post(client, _body("PAYMENT_CONFIRMED", str(subscription.id)), None)

    assert response.status_code == 401


def test_unconfigured_secret_rejects_everything(
    client: TestClient,
    subscription: Subscription,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("BILLING_WEBHOOK_TOKEN", "")
    get_settings.cache_clear()
    body = _body("PAYMENT_CONFIRMED", str(subscription.id))

    response = _post(client, body, compute_signature(body, ""))

    assert response.status_code == 401


def test_non_object_body_is_rejected(client: TestClient) -> None:
    body = b"[1, 2, 3]"

    response = _post(client, body, compute_signature(body, SECRET))

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.parametrize(
    ("event", "outcome"),
    [
        ("PAYMENT_DELETED", WebhookOutcome.LOGGED),
        ("PAYMENT_REFUNDED", WebhookOutcome.LOGGED),
        ("PAYMENT_CREATED", WebhookOutcome.IGNORED),
    ],
)
def test_events_without_mapping_leave_subscription_untouched(
    db_session: Session,
    subscription: Subscription,
    event: str,
    outcome: WebhookOutcome,
) -> None:
    body = _body(event, str(subscription.id))

    result = webhook_reconciler.handle(db_session, body, compute_signature(body, SECRET), SECRET)

    assert result.outcome == outcome
    db_session.refresh(subscription)
    assert subscription.status == SubscriptionStatus.PENDING


@pytest.mark.parametrize("reference", [None, "sub-123", "00000000-0000-4000-8000-000000000000"])
def test_unmapped_references_are_acknowledged(client: TestClient, reference: str | None) -> None:
    body = _body("PAYMENT_RECEIVED", reference)

    response = _post(client, body, compute_signature(body, SECRET))

    assert response.status_code == 200
    assert response.json() == {"received": True}


def test_overdue_after_active_is_applied_and_flagged(
    db_session: Session,
    subscription: Subscription,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="graficontrol.billing.webhook")
    subscription.status = SubscriptionStatus.ACTIVE
    db_session.commit()
    body = _body("PAYMENT_OVERDUE", str(subscription.id))

    result = webhook_reconciler.handle(db_session, body, compute_signature(body, SECRET), SECRET)

    assert result.outcome == WebhookOutcome.APPLIED
    db_session.refresh(subscription)
    assert subscription.status == SubscriptionStatus.OVERDUE
    regressions = [record for record in caplog.records if record.getMessage() == "billing.webhook.status_regressed"]
    assert regressions
    assert regressions[-1].levelno == logging.WARNING
    assert getattr(regressions[-1], "previous_status", None) == "active"


def test_repeated_delivery_is_a_no_op(db_session: Session, subscription: Subscription) -> None:
    body = _body("PAYMENT_CONFIRMED", str(subscription.id))
    signature = compute_signature(body, SECRET)

    first = webhook_reconciler.handle(db_session, body, signature, SECRET)
    second = webhook_reconciler.handle(db_session, body, signature, SECRET)

    assert first.outcome == WebhookOutcome.APPLIED
    assert second.outcome == WebhookOutcome.UNCHANGED
    assert len(audit.audit_entries) == 1


def test_malformed_json_is_a_validation_error(db_session: Session) -> None:
    body = b"{not json"

    with pytest.raises(ValidationError):
        webhook_reconciler.handle(db_session, body, compute_signature(body, SECRET), SECRET)
