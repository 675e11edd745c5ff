from __future__ import annotations

import uuid
from collections.abc import Generator
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from graficontrol import audit, events
from graficontrol.business.company.models import Company
from graficontrol.core.auth import AuthUser, get_current_user
from graficontrol.core.config import get_settings
from graficontrol.core.database import Base, get_db
from graficontrol.main import app
from graficontrol.platform.security.context import Role


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
    audit.audit_entries.clear()
    events.published_events.clear()
    get_settings.cache_clear()
    yield
    audit.audit_entries.clear()
    events.published_events.clear()
    get_settings.cache_clear()


@pytest.fixture()
def company(db_session: Session) -> Company:
    company = Company(name="Corr Print Shop")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture()
def client(db_session: Session, company: Company) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_user() -> AuthUser:
        return AuthUser(sub="user-1", role=Role.ADMIN, company_id=company.id)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_order(client: TestClient, correlation_id: str) -> dict:
    response = client.post(
        "/orders",
        json={
            "description": "Corr order",
            "total_value": "90.00",
            "delivery_date": (date.today() + timedelta(days=3)).isoformat(),
        },
        headers={"X-Correlation-Id": correlation_id},
    )
    assert response.status_code == 201
    return response.json()


def test_generated_correlation_id_returned_in_header(client: TestClient) -> None:
    response = client.get(f"/orders/{uuid.uuid4()}")

    assert response.status_code == 404
    header_value = response.headers.get("x-correlation-id")
    assert header_value
    assert uuid.UUID(header_value)
    assert response.json() == {"error": "order not found"}


def test_correlation_id_respected_when_provided(client: TestClient) -> None:
    response = client.get(f"/orders/{uuid.uuid4()}", headers={"X-Correlation-Id": "abc-123"})

    assert response.status_code == 404
    assert response.headers.get("x-correlation-id") == "abc-123"


def test_oversized_correlation_id_is_replaced(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Correlation-Id": "x" * 200})

    assert response.headers.get("x-correlation-id") != "x" * 200


def test_event_envelope_includes_correlation_id(client: TestClient) -> None:
    order = _create_order(client, "corr-event-1")

    created = events.events_of_type("orders.order.created")
    assert created
    assert created[-1]["order_id"] == order["id"]
    assert created[-1]["correlation_id"] == "corr-event-1"


def test_audit_uses_request_correlation_id(client: TestClient) -> None:
    order = _create_order(client, "corr-audit-0")

    response = client.post(
        f"/orders/{order['id']}/override-status",
        json={"status": "ready", "reason": "printed early"},
        headers={"X-Correlation-Id": "corr-audit-1"},
    )
    assert response.status_code == 200

    [entry] = audit.entries_for("order", order["id"])
    assert entry["correlation_id"] == "corr-audit-1"
    assert entry["changed_fields"] == ["status"]
